"""
_utils.py
=========
Small helpers shared across the ramus modules.
"""

import math
import numbers
from typing import Optional

from ramus._exceptions import BadNumber


def check_finite(value, what: str = "value") -> float:
    """
    Return *value* as a float, or raise ``BadNumber``.

    Accepts any real number (python or numpy) except booleans, NaN and
    infinities.

    Parameters
    ----------
    value : Any
        Candidate number.
    what : str
        Name used in the error message.

    Raises
    ------
    BadNumber   if *value* is not a finite real number.
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise BadNumber(f"{what} must be a finite number, got {value!r}.")
    value = float(value)
    if not math.isfinite(value):
        raise BadNumber(f"{what} must be a finite number, got {value!r}.")
    return value


def add_lengths(a: Optional[float], b: Optional[float]) -> Optional[float]:
    """
    Add two optional branch lengths.

    Absent + absent stays absent; absent + x is x; x + y is the sum.

    >>> add_lengths(None, None) is None
    True
    >>> add_lengths(None, 2.0)
    2.0
    >>> add_lengths(1.0, 2.0)
    3.0
    """
    if a is None:
        return b
    if b is None:
        return a
    return a + b
