"""
_context.py
===========
``with``-block helpers that change some global setting and put it back.

  suppress_logger(name, level)   raise one logger's threshold
  quiet(level)                   same, for the whole ``ramus`` hierarchy
  suppress_warnings(category)    ignore a warning category
  use_rng(seed)                  default random source for randomized edits

The previous value is restored in a ``finally`` clause.
"""

import logging
import warnings
from contextlib import contextmanager
from typing import Optional, Type, Union

import numpy as np


# Set only inside a use_rng() block.
_rng_override = None


# ============================================================================ #
# Logging
# ============================================================================ #


@contextmanager
def suppress_logger(logger_name: str, level: int = logging.CRITICAL):
    """
    Set the level of logger *logger_name* for the duration of the block.

    Parameters
    ----------
    logger_name : str
        Dotted logger name, e.g. ``'ramus._newick'``.
    level : int, default logging.CRITICAL

    Examples
    --------
    >>> with suppress_logger('ramus._topology'):
    ...     tree.prune_tips(['A', 'B'])
    """
    target = logging.getLogger(logger_name)
    saved = target.level
    target.setLevel(level)
    try:
        yield
    finally:
        target.setLevel(saved)


@contextmanager
def quiet(level: int = logging.CRITICAL):
    """
    Silence ramus below *level*.

    Module loggers without a level of their own inherit it from ``'ramus'``.

    Examples
    --------
    >>> with quiet():
    ...     forest = Forest(trees)

    >>> with quiet(logging.WARNING):
    ...     tree.keep_tips(names)
    """
    with suppress_logger("ramus", level):
        yield


# ============================================================================ #
# Warnings
# ============================================================================ #


@contextmanager
def suppress_warnings(category: Optional[Type[Warning]] = None):
    """
    Ignore warnings of *category* (all warnings when None) inside the block.

    >>> with suppress_warnings(RuntimeWarning):
    ...     value = tree.gamma()
    """
    with warnings.catch_warnings():
        if category is None:
            warnings.simplefilter("ignore")
        else:
            warnings.filterwarnings("ignore", category=category)
        yield


# ============================================================================ #
# Random source
# ============================================================================ #


@contextmanager
def use_rng(seed: Union[int, np.random.Generator, None]):
    """
    Fix the generator that randomized edits use when given no ``rng``.

    Parameters
    ----------
    seed : int, numpy.random.Generator or None
        Anything ``numpy.random.default_rng`` accepts.  None clears an
        enclosing override so the block draws from fresh entropy.

    Examples
    --------
    >>> with use_rng(42):
    ...     tree.resolve_polytomies()

    Notes
    -----
    The override is module state shared by all threads; pass ``rng=`` to
    the operation itself in threaded code.
    """
    global _rng_override

    saved = _rng_override
    _rng_override = None if seed is None else np.random.default_rng(seed)
    try:
        yield
    finally:
        _rng_override = saved


def get_rng_override() -> Optional[np.random.Generator]:
    """The generator installed by the innermost ``use_rng`` block, or None."""
    return _rng_override


def resolve_rng(rng=None) -> np.random.Generator:
    """
    Pick the generator for a randomized operation.

    An explicit *rng* (seed or Generator) wins, then an active ``use_rng``
    block, then a freshly seeded generator.
    """
    if rng is not None:
        return np.random.default_rng(rng)
    override = get_rng_override()
    if override is not None:
        return override
    return np.random.default_rng()
