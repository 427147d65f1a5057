"""
conftest.py
===========
Session-level pytest configuration for the test suite.

Custom marks
------------
property
    Applied to hypothesis-driven tests that generate many random edit
    sequences.  Deselect with ``-m "not property"`` for a quick run.

    Registration here suppresses PytestUnknownMarkWarning and makes the mark
    visible in ``pytest --markers``.

Hypothesis profile
------------------
The ``ramus`` profile keeps example counts moderate and disables the
per-example deadline, since tree edits on larger generated pools can
exceed the default 200 ms on slow CI machines.
"""

from hypothesis import settings


def pytest_configure(config):
    """
    Configure pytest before test collection begins.

    Registers custom marks and loads the hypothesis profile before any
    test module is imported.
    """
    config.addinivalue_line(
        "markers",
        "property: hypothesis-driven property test "
        "(deselect with -m 'not property')",
    )

    settings.register_profile("ramus", max_examples=75, deadline=None)
    settings.load_profile("ramus")
