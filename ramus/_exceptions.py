"""
_exceptions.py
==============
Exception hierarchy for ramus.

Every error derives from ``RamusError`` and from ``ValueError`` or
``TypeError``.

  BadNumber               a branch length or numeric parameter is not a
                          finite real number
  LinkTypeError           an argument to a structural mutator is not a live
                          Node of the expected tree
  StaleNodeError          a Node handle refers to a node that has been
                          deleted (subclass of LinkTypeError)
  StructuralPrecondition  the operation is not allowed on the current
                          topology (rerooting at the root, imbalance on a
                          non-binary tree, ...)
  Disconnected            the nodes do not share a root
  NewickSyntaxError       malformed Newick text given to the reader

All errors are raised before any structural change is made.
"""


class RamusError(Exception):
    """Base class for all ramus errors."""


class BadNumber(RamusError, ValueError):
    """A branch length or numeric parameter is not a finite number."""


class LinkTypeError(RamusError, TypeError):
    """An argument to a structural operation is not a Node of the right tree."""


class StaleNodeError(LinkTypeError):
    """A Node handle was used after its node was deleted."""


class StructuralPrecondition(RamusError, ValueError):
    """The operation is disallowed for the current topology."""


class Disconnected(RamusError, ValueError):
    """The nodes involved do not share a common root."""


class NewickSyntaxError(RamusError, ValueError):
    """The Newick text could not be parsed."""
