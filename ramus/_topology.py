"""
_topology.py
============
Topology-editing algorithms built on the link layer.

Every function validates its preconditions before the first structural
change.  Branch lengths that are merged follow one rule: absent + absent is
absent, absent + x is x, x + y is x + y.

Node-level
----------
  collapse(node, strict=False)
  insert_node_below(node, **attributes)
  reroot_below(node, new_root_name='root')

Tree-level
----------
  resolve_polytomies(tree, rng=None)
  prune_tips(tree, names)
  keep_tips(tree, names)
  remove_unbranched_internals(tree)
  ultrametricize(tree)
  scale(tree, height)
  negative_to_zero(tree)
  exponentiate(tree, power)
  log_transform(tree, base)
"""

import logging
import math
from typing import Iterable, Optional

from ramus import _links
from ramus._context import resolve_rng
from ramus._exceptions import BadNumber, StructuralPrecondition
from ramus._logging import (
    log_missing_tips,
    log_polytomy_resolution,
    log_prune_summary,
    log_reroot,
)
from ramus._queries import ancestors, path_to_root
from ramus._utils import add_lengths, check_finite

logger = logging.getLogger(__name__)


def _position(node) -> int:
    i = 0
    s = node.previous_sibling
    while s is not None:
        i += 1
        s = s.previous_sibling
    return i


# ======================================================================== #
# Node-level edits                                                          #
# ======================================================================== #


def collapse(node, strict: bool = False):
    """
    Remove the internal *node*, handing its children to its parent.

    Each child's branch length becomes its own plus *node*'s.  The children
    take *node*'s place in the parent's child order.

    Parameters
    ----------
    node : Node
    strict : bool, default False
        Raise instead of doing nothing when *node* is a root or terminal.

    Returns
    -------
    Node or None
        The former parent, or None when nothing was done.

    Raises
    ------
    StructuralPrecondition   (``strict=True``) *node* is a root or terminal.
    """
    tree = node._tree
    _links.require_node(tree, node)
    parent = node.parent
    if parent is None or node.is_terminal():
        if strict:
            kind = "the root" if parent is None else "a terminal node"
            raise StructuralPrecondition(f"Cannot collapse {kind}: {node!r}.")
        return None

    bl = node.branch_length
    at = _position(node)
    kids = node.children()
    for offset, child in enumerate(kids):
        merged = add_lengths(bl, child.branch_length)
        _links.attach_child(tree, parent, child, at + 1 + offset)
        _links.set_branch_length(tree, child, merged)
    _links.release_node(tree, node)

    logger.debug("Collapsed node into %r (%d children moved)", parent, len(kids))
    return parent


def insert_node_below(node, **attributes):
    """
    Put a new single-child node on the edge above *node*.

    The new node takes *node*'s place under its former parent and *node*
    becomes its only child.  *node* keeps its branch length; the new node's
    is absent unless given in *attributes*.

    Parameters
    ----------
    node : Node
    **attributes
        Passed to ``Tree.create_node`` (``name``, ``branch_length``, ...).

    Returns
    -------
    Node
        The new node.

    Raises
    ------
    StructuralPrecondition   *node* has no parent.
    """
    tree = node._tree
    _links.require_node(tree, node)
    parent = node.parent
    if parent is None:
        raise StructuralPrecondition(f"Cannot insert a node above root {node!r}.")

    new = tree.create_node(**attributes)
    _links.attach_child(tree, parent, new, _position(node))
    _links.attach_child(tree, new, node)
    return new


def reroot_below(node, new_root_name: Optional[str] = "root"):
    """
    Move the root onto the edge between *node* and its parent.

    A new node ``R`` is inserted above *node* and every edge on the path
    from ``R`` to the old root is reversed once.  Lengths stay with their
    edge: when ``X`` becomes the parent of its former parent ``P``, ``P``
    takes ``X``'s former branch length.  The old root is then spliced out
    if it is left with one child, deleted if it is left with none, and kept
    otherwise.  Path lengths between all pre-existing nodes are unchanged.

    Parameters
    ----------
    node : Node
    new_root_name : str or None, default 'root'

    Returns
    -------
    Node or None
        The new root, or None when *node*'s parent already is the root.

    Raises
    ------
    StructuralPrecondition   *node* is the root.
    """
    tree = node._tree
    _links.require_node(tree, node)
    parent = node.parent
    if parent is None:
        raise StructuralPrecondition(f"Cannot reroot below the root {node!r}.")
    if parent.parent is None:
        logger.debug("reroot_below(%r): parent is already the root", node)
        return None

    was_member = node.tree is not None
    new_root = insert_node_below(node, name=new_root_name)
    path = [new_root] + ancestors(new_root)
    old_root = path[-1]
    lengths = [n.branch_length for n in path]

    for lower, upper in zip(path[:-1], path[1:]):
        _links.detach_child(tree, upper, lower)
    if was_member:
        _links.set_membership(tree, old_root._slot, False)
    for i in range(1, len(path)):
        _links.attach_child(tree, path[i - 1], path[i])
        _links.set_branch_length(tree, path[i], lengths[i - 1])
    _links.set_branch_length(tree, new_root, None)

    n_left = len(old_root.children())
    if n_left == 1:
        collapse(old_root)
        fate = "spliced"
    elif n_left == 0:
        _links.release_node(tree, old_root)
        fate = "deleted"
    else:
        fate = "kept"

    if was_member:
        _links.set_membership(tree, new_root._slot, True)
        tree._touch()
    log_reroot(node.internal_name, len(path) - 1, fate)
    return new_root


# ======================================================================== #
# Tree-level edits                                                          #
# ======================================================================== #


def resolve_polytomies(tree, rng=None) -> int:
    """
    Randomly resolve every node with more than two children.

    While a node has more than two children, two of its current children
    are drawn at random and moved under a new zero-length child of that
    node.  Nodes created earlier in the same loop are candidates too.

    Parameters
    ----------
    tree : Tree
    rng : int, numpy.random.Generator or None
        Random source; see ``ramus.use_rng`` for the default.

    Returns
    -------
    int
        Number of nodes created.
    """
    generator = resolve_rng(rng)
    polytomies = [n for n in tree if len(n.children()) > 2]

    created = 0
    for node in polytomies:
        kids = node.children()
        while len(kids) > 2:
            picks = sorted(int(i) for i in generator.choice(len(kids), 2, replace=False))
            new = tree.create_node(branch_length=0.0)
            _links.attach_child(tree, node, new)
            for i in picks:
                _links.attach_child(tree, new, kids[i])
            created += 1
            kids = node.children()

    log_polytomy_resolution(len(polytomies), created)
    return created


def remove_unbranched_internals(tree) -> int:
    """
    Splice out every node that has exactly one child.

    The child takes the removed node's position and the sum of both branch
    lengths.  A single-child root is replaced by its child.

    Returns
    -------
    int
        Number of nodes removed.
    """
    removed = 0
    for node in list(tree):
        if not node.is_valid:
            continue
        first = node.first_child
        if first is None or first != node.last_child:
            continue
        if node.parent is None:
            merged = add_lengths(node.branch_length, first.branch_length)
            _links.release_node(tree, node)
            tree.insert(first)
            _links.set_branch_length(tree, first, merged)
        else:
            collapse(node)
        removed += 1
    return removed


def prune_tips(tree, names: Iterable[str]) -> int:
    """
    Delete the terminals named in *names* and tidy up what is left.

    Internal nodes left without children are deleted as well, then
    ``remove_unbranched_internals`` runs.  Names with no matching terminal
    (including names carried only by internal nodes) are reported at
    WARNING level.

    Returns
    -------
    int
        Number of terminals removed.
    """
    names = set(names)
    targets = [n for n in tree.terminals() if n.name in names]
    log_missing_tips(names - {n.name for n in targets})

    for tip in targets:
        parent = tip.parent
        _links.release_node(tree, tip)
        while parent is not None and parent.first_child is None:
            up = parent.parent
            _links.release_node(tree, parent)
            parent = up

    spliced = remove_unbranched_internals(tree)
    log_prune_summary(len(targets), spliced, len(tree))
    return len(targets)


def keep_tips(tree, names: Iterable[str]) -> int:
    """
    Prune every named terminal whose name is not in *names*.

    Terminals without a name have nothing to match against *names* and are
    never pruned, so ``keep_tips([])`` still leaves them in place.  Returns
    the number of terminals removed.
    """
    keep = set(names)
    drop = [n.name for n in tree.terminals() if n.name is not None and n.name not in keep]
    return prune_tips(tree, drop)


# ---- branch-length transforms ---- #


def _apply(tree, transform, what: str) -> None:
    """Compute every new length first, then write them all."""
    updates = []
    for n in tree:
        bl = n.branch_length
        if bl is None:
            continue
        try:
            value = transform(bl)
        except (ValueError, OverflowError, ZeroDivisionError) as exc:
            raise BadNumber(f"{what} of branch length {bl!r} failed: {exc}") from exc
        updates.append((n, check_finite(value, what)))
    for n, value in updates:
        _links.set_branch_length(tree, n, value)


def ultrametricize(tree) -> None:
    """
    Lengthen terminal branches until every tip is as far from the root as
    the tallest one.
    """
    tips = tree.terminals()
    depths = [path_to_root(t) for t in tips]
    if not tips:
        return
    tallest = max(depths)
    for tip, depth in zip(tips, depths):
        bl = tip.branch_length or 0.0
        _links.set_branch_length(tree, tip, bl + (tallest - depth))


def scale(tree, height: float) -> None:
    """
    Multiply all branch lengths so the mean root-to-tip path is *height*.

    Raises
    ------
    BadNumber                *height* is not finite.
    StructuralPrecondition   the current mean height is 0.
    """
    height = check_finite(height, "height")
    current = tree.tree_height()
    if current == 0:
        raise StructuralPrecondition("Cannot scale a tree of height 0.")
    factor = height / current
    _apply(tree, lambda bl: bl * factor, "scaling")


def negative_to_zero(tree) -> None:
    """Set negative branch lengths to 0.0."""
    _apply(tree, lambda bl: 0.0 if bl < 0 else bl, "clamping")


def exponentiate(tree, power: float) -> None:
    """Raise every defined branch length to *power*."""
    power = check_finite(power, "power")
    _apply(tree, lambda bl: math.pow(bl, power), "exponentiation")


def log_transform(tree, base: float) -> None:
    """Replace every defined branch length by its logarithm in *base*."""
    base = check_finite(base, "base")
    if base <= 0 or base == 1:
        raise BadNumber(f"Logarithm base must be positive and not 1, got {base!r}.")
    _apply(tree, lambda bl: math.log(bl, base), "log transform")
