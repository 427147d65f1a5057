"""
_links.py
=========
The link layer: the only code that writes the five structural arrays
(``parent``, ``first_child``, ``last_child``, ``next_sibling``,
``previous_sibling``) of a tree's node arena.

Every function takes the owning ``tree`` explicitly.  Arguments are
validated before anything is written, so a failing call leaves the tree
unchanged.  Each successful edit bumps ``tree.generation``.

Membership follows structure: a subtree attached below a member node
becomes a member of the tree, and a detached subtree stops being one.  This
keeps the single-root and containment rules true after every call.
"""

from typing import Optional

from ramus._arena import ABSENT
from ramus._exceptions import LinkTypeError, StructuralPrecondition
from ramus._node import Node
from ramus._utils import check_finite


# ======================================================================== #
# Validation                                                                #
# ======================================================================== #


def require_node(tree, obj, what: str = "node") -> int:
    """
    Return the arena slot of *obj*, which must be a live Node of *tree*.

    Raises
    ------
    LinkTypeError    *obj* is not a Node, or belongs to another tree.
    StaleNodeError   *obj* refers to a deleted node.
    """
    if not isinstance(obj, Node):
        raise LinkTypeError(f"{what} must be a Node, got {type(obj).__name__}.")
    if obj._tree is not tree:
        raise LinkTypeError(f"{what} {obj!r} belongs to a different tree.")
    obj._arena()
    return obj._slot


def is_ancestor(tree, a: Node, b: Node) -> bool:
    """True when *a* is a proper ancestor of *b*."""
    arena = tree._arena
    sa = require_node(tree, a, "a")
    p = int(arena.parent[require_node(tree, b, "b")])
    while p != ABSENT:
        if p == sa:
            return True
        p = int(arena.parent[p])
    return False


# ======================================================================== #
# Raw chain edits (no validation)                                           #
# ======================================================================== #


def _unlink(arena, c: int) -> None:
    """Remove slot *c* from its parent's sibling chain and clear its parent."""
    p = int(arena.parent[c])
    if p == ABSENT:
        return
    prev = int(arena.previous_sibling[c])
    nxt = int(arena.next_sibling[c])
    if prev == ABSENT:
        arena.first_child[p] = nxt
    else:
        arena.next_sibling[prev] = nxt
    if nxt == ABSENT:
        arena.last_child[p] = prev
    else:
        arena.previous_sibling[nxt] = prev
    arena.parent[c] = ABSENT
    arena.previous_sibling[c] = ABSENT
    arena.next_sibling[c] = ABSENT


def _link(arena, p: int, c: int, index: Optional[int]) -> None:
    """Insert unattached slot *c* as child number *index* of *p*."""
    if index is None:
        before = ABSENT
    else:
        before = int(arena.first_child[p])
        for _ in range(index):
            before = int(arena.next_sibling[before])

    if before == ABSENT:
        last = int(arena.last_child[p])
        arena.previous_sibling[c] = last
        if last == ABSENT:
            arena.first_child[p] = c
        else:
            arena.next_sibling[last] = c
        arena.last_child[p] = c
    else:
        prev = int(arena.previous_sibling[before])
        arena.previous_sibling[c] = prev
        arena.next_sibling[c] = before
        arena.previous_sibling[before] = c
        if prev == ABSENT:
            arena.first_child[p] = c
        else:
            arena.next_sibling[prev] = c
    arena.parent[c] = p


def _position(arena, c: int) -> int:
    i = 0
    prev = int(arena.previous_sibling[c])
    while prev != ABSENT:
        i += 1
        prev = int(arena.previous_sibling[prev])
    return i


def set_membership(tree, slot: int, member: bool) -> None:
    """Mark the subtree below *slot* as (non-)members of *tree*."""
    arena = tree._arena
    for s in arena.subtree(slot):
        if bool(arena.member[s]) == member:
            continue
        arena.member[s] = member
        if member:
            tree._members[s] = None
        else:
            tree._members.pop(s, None)


# ======================================================================== #
# Public link operations                                                    #
# ======================================================================== #


def set_parent(tree, node: Node, parent: Optional[Node]) -> None:
    """
    Overwrite the parent link of *node* without touching sibling chains.

    For bulk builders that keep the chains consistent themselves; normal
    callers want ``attach_child``.
    """
    s = require_node(tree, node)
    p = ABSENT if parent is None else require_node(tree, parent, "parent")
    tree._arena.parent[s] = p
    tree._touch()


def attach_child(tree, parent: Node, child: Node, index: Optional[int] = None) -> Node:
    """
    Make *child* a child of *parent*.

    Parameters
    ----------
    tree : Tree
    parent, child : Node
    index : int, optional
        Position in *parent*'s resulting child list (0 = first).  None
        appends.

    Returns
    -------
    Node
        *parent*.

    Notes
    -----
    If *child* is an ancestor of *parent*, *parent* is first lifted out of
    *child*'s subtree into *child*'s own slot (next to *child* under its
    parent, or parentless if *child* had none); *child* then moves below
    *parent*.  No node is lost and no cycle can form.

    Raises
    ------
    LinkTypeError            an argument is not a live Node of *tree*.
    StructuralPrecondition   *child* is *parent*.
    IndexError               *index* is out of range.
    """
    arena = tree._arena
    p = require_node(tree, parent, "parent")
    c = require_node(tree, child, "child")
    if p == c:
        raise StructuralPrecondition("A node cannot be its own child.")

    already_child = int(arena.parent[c]) == p
    n_other = arena.n_children(p) - (1 if already_child else 0)
    if index is not None:
        if isinstance(index, bool) or not isinstance(index, int):
            raise TypeError(f"index must be an int or None, got {index!r}.")
        if not 0 <= index <= n_other:
            raise IndexError(
                f"Child index {index} out of range for {n_other} existing children."
            )

    if already_child:
        at = _position(arena, c)
        if (index is None and int(arena.next_sibling[c]) == ABSENT) or index == at:
            return parent

    if is_ancestor(tree, child, parent):
        cp = int(arena.parent[c])
        _unlink(arena, p)
        if cp != ABSENT:
            _link(arena, cp, p, _position(arena, c) + 1)

    was_member = bool(arena.member[c])
    _unlink(arena, c)
    _link(arena, p, c, index)
    member = bool(arena.member[p])
    if member != was_member:
        set_membership(tree, c, member)
    tree._touch()
    return parent


def detach_child(tree, parent: Node, child: Node) -> Node:
    """
    Remove *child* from *parent*'s children.

    The child keeps its own subtree and leaves the tree's membership; it
    can be attached again or re-inserted as a new root.

    Returns
    -------
    Node
        *child*.

    Raises
    ------
    StructuralPrecondition   *child* is not a child of *parent*.
    """
    arena = tree._arena
    p = require_node(tree, parent, "parent")
    c = require_node(tree, child, "child")
    if int(arena.parent[c]) != p:
        raise StructuralPrecondition(f"{child!r} is not a child of {parent!r}.")
    _unlink(arena, c)
    set_membership(tree, c, False)
    tree._touch()
    return child


def set_branch_length(tree, node: Node, value: Optional[float]) -> None:
    """
    Set or clear (``None``) the branch length of *node*.

    Raises
    ------
    BadNumber   *value* is not a finite real number.
    """
    s = require_node(tree, node)
    tree._arena.branch_length[s] = (
        float("nan") if value is None else check_finite(value, "branch length")
    )
    tree._touch()


def set_score(tree, node: Node, value: Optional[float]) -> None:
    """Set or clear (``None``) the score of *node*; same rules as lengths."""
    s = require_node(tree, node)
    tree._arena.score[s] = float("nan") if value is None else check_finite(value, "score")
    tree._touch()


def release_node(tree, node: Node, recursive: bool = False) -> None:
    """
    Detach *node* and free its slot; handles to it become stale.

    With ``recursive=False`` the children are detached and survive as
    unattached, non-member subtrees.  With ``recursive=True`` the whole
    subtree is freed.
    """
    arena = tree._arena
    s = require_node(tree, node)
    _unlink(arena, s)
    if recursive:
        slots = arena.subtree(s)
    else:
        for c in arena.children(s):
            _unlink(arena, c)
            set_membership(tree, c, False)
        slots = [s]
    for slot in slots:
        tree._members.pop(slot, None)
        arena.release(slot)
    tree._touch()
