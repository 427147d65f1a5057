"""
_queries.py
===========
Node-level navigation and distance queries.

All functions take ``Node`` handles and return fresh lists (snapshots), so
the result can be kept while the tree is edited; handles to nodes deleted
in the meantime become stale.

Absent branch lengths count as 0 in every sum.
"""

from typing import List, Optional

from ramus._exceptions import Disconnected


def _length(node) -> float:
    bl = node.branch_length
    return 0.0 if bl is None else bl


# ======================================================================== #
# Navigation                                                                #
# ======================================================================== #


def ancestors(node) -> Optional[List]:
    """
    Ancestors of *node*, nearest first (parent ... root).

    Returns ``None`` for a parentless node.
    """
    out = []
    p = node.parent
    while p is not None:
        out.append(p)
        p = p.parent
    return out or None


def children(node) -> List:
    """Children of *node*, left to right."""
    out = []
    c = node.first_child
    while c is not None:
        out.append(c)
        c = c.next_sibling
    return out


def descendants(node) -> List:
    """
    All nodes below *node*, generation by generation: the immediate
    children first, then the children of everything collected so far.
    """
    out = []
    current = children(node)
    while current:
        out.extend(current)
        following = []
        for n in current:
            following.extend(children(n))
        current = following
    return out


def sisters(node) -> List:
    """The children of *node*'s parent (including *node*), or [] at a root."""
    p = node.parent
    return [] if p is None else children(p)


def terminals(node) -> List:
    """Terminal nodes of the clade rooted at *node*, left to right."""
    out = []
    stack = [node]
    while stack:
        n = stack.pop()
        kids = children(n)
        if kids:
            stack.extend(reversed(kids))
        else:
            out.append(n)
    return out


def internals(node) -> List:
    """Internal nodes strictly below *node*, in descendant order."""
    return [n for n in descendants(node) if n.first_child is not None]


def leftmost_terminal(node):
    while node.first_child is not None:
        node = node.first_child
    return node


def rightmost_terminal(node):
    while node.last_child is not None:
        node = node.last_child
    return node


# ---- predicates ---- #


def is_descendant_of(node, other) -> bool:
    p = node.parent
    while p is not None:
        if p == other:
            return True
        p = p.parent
    return False


def is_ancestor_of(node, other) -> bool:
    return is_descendant_of(other, node)


def is_child_of(node, other) -> bool:
    return node.parent is not None and node.parent == other


def is_sister_of(node, other) -> bool:
    p = node.parent
    return p is not None and node != other and other.parent == p


def is_outgroup_of(node, ingroup) -> bool:
    """
    True when *node* lies outside the clade spanned by the *ingroup* nodes,
    i.e. it is neither their common ancestor nor below it.
    """
    ingroup = list(ingroup)
    if not ingroup:
        raise ValueError("ingroup must contain at least one node.")
    clade = ingroup[0]
    for other in ingroup[1:]:
        clade = common_ancestor(clade, other)
    return node != clade and not is_descendant_of(node, clade)


# ======================================================================== #
# Common ancestors                                                          #
# ======================================================================== #


def most_recent_common_ancestor(a, b):
    """
    Return the nearest node present in both ancestor lists of *a* and *b*.

    The lists are scanned nearest-first, *a*'s in the outer loop and *b*'s
    in the inner one, comparing by node identity.  A node is not its own
    ancestor here, so ``most_recent_common_ancestor(x, x)`` is ``x``'s
    parent.

    Returns
    -------
    Node or None
        ``None`` when either node is parentless.

    Raises
    ------
    Disconnected
        The nodes belong to different trees, or both have ancestors but
        none in common.
    """
    if a._tree is not b._tree:
        raise Disconnected(f"{a!r} and {b!r} belong to different trees.")
    anc_a = ancestors(a)
    anc_b = ancestors(b)
    if anc_a is None or anc_b is None:
        return None
    for x in anc_a:
        for y in anc_b:
            if x == y:
                return x
    raise Disconnected(f"{a!r} and {b!r} do not share a root.")


def _lineage(node) -> List:
    out = [node]
    p = node.parent
    while p is not None:
        out.append(p)
        p = p.parent
    return out


def common_ancestor(a, b):
    """
    Like ``most_recent_common_ancestor`` but each node counts as its own
    ancestor, so the result is the node where the path from *a* to *b*
    turns around (``a`` itself when *a* is an ancestor of *b*).

    Raises
    ------
    Disconnected   if *a* and *b* have no common ancestor.
    """
    if a._tree is not b._tree:
        raise Disconnected(f"{a!r} and {b!r} belong to different trees.")
    seen = {n._slot for n in _lineage(a)}
    for n in _lineage(b):
        if n._slot in seen:
            return n
    raise Disconnected(f"{a!r} and {b!r} do not share a root.")


# ======================================================================== #
# Distances                                                                 #
# ======================================================================== #


def path_to_root(node) -> float:
    """Sum of the branch lengths of *node* and every ancestor."""
    total = 0.0
    n = node
    while n is not None:
        total += _length(n)
        n = n.parent
    return total


def nodes_to_root(node) -> int:
    """Number of edges between *node* and its root."""
    n = 0
    p = node.parent
    while p is not None:
        n += 1
        p = p.parent
    return n


def _climb(node, stop):
    """Yield *node* and its ancestors up to, not including, *stop*."""
    while node != stop:
        yield node
        node = node.parent


def patristic_distance(a, b) -> float:
    """
    Sum of branch lengths on the path joining *a* and *b*.

    In ``((A:1,B:2):3,C:4);`` A-B is 3 and A-C is 1 + 3 + 4 = 8.
    """
    top = common_ancestor(a, b)
    return sum(_length(n) for n in _climb(a, top)) + sum(
        _length(n) for n in _climb(b, top)
    )


def nodal_distance(a, b) -> int:
    """Number of edges on the path joining *a* and *b*."""
    top = common_ancestor(a, b)
    return sum(1 for _ in _climb(a, top)) + sum(1 for _ in _climb(b, top))


def _tip_depths(node):
    """(edge count, path length) from *node* down to each terminal below it."""
    out = []
    stack = [(node, 0, 0.0)]
    while stack:
        n, edges, length = stack.pop()
        kids = children(n)
        if not kids:
            out.append((edges, length))
            continue
        for c in kids:
            stack.append((c, edges + 1, length + _length(c)))
    return out


def max_nodes_to_tips(node) -> int:
    return max(e for e, _ in _tip_depths(node))


def min_nodes_to_tips(node) -> int:
    return min(e for e, _ in _tip_depths(node))


def max_path_to_tips(node) -> float:
    return max(length for _, length in _tip_depths(node))


def min_path_to_tips(node) -> float:
    return min(length for _, length in _tip_depths(node))
