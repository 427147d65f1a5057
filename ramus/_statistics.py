"""
_statistics.py
==============
Whole-tree statistics.

The functions here take a ``Tree`` and read its arena arrays directly.
Per-node quantities (terminal counts, depths, subtree lengths) are
computed in one pass over a parents-before-children slot order and held in
numpy vectors indexed by slot.

Absent branch lengths count as 0.  Statistics that are undefined for the
current tree raise ``StructuralPrecondition``.  ``Tree`` wraps each
function in a method whose result is cached until the tree changes.

References
----------
Colless (1982) imbalance; Fusco & Cronk (1995) I2; Fiala & Sokal (1985)
and Rohlf et al. (1990) stemminess; Pybus & Harvey (2000) gamma; Isaac et
al. (2007) fair proportion; Redding & Mooers (2006) equal splits;
Haake et al. (2008) Shapley value; Penny & Hendy (1985) symmetric
difference.
"""

import math
from typing import Dict, List, Tuple

import numpy as np

from ramus._arena import ABSENT
from ramus._exceptions import BadNumber, StructuralPrecondition
from ramus._utils import check_finite


# ======================================================================== #
# Per-slot vectors                                                          #
# ======================================================================== #


def _root_slot(tree) -> int:
    root = tree.get_root()
    if root is None:
        raise StructuralPrecondition("The tree is empty.")
    return root._slot


def _order(tree) -> List[int]:
    """Slots reachable from the root, parents before children."""
    return tree._arena.subtree(_root_slot(tree))


def _lengths(tree) -> np.ndarray:
    return np.nan_to_num(tree._arena.branch_length, nan=0.0)


def _terminal_counts(tree, order) -> np.ndarray:
    """Number of terminals at or below each slot."""
    arena = tree._arena
    counts = np.zeros(arena.capacity, dtype=np.int64)
    root = order[0]
    for s in reversed(order):
        if arena.first_child[s] == ABSENT:
            counts[s] = 1
        if s != root:
            counts[arena.parent[s]] += counts[s]
    return counts


def _root_distances(tree, order) -> np.ndarray:
    """Branch-length sum from each slot up to and including the root."""
    arena = tree._arena
    bl = _lengths(tree)
    dist = np.zeros(arena.capacity, dtype=np.float64)
    root = order[0]
    for s in order:
        dist[s] = bl[s] if s == root else dist[arena.parent[s]] + bl[s]
    return dist


def _subtree_lengths(tree, order) -> np.ndarray:
    """Branch-length sum of everything strictly below each slot."""
    arena = tree._arena
    bl = _lengths(tree)
    below = np.zeros(arena.capacity, dtype=np.float64)
    root = order[0]
    for s in reversed(order):
        if s != root:
            below[arena.parent[s]] += below[s] + bl[s]
    return below


def _is_terminal(arena, s: int) -> bool:
    return arena.first_child[s] == ABSENT


def _terminal_slots(tree, order) -> List[int]:
    arena = tree._arena
    return [s for s in order if _is_terminal(arena, s)]


def _internal_slots(tree, order) -> List[int]:
    arena = tree._arena
    return [s for s in order if not _is_terminal(arena, s)]


def _label(arena, s: int) -> str:
    name = arena.name[s]
    return name if name is not None else f"node{int(arena.node_id[s])}"


# ======================================================================== #
# Counts and sizes                                                          #
# ======================================================================== #


def number_of_nodes(tree) -> int:
    return len(tree)


def number_of_terminals(tree) -> int:
    if tree.get_root() is None:
        return 0
    return len(_terminal_slots(tree, _order(tree)))


def number_of_internals(tree) -> int:
    if tree.get_root() is None:
        return 0
    return len(_internal_slots(tree, _order(tree)))


def tree_length(tree) -> float:
    """Sum of all branch lengths."""
    slots = list(tree._members)
    if not slots:
        return 0.0
    return float(_lengths(tree)[slots].sum())


def total_paths(tree) -> float:
    """Sum of the root-to-tip path lengths of all terminals."""
    order = _order(tree)
    dist = _root_distances(tree, order)
    return float(dist[_terminal_slots(tree, order)].sum())


def tree_height(tree) -> float:
    """Mean root-to-tip path length."""
    order = _order(tree)
    tips = _terminal_slots(tree, order)
    return float(_root_distances(tree, order)[tips].mean())


def redundancy(tree) -> float:
    """``1 - (length - height) / (height * n_terminals - height)``."""
    tl = tree_length(tree)
    th = tree_height(tree)
    ntax = number_of_terminals(tree)
    denominator = th * ntax - th
    if denominator == 0:
        raise StructuralPrecondition(
            "Redundancy is undefined for a single terminal or zero height."
        )
    return 1.0 - ((tl - th) / denominator)


def resolution(tree) -> float:
    """Internal node count over ``terminal count - 1``."""
    ntax = number_of_terminals(tree)
    if ntax < 2:
        raise StructuralPrecondition("Resolution needs at least two terminals.")
    return number_of_internals(tree) / (ntax - 1)


def tallest_tip(tree):
    """The terminal with the longest root-to-tip path (leftmost on ties)."""
    order = _order(tree)
    tips = _terminal_slots(tree, order)
    dist = _root_distances(tree, order)[tips]
    return tree._handle(tips[int(np.argmax(dist))])


# ======================================================================== #
# Shape predicates                                                          #
# ======================================================================== #


def is_binary(tree) -> bool:
    """True when every internal node has exactly two children."""
    arena = tree._arena
    return all(
        arena.n_children(s) == 2
        for s in tree._members
        if not _is_terminal(arena, s)
    )


def is_cladogram(tree) -> bool:
    """True when no node carries a branch length."""
    slots = list(tree._members)
    return bool(np.isnan(tree._arena.branch_length[slots]).all()) if slots else True


def is_ultrametric(tree, margin: float = 0.0) -> bool:
    """
    True when all root-to-tip path lengths agree within *margin*.

    Every pairwise ratio ``shorter / longer`` must be at least
    ``1 - margin``; ``margin=0`` demands exact equality.

    Raises
    ------
    BadNumber   *margin* is negative or not finite.
    """
    margin = check_finite(margin, "margin")
    if margin < 0:
        raise BadNumber(f"margin must be >= 0, got {margin!r}.")
    if tree.get_root() is None:
        return True
    order = _order(tree)
    dist = _root_distances(tree, order)[_terminal_slots(tree, order)]
    lo, hi = float(dist.min()), float(dist.max())
    if lo == hi:
        return True
    if hi <= 0:
        return False
    return 1.0 - lo / hi <= margin


def _require_binary(tree, what: str) -> int:
    if not is_binary(tree):
        raise StructuralPrecondition(f"{what} requires a binary tree.")
    ntax = number_of_terminals(tree)
    if ntax < 3:
        raise StructuralPrecondition(f"{what} requires at least three terminals.")
    return ntax


def _require_ultrametric(tree, what: str) -> None:
    if not is_ultrametric(tree, 0.01):
        raise StructuralPrecondition(
            f"{what} requires an ultrametric tree (1% margin)."
        )


# ======================================================================== #
# Imbalance                                                                 #
# ======================================================================== #


def colless_imbalance(tree) -> float:
    """
    Colless imbalance: sum over internal nodes of ``|n_first - n_last|``
    (terminal counts below the two children), divided by its maximum
    ``(n - 1)(n - 2) / 2`` for ``n`` terminals.  0 for a perfectly balanced
    tree, 1 for a caterpillar.
    """
    n = _require_binary(tree, "Colless imbalance")
    arena = tree._arena
    order = _order(tree)
    counts = _terminal_counts(tree, order)
    total = 0
    for s in _internal_slots(tree, order):
        total += abs(int(counts[arena.first_child[s]]) - int(counts[arena.last_child[s]]))
    return total / ((n - 1) * (n - 2) / 2)


def i2_imbalance(tree) -> float:
    """
    I2 imbalance: like Colless, but each node's difference is divided by
    ``|n_first + n_last - 2|``; nodes where that is 0 are skipped.
    """
    n = _require_binary(tree, "I2 imbalance")
    arena = tree._arena
    order = _order(tree)
    counts = _terminal_counts(tree, order)
    total = 0.0
    for s in _internal_slots(tree, order):
        left = int(counts[arena.first_child[s]])
        right = int(counts[arena.last_child[s]])
        denominator = abs(left + right - 2)
        if denominator:
            total += abs(left - right) / denominator
    return total / ((n - 1) * (n - 2) / 2)


# ======================================================================== #
# Stemminess and gamma                                                      #
# ======================================================================== #


def fiala_stemminess(tree) -> float:
    """
    Fiala & Sokal stemminess: for each non-root internal node, its branch
    length over the length of its whole clade including that branch;
    averaged over the non-root internal nodes.
    """
    arena = tree._arena
    order = _order(tree)
    internals = _internal_slots(tree, order)
    if len(internals) < 2:
        raise StructuralPrecondition(
            "Stemminess needs at least one non-root internal node."
        )
    bl = _lengths(tree)
    below = _subtree_lengths(tree, order)
    total = 0.0
    for s in internals:
        if arena.parent[s] == ABSENT:
            continue
        clade = bl[s] + below[s]
        if clade:
            total += bl[s] / clade
    return float(total / (len(internals) - 1))


def rohlf_stemminess(tree) -> float:
    """
    Rohlf stemminess: for each non-root internal node, its branch length
    over the shortest path from its parent to a tip below it; averaged over
    the non-root internal nodes.  The tree must be ultrametric (1% margin).
    """
    _require_ultrametric(tree, "Rohlf stemminess")
    arena = tree._arena
    order = _order(tree)
    internals = _internal_slots(tree, order)
    if len(internals) < 2:
        raise StructuralPrecondition(
            "Stemminess needs at least one non-root internal node."
        )
    bl = _lengths(tree)
    total = 0.0
    for s in internals:
        p = int(arena.parent[s])
        if p == ABSENT:
            continue
        hj = tree._handle(p).min_path_to_tips()
        if not hj:
            continue
        total += bl[s] / hj
    if not total:
        raise StructuralPrecondition(
            "Rohlf stemminess is undefined when all branches have length 0."
        )
    return float(total / (len(internals) - 1))


def gamma(tree) -> float:
    """
    Pybus & Harvey gamma statistic.

    Node times are the distinct root distances, sorted; ``g[k]`` is the
    gap between consecutive times (the first measured from 0), so ``g[k-1]``
    is the interval during which there were ``k`` lineages.  With ``n``
    terminals and tree length ``T``::

        s     = sum_{i=2}^{n-1} sum_{k=2}^{i} k * g[k-1]
        gamma = (s / (n - 2) - T / 2) / (T * sqrt(1 / (12 (n - 2))))
    """
    order = _order(tree)
    n = len(_terminal_slots(tree, order))
    if n < 3:
        raise StructuralPrecondition("Gamma requires at least three terminals.")
    tl = tree_length(tree)
    if tl == 0:
        raise StructuralPrecondition("Gamma is undefined for a tree of length 0.")

    times = np.unique(_root_distances(tree, order)[order])
    g = np.diff(np.concatenate([[0.0], times]))
    # tied node times leave some lineage counts without an interval
    if len(g) < n - 1:
        g = np.concatenate([g, np.zeros(n - 1 - len(g))])

    s = 0.0
    for i in range(2, n):
        for k in range(2, i + 1):
            s += k * g[k - 1]
    return float((s / (n - 2) - tl / 2) / (tl * math.sqrt(1 / (12 * (n - 2)))))


def branching_times(tree) -> List[Tuple]:
    """
    ``(internal node, time from origin)`` pairs ordered root to tips.
    The tree must be ultrametric (1% margin).
    """
    _require_ultrametric(tree, "Branching times")
    order = _order(tree)
    dist = _root_distances(tree, order)
    internals = _internal_slots(tree, order)
    internals.sort(key=lambda s: dist[s])
    return [(tree._handle(s), float(dist[s])) for s in internals]


def lineages_through_time(tree) -> List[Tuple]:
    """
    ``(internal node, time, lineages)`` triples: the number of lineages
    after each branching event, starting from one.
    """
    arena = tree._arena
    lineages = 1
    out = []
    for node, time in branching_times(tree):
        lineages += arena.n_children(node._slot) - 1
        out.append((node, time, lineages))
    return out


# ======================================================================== #
# Diversity allocation                                                      #
# ======================================================================== #


def fair_proportion(tree) -> Dict[str, float]:
    """
    Fair proportion index per terminal: each branch's length is shared
    equally among the terminals below it, and each terminal sums its
    shares along the path to the root.
    """
    arena = tree._arena
    order = _order(tree)
    counts = _terminal_counts(tree, order)
    bl = _lengths(tree)
    out = {}
    for s in _terminal_slots(tree, order):
        value = 0.0
        n = s
        while n != ABSENT:
            value += bl[n] / counts[n]
            n = int(arena.parent[n])
        out[_label(arena, s)] = float(value)
    return out


def equal_splits(tree) -> Dict[str, float]:
    """
    Equal splits index per terminal: walking from the terminal to the
    root, each branch length is divided by the product of the branching
    factors met so far.
    """
    arena = tree._arena
    order = _order(tree)
    bl = _lengths(tree)
    out = {}
    for s in _terminal_slots(tree, order):
        value = 0.0
        divisor = 1
        n = s
        while n != ABSENT:
            divisor *= arena.n_children(n) or 1
            value += bl[n] / divisor
            n = int(arena.parent[n])
        out[_label(arena, s)] = float(value)
    return out


def pendant_edge(tree) -> Dict[str, float]:
    """Each terminal's own branch length (None when absent)."""
    arena = tree._arena
    return {
        _label(arena, s): arena.length(s)
        for s in _terminal_slots(tree, _order(tree))
    }


def shapley(tree) -> Dict[str, float]:
    """
    Shapley value per terminal.

    For every non-root edge with ``v`` of the ``n`` terminals below it, a
    terminal below the edge receives ``(n - v) / (n v)`` of its length and
    every other terminal ``v / (n (n - v))``.  The two edges below a binary
    root act together as one unrooted edge.
    """
    arena = tree._arena
    order = _order(tree)
    tips = _terminal_slots(tree, order)
    n = len(tips)
    if n < 2:
        raise StructuralPrecondition("Shapley values need at least two terminals.")

    # Terminals of a clade are contiguous in left-to-right tip order.
    tip_index = {s: i for i, s in enumerate(_ltr_terminals(arena, order[0]))}
    first = np.full(arena.capacity, n, dtype=np.int64)
    counts = _terminal_counts(tree, order)
    for s in reversed(order):
        if _is_terminal(arena, s):
            first[s] = tip_index[s]
        p = int(arena.parent[s])
        if p != ABSENT and s != order[0]:
            first[p] = min(first[p], first[s])

    edges = [s for s in order[1:] if 0 < counts[s] < n]
    weights = np.zeros((n, len(edges)), dtype=np.float64)
    for j, s in enumerate(edges):
        v = int(counts[s])
        weights[:, j] = v / (n * (n - v))
        weights[first[s] : first[s] + v, j] = (n - v) / (n * v)
    values = weights @ _lengths(tree)[edges]

    ordered = _ltr_terminals(arena, order[0])
    return {_label(arena, s): float(values[tip_index[s]]) for s in ordered}


def _ltr_terminals(arena, root: int) -> List[int]:
    out = []
    stack = [root]
    while stack:
        s = stack.pop()
        kids = arena.children(s)
        if kids:
            stack.extend(reversed(kids))
        else:
            out.append(s)
    return out


# ======================================================================== #
# Tree comparison                                                           #
# ======================================================================== #


def _clades(tree) -> set:
    arena = tree._arena
    out = set()
    for s in _internal_slots(tree, _order(tree)):
        out.add(frozenset(arena.name[t] for t in _ltr_terminals(arena, s)))
    return out


def symdiff(tree, other) -> int:
    """
    Penny & Hendy symmetric difference: the number of clades (terminal
    name sets of internal nodes) found in only one of the two trees.
    Both trees should span the same terminal names.
    """
    return len(_clades(tree) ^ _clades(other))
