"""
_tree.py
========
A single rooted phylogenetic tree: an insertion-ordered set of member nodes
stored in a ``NodeArena``, with root discovery, a create/insert/delete
lifecycle and memoized whole-tree statistics.

Public API
----------
  Tree(newick_string=None, name=None)
      Constructor.  Parses *newick_string* when given, otherwise empty.

  Lifecycle      create_node, insert, delete, copy
  Structure      attach_child, detach_child, set_parent, set_branch_length,
                 set_score, get_root / root, is_rooted, check_integrity
  Topology       collapse, insert_node_below, reroot_below,
                 resolve_polytomies, prune_tips, keep_tips,
                 remove_unbranched_internals, ultrametricize, scale,
                 negative_to_zero, exponentiate, log_transform
  Queries        get_by_name, terminals, internals, mrca, is_monophyletic,
                 is_clade
  Statistics     tree_length, tree_height, colless_imbalance, gamma, ...
  Output         to_newick, visit_depth_first, visit_breadth_first,
                 visit_level_order

Generations
-----------
Every structural or attribute edit bumps ``tree.generation``.  The root
lookup, the name index and every statistics result are stamped with the
generation they were computed at and recomputed once it moves on.  List
and dict results are handed out as copies.

Membership
----------
A node made by ``create_node`` is unattached and not a member.  It joins
the tree by ``insert`` (as the root) or by being attached below a member.
Detaching a subtree takes it out of the tree again; it stays alive and can
be re-attached or re-inserted.
"""

import functools
import logging
from typing import Any, Iterable, Iterator, List, Optional, Union

import numpy as np

from ramus import _links, _newick, _queries, _statistics, _topology, _traversal
from ramus._arena import ABSENT, NodeArena
from ramus._exceptions import StructuralPrecondition
from ramus._node import Node
from ramus._utils import check_finite

logger = logging.getLogger(__name__)


def _memoized(method):
    """Cache a statistics method per argument tuple until the tree changes."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        key = (method.__name__, args, tuple(sorted(kwargs.items())))
        hit = self._memo.get(key)
        if hit is not None and hit[0] == self._generation:
            value = hit[1]
        else:
            value = method(self, *args, **kwargs)
            self._memo[key] = (self._generation, value)
        if isinstance(value, (list, dict)):
            return value.copy()
        return value

    return wrapper


class Tree:
    """
    A rooted phylogenetic tree of ``Node`` handles.

    Parameters
    ----------
    newick_string : str, optional
        Newick text to parse into the new tree.
    name : str, optional

    Attributes
    ----------
    name        : str | None
    generation  : int    Bumped by every edit.
    root        : Node | None

    Examples
    --------
    >>> t = Tree("((A:1,B:2):3,C:4);")
    >>> t.get_by_name("A").patristic_distance(t.get_by_name("C"))
    8.0
    >>> t.reroot_below(t.get_by_name("A")).name
    'root'
    """

    # ================================================================== #
    # Construction                                                         #
    # ================================================================== #

    def __init__(self, newick_string: Optional[str] = None, name: Optional[str] = None) -> None:
        self.name = name
        self._arena = NodeArena()
        self._members = {}
        self._unrooted = False
        self._default = False
        self._generation = 0
        self._root_cache = None
        self._name_index = None
        self._memo = {}

        if newick_string is not None:
            _newick.parse_newick(newick_string, self)

    @classmethod
    def from_newick(cls, newick_string: str, name: Optional[str] = None) -> "Tree":
        """Build a tree from Newick text."""
        return cls(newick_string, name=name)

    def _touch(self) -> None:
        self._generation += 1

    @property
    def generation(self) -> int:
        return self._generation

    def _handle(self, slot: int) -> Node:
        return Node(self, slot)

    def __repr__(self) -> str:
        return f"Tree(name={self.name!r}, nodes={len(self)})"

    # ================================================================== #
    # Lifecycle                                                            #
    # ================================================================== #

    def create_node(
        self,
        name: Optional[str] = None,
        branch_length: Optional[float] = None,
        score: Optional[float] = None,
        description: Optional[str] = None,
        taxon: Any = None,
        annotations: Optional[dict] = None,
    ) -> Node:
        """
        Allocate a new unattached node.  It is not a member until inserted
        or attached below a member.

        Raises
        ------
        BadNumber   *branch_length* or *score* is not a finite number.
        """
        bl = np.nan if branch_length is None else check_finite(branch_length, "branch length")
        sc = np.nan if score is None else check_finite(score, "score")

        arena = self._arena
        slot = arena.allocate()
        arena.name[slot] = None if name is None else str(name)
        arena.branch_length[slot] = bl
        arena.score[slot] = sc
        arena.description[slot] = description
        arena.taxon[slot] = taxon
        if annotations:
            arena.annotations[slot].update(annotations)
        return self._handle(slot)

    def insert(self, *nodes: Node) -> "Tree":
        """
        Make each node, with everything below it, a member of the tree.

        A parentless node becomes the root.  Nodes that are already members
        are left alone.

        Raises
        ------
        StructuralPrecondition
            A node hangs below a non-member, or the tree already has a
            different root.
        """
        arena = self._arena
        for node in nodes:
            s = _links.require_node(self, node)
            if arena.member[s]:
                continue
            if int(arena.parent[s]) != ABSENT:
                raise StructuralPrecondition(
                    f"{node!r} is attached below a non-member; insert its top node."
                )
            root = self.get_root()
            if root is not None:
                raise StructuralPrecondition(
                    f"Tree already has root {root!r}; attach {node!r} instead."
                )
            _links.set_membership(self, s, True)
            self._touch()
        return self

    def delete(self, node: Node, recursive: bool = False) -> None:
        """
        Detach *node* and free it; its handles become stale.

        With ``recursive=False`` its children survive as unattached
        subtrees outside the tree.
        """
        _links.release_node(self, node, recursive=recursive)

    def copy(self) -> "Tree":
        """
        Independent copy of the member nodes.  Annotation dicts are copied;
        taxon references are shared.
        """
        new = Tree(name=self.name)
        new._unrooted = self._unrooted
        new._default = self._default
        root = self.get_root()
        if root is None:
            return new

        arena = self._arena
        mapping = {}
        for s in arena.subtree(root._slot):
            node = new.create_node(
                name=arena.name[s],
                branch_length=arena.length(s),
                score=None if np.isnan(arena.score[s]) else float(arena.score[s]),
                description=arena.description[s],
                taxon=arena.taxon[s],
                annotations=arena.annotations[s],
            )
            if s == root._slot:
                new.insert(node)
            else:
                new.attach_child(mapping[int(arena.parent[s])], node)
            mapping[s] = node
        return new

    # ---- container protocol ---- #

    def __len__(self) -> int:
        return len(self._members)

    def __iter__(self) -> Iterator[Node]:
        return iter([self._handle(s) for s in self._members])

    def __contains__(self, node) -> bool:
        return (
            isinstance(node, Node)
            and node._tree is self
            and node.is_valid
            and node._slot in self._members
        )

    def nodes(self) -> List[Node]:
        """Member nodes in insertion order."""
        return list(self)

    # ================================================================== #
    # Link layer                                                           #
    # ================================================================== #

    def attach_child(self, parent: Node, child: Node, index: Optional[int] = None) -> Node:
        """See ``ramus._links.attach_child``."""
        return _links.attach_child(self, parent, child, index)

    def detach_child(self, parent: Node, child: Node) -> Node:
        """See ``ramus._links.detach_child``."""
        return _links.detach_child(self, parent, child)

    def set_parent(self, node: Node, parent: Optional[Node]) -> None:
        _links.set_parent(self, node, parent)

    def set_branch_length(self, node: Node, value: Optional[float]) -> None:
        _links.set_branch_length(self, node, value)

    def set_score(self, node: Node, value: Optional[float]) -> None:
        _links.set_score(self, node, value)

    # ================================================================== #
    # Root and flags                                                       #
    # ================================================================== #

    def get_root(self) -> Optional[Node]:
        """The parentless member, or None for an empty tree."""
        if self._root_cache is not None and self._root_cache[0] == self._generation:
            slot = self._root_cache[1]
        else:
            parent = self._arena.parent
            slot = next((s for s in self._members if parent[s] == ABSENT), ABSENT)
            self._root_cache = (self._generation, slot)
        return None if slot == ABSENT else self._handle(slot)

    @property
    def root(self) -> Optional[Node]:
        return self.get_root()

    def is_rooted(self) -> bool:
        """
        False when marked unrooted; otherwise True unless the root has
        more than two children.
        """
        if self._unrooted:
            return False
        root = self.get_root()
        if root is not None and len(root.children()) > 2:
            return False
        return True

    def set_as_unrooted(self) -> "Tree":
        self._unrooted = True
        return self

    def set_as_rooted(self) -> "Tree":
        self._unrooted = False
        return self

    def is_default(self) -> bool:
        return self._default

    def set_as_default(self) -> "Tree":
        self._default = True
        return self

    def set_not_default(self) -> "Tree":
        self._default = False
        return self

    def check_integrity(self) -> None:
        """
        Verify the structural invariants; raise ``StructuralPrecondition``
        describing the first violation found.

        1. no node is its own ancestor;
        2. sibling chains are symmetric and bounded by first/last child;
        3. every chained child names the chain owner as its parent;
        4. there is at most one parentless member;
        5. parents and children of members are members.
        """
        arena = self._arena
        members = self._members
        limit = len(members)

        parentless = [s for s in members if arena.parent[s] == ABSENT]
        if len(parentless) > 1:
            raise StructuralPrecondition(
                f"{len(parentless)} parentless members; expected at most one."
            )

        for s in members:
            if not arena.live[s] or not arena.member[s]:
                raise StructuralPrecondition(f"Slot {s} is listed but not a live member.")

            p = int(arena.parent[s])
            steps = 0
            while p != ABSENT:
                if p == s or steps > limit:
                    raise StructuralPrecondition(f"{self._handle(s)!r} is its own ancestor.")
                p = int(arena.parent[p])
                steps += 1

            p = int(arena.parent[s])
            if p != ABSENT and p not in members:
                raise StructuralPrecondition(
                    f"{self._handle(s)!r} has a parent outside the tree."
                )

            prev = ABSENT
            c = int(arena.first_child[s])
            count = 0
            while c != ABSENT:
                count += 1
                if count > limit:
                    raise StructuralPrecondition(
                        f"Child chain of {self._handle(s)!r} does not terminate."
                    )
                if c not in members:
                    raise StructuralPrecondition(
                        f"{self._handle(s)!r} has a child outside the tree."
                    )
                if int(arena.parent[c]) != s:
                    raise StructuralPrecondition(
                        f"Child {self._handle(c)!r} does not point back to {self._handle(s)!r}."
                    )
                if int(arena.previous_sibling[c]) != prev:
                    raise StructuralPrecondition(
                        f"Sibling chain below {self._handle(s)!r} is not symmetric."
                    )
                prev = c
                c = int(arena.next_sibling[c])
            if int(arena.last_child[s]) != prev:
                raise StructuralPrecondition(
                    f"last_child of {self._handle(s)!r} is not the end of its chain."
                )

    # ================================================================== #
    # Lookups                                                              #
    # ================================================================== #

    def get_by_name(self, name: str) -> Node:
        """
        Return the member called *name* (the first in insertion order when
        names repeat).

        Raises
        ------
        KeyError   if no member has that name.
        """
        if self._name_index is None or self._name_index[0] != self._generation:
            index = {}
            for s in self._members:
                label = self._arena.name[s]
                if label is not None and label not in index:
                    index[label] = s
            self._name_index = (self._generation, index)
        index = self._name_index[1]
        if name not in index:
            raise KeyError(f"No node with name '{name}' found in tree.")
        return self._handle(index[name])

    def _resolve(self, node: Union[Node, str]) -> Node:
        if isinstance(node, str):
            return self.get_by_name(node)
        _links.require_node(self, node)
        return node

    def terminals(self) -> List[Node]:
        """Terminal members, left to right below the root."""
        root = self.get_root()
        return [] if root is None else root.terminals()

    def internals(self) -> List[Node]:
        """Internal members, the root first, then as ``root.internals()``."""
        root = self.get_root()
        if root is None or root.is_terminal():
            return []
        return [root] + root.internals()

    def mrca(self, nodes: Iterable[Union[Node, str]]) -> Node:
        """
        Deepest node that has all of *nodes* at or below it.  A node counts
        as its own ancestor, so the mrca of a single node is the node.
        """
        resolved = [self._resolve(n) for n in nodes]
        if not resolved:
            raise ValueError("mrca needs at least one node.")
        top = resolved[0]
        for other in resolved[1:]:
            top = _queries.common_ancestor(top, other)
        return top

    def is_monophyletic(self, nodes: Iterable[Union[Node, str]], outgroup: Union[Node, str]) -> bool:
        """
        True unless the common ancestor of some pair in *nodes* is also an
        ancestor of *outgroup*.
        """
        resolved = [self._resolve(n) for n in nodes]
        outgroup = self._resolve(outgroup)
        for i, a in enumerate(resolved):
            for b in resolved[i + 1 :]:
                if _queries.common_ancestor(a, b).is_ancestor_of(outgroup):
                    return False
        return True

    def is_clade(self, tips: Iterable[Union[Node, str]]) -> bool:
        """True when *tips* are exactly the terminals below their mrca."""
        resolved = {self._resolve(n) for n in tips}
        if not resolved:
            return False
        return len(self.mrca(resolved).terminals()) == len(resolved)

    # ================================================================== #
    # Topology                                                             #
    # ================================================================== #

    def collapse(self, node: Union[Node, str], strict: bool = False) -> Optional[Node]:
        return _topology.collapse(self._resolve(node), strict=strict)

    def insert_node_below(self, node: Union[Node, str], **attributes) -> Node:
        return _topology.insert_node_below(self._resolve(node), **attributes)

    def reroot_below(self, node: Union[Node, str], new_root_name: Optional[str] = "root") -> Optional[Node]:
        return _topology.reroot_below(self._resolve(node), new_root_name)

    def resolve_polytomies(self, rng=None) -> int:
        return _topology.resolve_polytomies(self, rng=rng)

    def remove_unbranched_internals(self) -> int:
        return _topology.remove_unbranched_internals(self)

    def prune_tips(self, names: Iterable[str]) -> int:
        return _topology.prune_tips(self, names)

    def keep_tips(self, names: Iterable[str]) -> int:
        return _topology.keep_tips(self, names)

    def ultrametricize(self) -> "Tree":
        _topology.ultrametricize(self)
        return self

    def scale(self, height: float) -> "Tree":
        _topology.scale(self, height)
        return self

    def negative_to_zero(self) -> "Tree":
        _topology.negative_to_zero(self)
        return self

    def exponentiate(self, power: float) -> "Tree":
        _topology.exponentiate(self, power)
        return self

    def log_transform(self, base: float) -> "Tree":
        _topology.log_transform(self, base)
        return self

    # ================================================================== #
    # Statistics (memoized)                                                #
    # ================================================================== #

    @_memoized
    def number_of_nodes(self) -> int:
        return _statistics.number_of_nodes(self)

    @_memoized
    def number_of_terminals(self) -> int:
        return _statistics.number_of_terminals(self)

    @_memoized
    def number_of_internals(self) -> int:
        return _statistics.number_of_internals(self)

    @_memoized
    def tree_length(self) -> float:
        return _statistics.tree_length(self)

    @_memoized
    def tree_height(self) -> float:
        return _statistics.tree_height(self)

    @_memoized
    def total_paths(self) -> float:
        return _statistics.total_paths(self)

    @_memoized
    def redundancy(self) -> float:
        return _statistics.redundancy(self)

    @_memoized
    def resolution(self) -> float:
        return _statistics.resolution(self)

    @_memoized
    def tallest_tip(self) -> Node:
        return _statistics.tallest_tip(self)

    @_memoized
    def is_binary(self) -> bool:
        return _statistics.is_binary(self)

    @_memoized
    def is_cladogram(self) -> bool:
        return _statistics.is_cladogram(self)

    @_memoized
    def is_ultrametric(self, margin: float = 0.0) -> bool:
        return _statistics.is_ultrametric(self, margin)

    @_memoized
    def colless_imbalance(self) -> float:
        return _statistics.colless_imbalance(self)

    @_memoized
    def i2_imbalance(self) -> float:
        return _statistics.i2_imbalance(self)

    @_memoized
    def fiala_stemminess(self) -> float:
        return _statistics.fiala_stemminess(self)

    @_memoized
    def rohlf_stemminess(self) -> float:
        return _statistics.rohlf_stemminess(self)

    @_memoized
    def gamma(self) -> float:
        return _statistics.gamma(self)

    @_memoized
    def branching_times(self) -> list:
        return _statistics.branching_times(self)

    @_memoized
    def lineages_through_time(self) -> list:
        return _statistics.lineages_through_time(self)

    @_memoized
    def fair_proportion(self) -> dict:
        return _statistics.fair_proportion(self)

    @_memoized
    def equal_splits(self) -> dict:
        return _statistics.equal_splits(self)

    @_memoized
    def pendant_edge(self) -> dict:
        return _statistics.pendant_edge(self)

    @_memoized
    def shapley(self) -> dict:
        return _statistics.shapley(self)

    def symdiff(self, other: "Tree") -> int:
        """Symmetric difference (Penny & Hendy) between this tree and *other*."""
        return _statistics.symdiff(self, other)

    # ================================================================== #
    # Traversal and output                                                 #
    # ================================================================== #

    def visit_depth_first(self, **hooks) -> None:
        root = self.get_root()
        if root is not None:
            _traversal.visit_depth_first(root, **hooks)

    def visit_breadth_first(self, **hooks) -> None:
        root = self.get_root()
        if root is not None:
            _traversal.visit_breadth_first(root, **hooks)

    def visit_level_order(self, callback) -> None:
        root = self.get_root()
        if root is not None:
            _traversal.visit_level_order(root, callback)

    def to_newick(self, **options) -> str:
        """
        Newick string of the whole tree; ``';'`` for an empty tree.
        Keyword options are those of ``ramus.to_newick``.
        """
        root = self.get_root()
        if root is None:
            return ";"
        return _newick.to_newick(root, **options)
