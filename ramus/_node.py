"""
_node.py
========
``Node``: a lightweight handle onto one slot of a Tree's node arena.

A handle stores ``(tree, slot, generation)``.  Reading or writing through a
handle whose node has been deleted raises ``StaleNodeError``; two handles
compare equal when they point at the same live node.

Structural links (``parent``, ``first_child``, ...) are read-only here.
They change only through the link layer (``Tree.attach_child``,
``Tree.detach_child``, ``Tree.set_parent``) or the topology algorithms
built on it.  Attribute setters route through the owning tree so that every
edit bumps ``tree.generation``.
"""

from typing import Any, Optional

from ramus._arena import ABSENT
from ramus._exceptions import StaleNodeError
from ramus import _newick, _queries, _traversal


class Node:
    """
    Handle onto a tree node.

    Attributes
    ----------
    id             : int            Process-unique identifier.
    name           : str | None
    branch_length  : float | None   Absent is distinct from 0.0.
    score          : float | None
    description    : str | None
    annotations    : dict           Live, insertion-ordered key/value map.
    taxon          : Any | None     Opaque cross-reference; not owned.
    parent, first_child, last_child, next_sibling, previous_sibling
                   : Node | None    Read-only structural links.
    tree           : Tree | None    Owning tree while the node is a member.
    """

    __slots__ = ("_tree", "_slot", "_generation")

    def __init__(self, tree, slot: int) -> None:
        self._tree = tree
        self._slot = slot
        self._generation = int(tree._arena.generation[slot])

    # ================================================================== #
    # Handle validity                                                      #
    # ================================================================== #

    def _arena(self):
        arena = self._tree._arena
        if not arena.is_current(self._slot, self._generation):
            raise StaleNodeError(
                f"Node handle for slot {self._slot} is stale; the node was deleted."
            )
        return arena

    def _link(self, field: str) -> Optional["Node"]:
        slot = int(getattr(self._arena(), field)[self._slot])
        return None if slot == ABSENT else self._tree._handle(slot)

    @property
    def is_valid(self) -> bool:
        """False once the node has been deleted."""
        return self._tree._arena.is_current(self._slot, self._generation)

    def __eq__(self, other) -> bool:
        return (
            isinstance(other, Node)
            and other._tree is self._tree
            and other._slot == self._slot
            and other._generation == self._generation
        )

    def __ne__(self, other) -> bool:
        return not self.__eq__(other)

    def __hash__(self) -> int:
        return hash((id(self._tree), self._slot, self._generation))

    def __repr__(self) -> str:
        if not self.is_valid:
            return f"<stale Node slot={self._slot}>"
        return f"Node(id={self.id}, name={self.name!r})"

    # ================================================================== #
    # Attributes                                                           #
    # ================================================================== #

    @property
    def id(self) -> int:
        return int(self._arena().node_id[self._slot])

    @property
    def name(self) -> Optional[str]:
        return self._arena().name[self._slot]

    @name.setter
    def name(self, value: Optional[str]) -> None:
        self._arena().name[self._slot] = None if value is None else str(value)
        self._tree._touch()

    @property
    def internal_name(self) -> str:
        """The name, or an identifier-derived fallback when unnamed."""
        name = self.name
        return name if name is not None else f"node{self.id}"

    @property
    def branch_length(self) -> Optional[float]:
        return self._arena().length(self._slot)

    @branch_length.setter
    def branch_length(self, value: Optional[float]) -> None:
        self._tree.set_branch_length(self, value)

    @property
    def score(self) -> Optional[float]:
        value = float(self._arena().score[self._slot])
        return None if value != value else value

    @score.setter
    def score(self, value: Optional[float]) -> None:
        self._tree.set_score(self, value)

    @property
    def description(self) -> Optional[str]:
        return self._arena().description[self._slot]

    @description.setter
    def description(self, value: Optional[str]) -> None:
        self._arena().description[self._slot] = value
        self._tree._touch()

    @property
    def annotations(self) -> dict:
        return self._arena().annotations[self._slot]

    def get_annotation(self, key: str, default: Any = None) -> Any:
        return self.annotations.get(key, default)

    def set_annotation(self, key: str, value: Any) -> None:
        self.annotations[key] = value
        self._tree._touch()

    @property
    def taxon(self) -> Any:
        return self._arena().taxon[self._slot]

    @taxon.setter
    def taxon(self, value: Any) -> None:
        self._arena().taxon[self._slot] = value
        self._tree._touch()

    # ================================================================== #
    # Structure                                                            #
    # ================================================================== #

    @property
    def parent(self) -> Optional["Node"]:
        return self._link("parent")

    @property
    def first_child(self) -> Optional["Node"]:
        return self._link("first_child")

    @property
    def last_child(self) -> Optional["Node"]:
        return self._link("last_child")

    @property
    def next_sibling(self) -> Optional["Node"]:
        return self._link("next_sibling")

    @property
    def previous_sibling(self) -> Optional["Node"]:
        return self._link("previous_sibling")

    @property
    def tree(self):
        """The owning Tree while this node is a member, else None."""
        return self._tree if self._arena().member[self._slot] else None

    def is_terminal(self) -> bool:
        return int(self._arena().first_child[self._slot]) == ABSENT

    def is_internal(self) -> bool:
        return not self.is_terminal()

    def is_root(self) -> bool:
        """True for a parentless member node."""
        arena = self._arena()
        return bool(arena.member[self._slot]) and int(arena.parent[self._slot]) == ABSENT

    def is_first(self) -> bool:
        arena = self._arena()
        return (
            int(arena.parent[self._slot]) != ABSENT
            and int(arena.previous_sibling[self._slot]) == ABSENT
        )

    def is_last(self) -> bool:
        arena = self._arena()
        return (
            int(arena.parent[self._slot]) != ABSENT
            and int(arena.next_sibling[self._slot]) == ABSENT
        )

    # ---- editing shortcuts ---- #

    def attach_child(self, child: "Node", index: Optional[int] = None) -> "Node":
        """Shortcut for ``tree.attach_child(self, child, index)``."""
        return self._tree.attach_child(self, child, index)

    def detach_child(self, child: "Node") -> "Node":
        """Shortcut for ``tree.detach_child(self, child)``."""
        return self._tree.detach_child(self, child)

    # ================================================================== #
    # Queries                                                              #
    # ================================================================== #

    def children(self) -> list:
        return _queries.children(self)

    def ancestors(self):
        return _queries.ancestors(self)

    def descendants(self) -> list:
        return _queries.descendants(self)

    def sisters(self) -> list:
        return _queries.sisters(self)

    def terminals(self) -> list:
        return _queries.terminals(self)

    def internals(self) -> list:
        return _queries.internals(self)

    def leftmost_terminal(self) -> "Node":
        return _queries.leftmost_terminal(self)

    def rightmost_terminal(self) -> "Node":
        return _queries.rightmost_terminal(self)

    def is_descendant_of(self, other: "Node") -> bool:
        return _queries.is_descendant_of(self, other)

    def is_ancestor_of(self, other: "Node") -> bool:
        return _queries.is_ancestor_of(self, other)

    def is_child_of(self, other: "Node") -> bool:
        return _queries.is_child_of(self, other)

    def is_sister_of(self, other: "Node") -> bool:
        return _queries.is_sister_of(self, other)

    def is_outgroup_of(self, ingroup) -> bool:
        return _queries.is_outgroup_of(self, ingroup)

    def mrca(self, other: "Node") -> Optional["Node"]:
        return _queries.most_recent_common_ancestor(self, other)

    def path_to_root(self) -> float:
        return _queries.path_to_root(self)

    def nodes_to_root(self) -> int:
        return _queries.nodes_to_root(self)

    def patristic_distance(self, other: "Node") -> float:
        return _queries.patristic_distance(self, other)

    def nodal_distance(self, other: "Node") -> int:
        return _queries.nodal_distance(self, other)

    def max_nodes_to_tips(self) -> int:
        return _queries.max_nodes_to_tips(self)

    def min_nodes_to_tips(self) -> int:
        return _queries.min_nodes_to_tips(self)

    def max_path_to_tips(self) -> float:
        return _queries.max_path_to_tips(self)

    def min_path_to_tips(self) -> float:
        return _queries.min_path_to_tips(self)

    # ---- traversal / output ---- #

    def visit_depth_first(self, **hooks) -> None:
        _traversal.visit_depth_first(self, **hooks)

    def visit_breadth_first(self, **hooks) -> None:
        _traversal.visit_breadth_first(self, **hooks)

    def visit_level_order(self, callback) -> None:
        _traversal.visit_level_order(self, callback)

    def to_newick(self, **options) -> str:
        """Newick string of the subtree below this node; see ``to_newick``."""
        return _newick.to_newick(self, **options)
