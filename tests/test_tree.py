"""
tests/test_tree.py
==================
Tree containers, flags, lookups and copies, plus the Node handle itself.

Tree fixtures
-------------
  small_3leaf.tree
      ((A:1,B:2):3,C:4);

      Insertion order after parsing: R, AB, A, B, C (R and AB unnamed).

Trees that are edited are built inside the test.
"""

import os
import sys
from types import SimpleNamespace

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from ramus import LinkTypeError, Node, StaleNodeError, Tree

_TREES_DIR = os.path.join(os.path.dirname(__file__), "trees")


def load_tree(filename: str) -> Tree:
    """Load a Newick string from tests/trees/ and build a Tree."""
    with open(os.path.join(_TREES_DIR, filename)) as fh:
        return Tree(fh.read().strip())


@pytest.fixture(scope="module")
def small():
    return load_tree("small_3leaf.tree")


# ======================================================================== #
# Construction and container protocol                                       #
# ======================================================================== #


class TestContainer:
    def test_empty_tree(self):
        t = Tree()
        assert len(t) == 0
        assert t.root is None
        assert list(t) == []
        assert t.terminals() == []
        assert t.internals() == []

    def test_from_newick(self):
        t = Tree.from_newick("(A,B);", name="pair")
        assert t.name == "pair"
        assert len(t) == 3

    def test_repr(self, small):
        assert repr(small) == "Tree(name=None, nodes=5)"

    def test_insertion_order(self, small):
        assert [n.name for n in small.nodes()] == [None, None, "A", "B", "C"]
        assert list(small) == small.nodes()

    def test_contains(self, small):
        assert small.get_by_name("A") in small
        assert "A" not in small
        assert Tree("(A,B);").get_by_name("A") not in small

    def test_created_node_is_not_a_member(self):
        t = Tree("(A,B);")
        loose = t.create_node(name="L")
        assert loose not in t
        assert len(t) == 3

    def test_iteration_is_a_snapshot(self):
        t = Tree("((A,B),C);")
        for node in t:
            if node.name == "A":
                t.delete(node)
        assert len(t) == 4

    def test_terminals_and_internals(self):
        t = Tree("((A,B)X,(C,D)Y)R;")
        assert [n.name for n in t.terminals()] == ["A", "B", "C", "D"]
        assert [n.name for n in t.internals()] == ["R", "X", "Y"]
        assert Tree("A;").internals() == []

    def test_check_integrity_passes(self, small):
        small.check_integrity()


# ======================================================================== #
# Root and flags                                                            #
# ======================================================================== #


class TestRootAndFlags:
    def test_root_follows_edits(self):
        t = Tree("((A,B)X,C)R;")
        assert t.root.name == "R"
        t.reroot_below("A")
        assert t.root.name == "root"

    def test_deleting_root_empties_tree(self):
        t = Tree("(A,B)R;")
        a = t.get_by_name("A")
        t.delete(t.root)
        assert t.root is None
        assert len(t) == 0
        assert a.is_valid and a.tree is None

    def test_insert_into_empty_tree(self):
        t = Tree()
        top = t.create_node(name="top")
        t.attach_child(top, t.create_node(name="leaf"))
        assert t.insert(top) is t
        assert t.root == top
        assert len(t) == 2
        t.insert(top)
        assert len(t) == 2

    def test_is_rooted(self):
        assert Tree("((A,B),C);").is_rooted()
        assert not Tree("(A,B,C);").is_rooted()
        t = Tree("((A,B),C);")
        assert t.set_as_unrooted() is t
        assert not t.is_rooted()
        t.set_as_rooted()
        assert t.is_rooted()

    def test_default_flag(self):
        t = Tree("(A,B);")
        assert not t.is_default()
        assert t.set_as_default().is_default()
        assert not t.set_not_default().is_default()


# ======================================================================== #
# Lookups                                                                   #
# ======================================================================== #


class TestLookup:
    def test_get_by_name(self, small):
        assert small.get_by_name("A").branch_length == 1.0

    def test_missing_name(self, small):
        with pytest.raises(KeyError, match="Z"):
            small.get_by_name("Z")

    def test_first_match_wins(self):
        t = Tree("((A,B),A);")
        assert t.get_by_name("A").parent != t.root

    def test_index_follows_renames(self):
        t = Tree("(A,B);")
        t.get_by_name("A").name = "Z"
        assert t.get_by_name("Z").is_first()
        with pytest.raises(KeyError):
            t.get_by_name("A")

    def test_detached_nodes_not_found(self):
        t = Tree("((A,B)X,C);")
        x = t.get_by_name("X")
        t.detach_child(t.root, x)
        with pytest.raises(KeyError):
            t.get_by_name("A")


# ======================================================================== #
# Copies                                                                    #
# ======================================================================== #


class TestCopy:
    def test_same_text(self, small):
        dup = small.copy()
        assert dup.to_newick() == small.to_newick()
        assert dup is not small
        dup.check_integrity()

    def test_independent_structure(self):
        t = Tree("((A:1,B:2):3,C:4);")
        dup = t.copy()
        dup.prune_tips(["A"])
        dup.get_by_name("C").branch_length = 10.0
        assert t.to_newick(length_format="{:g}") == "((A:1,B:2):3,C:4);"
        assert t.get_by_name("A") not in dup

    def test_attributes(self):
        t = Tree("((A,B),C);", name="orig")
        marker = SimpleNamespace(name="Homo")
        a = t.get_by_name("A")
        a.taxon = marker
        a.score = 0.9
        a.description = "first tip"
        a.set_annotation("S", "human")
        t.set_as_unrooted()

        dup = t.copy()
        da = dup.get_by_name("A")
        assert dup.name == "orig"
        assert not dup.is_rooted()
        assert da.taxon is marker
        assert da.score == 0.9
        assert da.description == "first tip"
        da.set_annotation("S", "chimp")
        assert a.get_annotation("S") == "human"

    def test_empty(self):
        assert len(Tree().copy()) == 0


# ======================================================================== #
# Node handles                                                              #
# ======================================================================== #


class TestNode:
    def test_equality_and_hash(self, small):
        a1 = small.get_by_name("A")
        a2 = small.get_by_name("A")
        assert a1 is not a2
        assert a1 == a2
        assert hash(a1) == hash(a2)
        assert len({a1, a2, small.get_by_name("B")}) == 2

    def test_other_tree_never_equal(self, small):
        twin = load_tree("small_3leaf.tree")
        assert twin.get_by_name("A") != small.get_by_name("A")

    def test_repr(self):
        t = Tree("(A,B);")
        a = t.get_by_name("A")
        assert repr(a) == f"Node(id={a.id}, name='A')"
        t.delete(a)
        assert repr(a).startswith("<stale Node")

    def test_is_node(self, small):
        assert isinstance(small.root, Node)

    def test_internal_name_fallback(self, small):
        r = small.root
        assert r.name is None
        assert r.internal_name == f"node{r.id}"
        assert small.get_by_name("A").internal_name == "A"

    def test_kinds(self, small):
        assert small.root.is_root() and small.root.is_internal()
        assert small.get_by_name("C").is_terminal()

    def test_annotations(self):
        t = Tree("(A,B);")
        a = t.get_by_name("A")
        assert a.get_annotation("S", "none") == "none"
        a.set_annotation("S", "human")
        assert a.annotations == {"S": "human"}

    def test_create_node_copies_annotations(self):
        t = Tree()
        source = {"S": "human"}
        node = t.create_node(name="A", annotations=source)
        source["S"] = "chimp"
        assert node.get_annotation("S") == "human"

    @pytest.mark.parametrize(
        "attribute,value",
        [
            ("name", "Z"),
            ("branch_length", 2.5),
            ("score", 0.5),
            ("description", "text"),
            ("taxon", SimpleNamespace(name="Homo")),
        ],
    )
    def test_setters_bump_generation(self, attribute, value):
        t = Tree("(A,B);")
        a = t.get_by_name("A")
        before = t.generation
        setattr(a, attribute, value)
        assert t.generation > before
        assert getattr(a, attribute) == value

    def test_set_annotation_bumps_generation(self):
        t = Tree("(A,B);")
        before = t.generation
        t.get_by_name("A").set_annotation("k", 1)
        assert t.generation > before

    def test_stale_handle_rejects_writes(self):
        t = Tree("(A,B);")
        a = t.get_by_name("A")
        t.delete(a)
        with pytest.raises(StaleNodeError):
            a.name = "again"
        with pytest.raises(StaleNodeError):
            a.branch_length = 1.0

    def test_stale_is_link_type_error(self):
        assert issubclass(StaleNodeError, LinkTypeError)
