"""
tests/test_topology.py
======================
Topology edits: collapse, insert_node_below, reroot_below, polytomy
resolution, pruning, splicing of unbranched nodes and branch-length
transforms.

Every test edits its tree, so trees are built per test.

Tree fixtures
-------------
  small_3leaf.tree        ((A:1,B:2):3,C:4);
  balanced_4leaf.tree     ((A:1,B:1):1,(C:1,D:1):1);
  caterpillar_5leaf.tree  (A:1,(B:1,(C:1,(D:1,E:1):1):1):1);
  polytomy_6leaf.tree     (A:1,B:1,C:1,(D:1,E:1,F:1):1);
"""

import itertools
import logging
import math
import os
import sys

import pytest
from hypothesis import given, strategies as st

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from ramus import BadNumber, StructuralPrecondition, Tree, use_rng

_TREES_DIR = os.path.join(os.path.dirname(__file__), "trees")


def load_tree(filename: str) -> Tree:
    """Load a Newick string from tests/trees/ and build a Tree."""
    with open(os.path.join(_TREES_DIR, filename)) as fh:
        return Tree(fh.read().strip())


def compact(tree: Tree, **options) -> str:
    return tree.to_newick(length_format="{:g}", **options)


def tip_distances(tree: Tree) -> dict:
    tips = tree.terminals()
    return {
        (a.name, b.name): a.patristic_distance(b)
        for a, b in itertools.combinations(tips, 2)
    }


def assert_same_distances(before: dict, after: dict):
    assert set(before) | {(b, a) for a, b in before} >= set(after)
    for (a, b), d in after.items():
        expected = before.get((a, b), before.get((b, a)))
        assert math.isclose(d, expected, abs_tol=1e-9), (a, b, d, expected)


# ======================================================================== #
# collapse                                                                  #
# ======================================================================== #


class TestCollapse:
    def test_children_take_node_place(self):
        t = load_tree("balanced_4leaf.tree")
        ab = t.get_by_name("A").parent
        parent = t.collapse(ab)
        assert parent == t.root
        assert compact(t) == "(A:2,B:2,(C:1,D:1):1);"
        assert not ab.is_valid
        t.check_integrity()

    def test_conserves_root_paths(self):
        t = load_tree("caterpillar_5leaf.tree")
        before = {n.name: n.path_to_root() for n in t.terminals()}
        t.collapse(t.get_by_name("D").parent.parent)
        after = {n.name: n.path_to_root() for n in t.terminals()}
        assert before == after

    def test_absent_lengths(self):
        t = Tree("((A:1,B)X:2,(C,D)Y,E);")
        t.collapse("X")
        t.collapse("Y")
        assert compact(t) == "(A:3,B:2,C,D,E);"

    def test_root_and_terminal_are_noops(self):
        t = load_tree("small_3leaf.tree")
        before = compact(t)
        assert t.collapse(t.root) is None
        assert t.collapse("A") is None
        assert compact(t) == before

    def test_strict(self):
        t = load_tree("small_3leaf.tree")
        with pytest.raises(StructuralPrecondition, match="root"):
            t.collapse(t.root, strict=True)
        with pytest.raises(StructuralPrecondition, match="terminal"):
            t.collapse("A", strict=True)


# ======================================================================== #
# insert_node_below                                                         #
# ======================================================================== #


class TestInsertNodeBelow:
    def test_new_node_takes_position(self):
        t = load_tree("small_3leaf.tree")
        new = t.insert_node_below("B", name="N")
        assert compact(t, internal_labels=True) == "((A:1,(B:2)N):3,C:4);"
        assert new.branch_length is None
        assert new.tree is t
        t.check_integrity()

    def test_attributes_passed_through(self):
        t = load_tree("small_3leaf.tree")
        new = t.insert_node_below("A", branch_length=0.5)
        assert new.branch_length == 0.5
        assert t.get_by_name("A").branch_length == 1.0

    def test_root_raises(self):
        t = load_tree("small_3leaf.tree")
        with pytest.raises(StructuralPrecondition):
            t.insert_node_below(t.root)


# ======================================================================== #
# reroot_below                                                              #
# ======================================================================== #


class TestReroot:
    def test_grandchild_of_root(self):
        t = load_tree("small_3leaf.tree")
        before = tip_distances(t)
        a = t.get_by_name("A")
        new_root = t.reroot_below(a)
        assert new_root == t.root
        assert new_root.name == "root"
        assert new_root.branch_length is None
        assert compact(t) == "(A:1,(B:2,C:7));"
        assert_same_distances(before, tip_distances(t))
        t.check_integrity()

    def test_second_call_is_noop(self):
        t = load_tree("small_3leaf.tree")
        a = t.get_by_name("A")
        t.reroot_below(a)
        snapshot = compact(t)
        assert t.reroot_below(a) is None
        assert compact(t) == snapshot

    def test_child_of_root_is_noop(self):
        t = load_tree("small_3leaf.tree")
        assert t.reroot_below("C") is None

    def test_root_raises(self):
        t = load_tree("small_3leaf.tree")
        with pytest.raises(StructuralPrecondition, match="root"):
            t.reroot_below(t.root)

    def test_deep_node_preserves_distances(self):
        t = load_tree("caterpillar_5leaf.tree")
        before = tip_distances(t)
        t.reroot_below("E", new_root_name="R2")
        assert t.root.name == "R2"
        assert t.root.children()[0].name == "E"
        assert_same_distances(before, tip_distances(t))
        assert len(t.terminals()) == 5
        t.check_integrity()

    def test_old_root_with_many_children_is_kept(self):
        t = Tree("((A:1,B:1)X:1,C:1,D:1)R;")
        t.reroot_below("A")
        assert t.get_by_name("R").is_valid
        assert len(t.get_by_name("R").children()) == 2
        t.check_integrity()

    def test_internal_node(self):
        t = Tree("(((A:1,B:1)X:1,C:1)Y:1,D:1);")
        before = tip_distances(t)
        t.reroot_below("X")
        assert_same_distances(before, tip_distances(t))
        assert t.is_clade(["A", "B"])


@st.composite
def random_trees(draw):
    """Random binary tree with 3..9 tips built through the public API."""
    lengths = st.integers(0, 9).map(float)
    n = draw(st.integers(3, 9))
    tree = Tree()
    nodes = [tree.create_node(name=f"t{i}", branch_length=draw(lengths)) for i in range(n)]
    while len(nodes) > 1:
        a = nodes.pop(draw(st.integers(0, len(nodes) - 1)))
        b = nodes.pop(draw(st.integers(0, len(nodes) - 1)))
        parent = tree.create_node(branch_length=draw(lengths))
        tree.attach_child(parent, a)
        tree.attach_child(parent, b)
        nodes.append(parent)
    tree.insert(nodes[0])
    return tree


@pytest.mark.property
class TestRerootProperties:
    @given(random_trees(), st.integers(0, 100))
    def test_tip_distances_preserved(self, tree, pick):
        candidates = [n for n in tree if n.parent is not None]
        node = candidates[pick % len(candidates)]
        before = tip_distances(tree)
        result = tree.reroot_below(node)
        if result is not None:
            assert tree.root == result
        assert_same_distances(before, tip_distances(tree))
        tree.check_integrity()

    @given(random_trees(), st.integers(0, 100))
    def test_reroot_twice_is_stable(self, tree, pick):
        candidates = [n for n in tree if n.parent is not None]
        node = candidates[pick % len(candidates)]
        tree.reroot_below(node)
        snapshot = tree.to_newick()
        assert tree.reroot_below(node) is None
        assert tree.to_newick() == snapshot


# ======================================================================== #
# resolve_polytomies                                                        #
# ======================================================================== #


class TestResolvePolytomies:
    def test_seeded_resolution_is_binary(self):
        t = load_tree("polytomy_6leaf.tree")
        length = t.tree_length()
        created = t.resolve_polytomies(rng=42)
        assert created == 3
        assert t.is_binary()
        assert t.tree_length() == length
        assert sorted(n.name for n in t.terminals()) == list("ABCDEF")
        t.check_integrity()

    def test_same_seed_same_tree(self):
        a = load_tree("polytomy_6leaf.tree")
        b = load_tree("polytomy_6leaf.tree")
        a.resolve_polytomies(rng=7)
        with use_rng(7):
            b.resolve_polytomies()
        assert a.to_newick() == b.to_newick()

    def test_new_nodes_have_zero_length(self):
        t = Tree("(A:1,B:1,C:1);")
        t.resolve_polytomies(rng=0)
        new = [n for n in t.internals() if n.parent is not None]
        assert len(new) == 1
        assert new[0].branch_length == 0.0

    def test_binary_tree_untouched(self):
        t = load_tree("balanced_4leaf.tree")
        before = t.to_newick()
        assert t.resolve_polytomies(rng=1) == 0
        assert t.to_newick() == before

    def test_logs_summary(self, caplog):
        t = load_tree("polytomy_6leaf.tree")
        with caplog.at_level(logging.INFO, logger="ramus"):
            t.resolve_polytomies(rng=3)
        assert "Resolved 2 polytomies" in caplog.text


# ======================================================================== #
# Pruning and splicing                                                      #
# ======================================================================== #


class TestPrune:
    def test_prune_one_tip(self):
        t = load_tree("balanced_4leaf.tree")
        assert t.prune_tips(["A"]) == 1
        assert compact(t) == "(B:2,(C:1,D:1):1);"
        t.check_integrity()

    def test_prune_whole_clade_replaces_root(self):
        t = load_tree("balanced_4leaf.tree")
        t.prune_tips(["A", "B"])
        assert compact(t) == "(C:1,D:1):1;"
        t.check_integrity()

    def test_prune_everything(self):
        t = load_tree("small_3leaf.tree")
        t.prune_tips(["A", "B", "C"])
        assert len(t) == 0
        assert t.root is None

    def test_internal_name_is_not_pruned(self, caplog):
        t = Tree("((A:1,B:1)AB:1,C:2);")
        with caplog.at_level(logging.WARNING, logger="ramus"):
            assert t.prune_tips(["AB", "C"]) == 1
        assert compact(t, internal_labels=True) == "(A:1,B:1)AB:1;"
        assert t.get_by_name("AB").is_internal()
        assert "not found in tree: AB" in caplog.text
        t.check_integrity()

    def test_missing_names_warn(self, caplog):
        t = load_tree("balanced_4leaf.tree")
        with caplog.at_level(logging.WARNING, logger="ramus"):
            t.prune_tips(["A", "Z"])
        assert "not found" in caplog.text
        assert "Z" in caplog.text

    def test_keep_tips(self):
        t = load_tree("balanced_4leaf.tree")
        assert t.keep_tips(["A", "B"]) == 2
        assert compact(t) == "(A:1,B:1):1;"

    def test_keep_tips_keeps_unnamed(self):
        t = Tree("((A:1,:1):1,(C:1,D:1):1);")
        t.keep_tips(["C"])
        assert len(t.terminals()) == 2

    def test_keep_nothing_leaves_unnamed(self):
        t = Tree("((A:1,:1):1,C:2);")
        assert t.keep_tips([]) == 2
        tips = t.terminals()
        assert len(tips) == 1
        assert tips[0].name is None

    def test_remove_unbranched_internals(self):
        t = Tree("((A:1):2,B:1);")
        assert t.remove_unbranched_internals() == 1
        assert compact(t) == "(A:3,B:1);"

    def test_single_child_root_replaced(self):
        t = Tree("((A:1,B:1):2);")
        assert t.remove_unbranched_internals() == 1
        assert compact(t) == "(A:1,B:1):2;"
        t.check_integrity()

    def test_chain_of_unbranched_nodes(self):
        t = Tree("(((A:1)),B);")
        t.remove_unbranched_internals()
        assert compact(t) == "(A:1,B);"


# ======================================================================== #
# Branch-length transforms                                                  #
# ======================================================================== #


class TestTransforms:
    def test_ultrametricize(self):
        t = load_tree("caterpillar_5leaf.tree")
        t.ultrametricize()
        assert t.is_ultrametric()
        assert t.get_by_name("A").branch_length == 4.0

    def test_scale(self):
        t = load_tree("balanced_4leaf.tree")
        t.scale(4)
        assert t.tree_height() == 4.0
        assert t.get_by_name("A").branch_length == 2.0

    def test_scale_zero_height(self):
        with pytest.raises(StructuralPrecondition):
            Tree("(A:0,B:0);").scale(1)

    def test_negative_to_zero(self):
        t = Tree("(A:-1,B:2);")
        t.negative_to_zero()
        assert compact(t) == "(A:0,B:2);"

    def test_exponentiate(self):
        t = load_tree("small_3leaf.tree")
        t.exponentiate(2)
        assert compact(t) == "((A:1,B:4):9,C:16);"

    def test_log_transform(self):
        t = Tree("(A:100,B:10);")
        t.log_transform(10)
        assert t.get_by_name("A").branch_length == pytest.approx(2.0)

    def test_invalid_parameters(self):
        t = load_tree("small_3leaf.tree")
        with pytest.raises(BadNumber):
            t.log_transform(1)
        with pytest.raises(BadNumber):
            t.exponentiate(float("inf"))
        with pytest.raises(BadNumber):
            t.scale(float("nan"))

    def test_failing_transform_changes_nothing(self):
        t = Tree("(A:100,B:0);")
        with pytest.raises(BadNumber):
            t.log_transform(10)
        assert compact(t) == "(A:100,B:0);"
