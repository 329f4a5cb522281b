"""Tests for rebuilding nested trees from flat node sets."""

import random

import pytest

from class_outline.core.tree.builder import build_tree, count_items, group_by_parent
from class_outline.errors import TreeCycleError
from class_outline.models.node import TreeItem
from tests.unit.fakes import make_node

FLAT = [
    make_node("L2", 2, parent_id="M"),
    make_node("B", 2),
    make_node("L1", 1, parent_id="M"),
    make_node("M", 3),
    make_node("A", 1),
    make_node("old", 3, parent_id="M", is_active=False),
    make_node("L1a", 1, parent_id="L1"),
]


def _ids(items: list[TreeItem]) -> list[str]:
    return [i.node.id for i in items]


def test_build_tree_orders_each_level_by_sequence() -> None:
    tree = build_tree(FLAT)
    assert _ids(tree) == ["A", "B", "M"]
    module = tree[2]
    assert _ids(module.children) == ["L1", "L2", "old"]
    assert _ids(module.children[0].children) == ["L1a"]


def test_build_tree_leaves_have_empty_children_lists() -> None:
    tree = build_tree(FLAT)
    assert tree[0].children == []


def test_build_tree_only_active_drops_inactive_nodes() -> None:
    tree = build_tree(FLAT, only_active=True)
    assert _ids(tree[2].children) == ["L1", "L2"]
    assert count_items(tree) == 6


def test_build_tree_count_matches_input_regardless_of_order() -> None:
    shuffled = list(FLAT)
    random.Random(7).shuffle(shuffled)
    assert count_items(build_tree(shuffled)) == len(FLAT)


def test_build_tree_of_empty_input_is_empty() -> None:
    assert build_tree([]) == []


def test_build_tree_detects_cycles() -> None:
    nodes = [
        make_node("A", 1),
        make_node("P", 1, parent_id="Q"),
        make_node("Q", 1, parent_id="P"),
    ]
    with pytest.raises(TreeCycleError) as exc_info:
        build_tree(nodes)
    assert set(exc_info.value.node_ids) == {"P", "Q"}


def test_build_tree_detects_self_parent() -> None:
    with pytest.raises(TreeCycleError):
        build_tree([make_node("S", 1, parent_id="S")])


def test_build_tree_drops_orphans_of_missing_parents() -> None:
    nodes = [make_node("A", 1), make_node("orphan", 1, parent_id="gone")]
    assert _ids(build_tree(nodes)) == ["A"]


def test_build_tree_handles_deep_chains_without_recursion() -> None:
    depth = 5000
    nodes = [make_node("n0", 1)] + [
        make_node(f"n{i}", 1, parent_id=f"n{i - 1}") for i in range(1, depth)
    ]
    assert count_items(build_tree(nodes)) == depth


def test_group_by_parent_sorts_groups() -> None:
    groups = group_by_parent(FLAT)
    assert [n.id for n in groups[None]] == ["A", "B", "M"]
    assert [n.id for n in groups["M"]] == ["L1", "L2", "old"]
