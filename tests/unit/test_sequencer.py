"""Tests for sibling sequence assignment."""

import pytest

from class_outline.core.tree.sequencer import (
    compact_after_removal,
    insert_at,
    move_within,
    reorder,
)
from class_outline.errors import BadRequestError
from class_outline.models.node import SequenceChange
from tests.unit.fakes import make_node

SIBLINGS = [make_node("C", 3), make_node("A", 1), make_node("B", 2)]


def _apply(sequences: dict[str, int], changes: list[SequenceChange]) -> dict[str, int]:
    result = dict(sequences)
    for change in changes:
        result[change.node_id] = change.sequence
    return result


def test_insert_without_position_appends() -> None:
    plan = insert_at(SIBLINGS, None)
    assert plan.sequence == 4
    assert plan.shifts == ()


def test_insert_in_middle_shifts_later_siblings() -> None:
    plan = insert_at(SIBLINGS, 2)
    assert plan.sequence == 2
    assert plan.shifts == (SequenceChange("B", 3), SequenceChange("C", 4))


@pytest.mark.parametrize(("requested", "expected"), [(0, 1), (-5, 1), (4, 4), (99, 4)])
def test_insert_clamps_out_of_range_positions(requested: int, expected: int) -> None:
    assert insert_at(SIBLINGS, requested) == insert_at(SIBLINGS, expected)


def test_insert_into_empty_group() -> None:
    plan = insert_at([], 7)
    assert plan.sequence == 1
    assert plan.shifts == ()


def test_reorder_returns_only_changed_nodes() -> None:
    changes = reorder(SIBLINGS, [("A", 1), ("C", 2), ("B", 3)])
    assert changes == [SequenceChange("C", 2), SequenceChange("B", 3)]


def test_reorder_normalizes_sparse_requested_values() -> None:
    changes = reorder(SIBLINGS, [("A", 10), ("B", 30), ("C", 20)])
    assert _apply({"A": 1, "B": 2, "C": 3}, changes) == {"A": 1, "C": 2, "B": 3}


def test_reorder_ties_keep_request_order() -> None:
    changes = reorder(SIBLINGS, [("C", 1), ("A", 1), ("B", 2)])
    assert _apply({"A": 1, "B": 2, "C": 3}, changes) == {"C": 1, "A": 2, "B": 3}


def test_reorder_unchanged_order_writes_nothing() -> None:
    assert reorder(SIBLINGS, [("A", 1), ("B", 2), ("C", 3)]) == []


@pytest.mark.parametrize(
    "items",
    [
        [("A", 1), ("B", 2)],
        [("A", 1), ("B", 2), ("C", 3), ("Z", 4)],
        [("A", 1), ("A", 2), ("B", 3), ("C", 4)],
    ],
    ids=["omits-sibling", "unknown-node", "duplicate"],
)
def test_reorder_rejects_mismatched_item_sets(items: list[tuple[str, int]]) -> None:
    with pytest.raises(BadRequestError):
        reorder(SIBLINGS, items)


def test_compact_after_removal_closes_gap_once() -> None:
    remaining = [make_node("A", 1), make_node("C", 3), make_node("D", 4)]
    changes = compact_after_removal(remaining, 2)
    assert changes == [SequenceChange("C", 2), SequenceChange("D", 3)]


def test_compact_after_removing_last_changes_nothing() -> None:
    assert compact_after_removal([make_node("A", 1), make_node("B", 2)], 3) == []


def test_move_within_down_shifts_intermediate_siblings_up() -> None:
    changes = move_within(SIBLINGS, "A", 3)
    assert _apply({"A": 1, "B": 2, "C": 3}, changes) == {"B": 1, "C": 2, "A": 3}


def test_move_within_up_shifts_intermediate_siblings_down() -> None:
    changes = move_within(SIBLINGS, "C", 1)
    assert _apply({"A": 1, "B": 2, "C": 3}, changes) == {"C": 1, "A": 2, "B": 3}


def test_move_within_clamps_to_group_size() -> None:
    changes = move_within(SIBLINGS, "B", 50)
    assert _apply({"A": 1, "B": 2, "C": 3}, changes) == {"A": 1, "C": 2, "B": 3}


def test_move_within_same_position_is_noop() -> None:
    assert move_within(SIBLINGS, "B", 2) == []


def test_move_within_unknown_node_raises() -> None:
    with pytest.raises(BadRequestError):
        move_within(SIBLINGS, "Z", 1)
