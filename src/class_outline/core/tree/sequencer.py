"""Sequence assignment for sibling groups.

All functions here are pure: they take the current active siblings of one
(class_id, parent_id) group and return the sequence values to persist. After
applying the result, active siblings occupy exactly 1..N.
"""

from collections.abc import Iterable, Sequence

from class_outline.errors import BadRequestError
from class_outline.models.node import ClassNode, InsertPlan, SequenceChange


def _ordered(siblings: Iterable[ClassNode]) -> list[ClassNode]:
    return sorted(siblings, key=lambda n: n.sequence)


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def insert_at(siblings: Sequence[ClassNode], requested_position: int | None) -> InsertPlan:
    """Plan the insertion of a new node among ``siblings``.

    Args:
        siblings: Active siblings of the target group.
        requested_position: 1-based position, or None to append.

    Returns:
        InsertPlan with the new node's sequence and the siblings shifted up.
    """
    ordered = _ordered(siblings)
    if requested_position is None:
        target = len(ordered) + 1
    else:
        target = clamp(requested_position, 1, len(ordered) + 1)

    shifts = tuple(
        SequenceChange(node_id=n.id, sequence=n.sequence + 1)
        for n in ordered
        if n.sequence >= target
    )
    return InsertPlan(sequence=target, shifts=shifts)


def reorder(
    siblings: Sequence[ClassNode],
    items: Sequence[tuple[str, int]],
) -> list[SequenceChange]:
    """Renumber ``siblings`` following a caller-supplied ordering.

    ``items`` must name every sibling exactly once. Items are sorted by their
    supplied sequence (stable, so ties keep request order) and numbered 1..N.
    Only nodes whose sequence actually changes are returned.
    """
    current = {n.id: n.sequence for n in siblings}
    requested_ids = [node_id for node_id, _ in items]

    if len(set(requested_ids)) != len(requested_ids):
        msg = "Reorder lists the same node more than once."
        raise BadRequestError(msg)
    unknown = [node_id for node_id in requested_ids if node_id not in current]
    if unknown:
        msg = f"Reorder contains nodes that are not active siblings: {unknown!r}"
        raise BadRequestError(msg)
    missing = sorted(set(current) - set(requested_ids))
    if missing:
        msg = f"Reorder omits active siblings: {missing!r}"
        raise BadRequestError(msg)

    normalized = sorted(items, key=lambda item: item[1])
    return [
        SequenceChange(node_id=node_id, sequence=position)
        for position, (node_id, _) in enumerate(normalized, start=1)
        if current[node_id] != position
    ]


def compact_after_removal(
    siblings: Sequence[ClassNode],
    removed_sequence: int,
) -> list[SequenceChange]:
    """Close the gap left by a removed sibling.

    ``siblings`` must not include the removed node.
    """
    return [
        SequenceChange(node_id=n.id, sequence=n.sequence - 1)
        for n in _ordered(siblings)
        if n.sequence > removed_sequence
    ]


def move_within(
    siblings: Sequence[ClassNode],
    node_id: str,
    requested_position: int,
) -> list[SequenceChange]:
    """Move one sibling to a new position inside its own group.

    Siblings between the old and new positions shift by one toward the
    vacated slot. The target is clamped to 1..N.
    """
    ordered = _ordered(siblings)
    moving = next((n for n in ordered if n.id == node_id), None)
    if moving is None:
        msg = f"Node {node_id} is not an active sibling of this group."
        raise BadRequestError(msg)

    old = moving.sequence
    new = clamp(requested_position, 1, len(ordered))
    if new == old:
        return []

    changes: list[SequenceChange] = []
    for n in ordered:
        if n.id == node_id:
            continue
        if old < new and old < n.sequence <= new:
            changes.append(SequenceChange(node_id=n.id, sequence=n.sequence - 1))
        elif new < old and new <= n.sequence < old:
            changes.append(SequenceChange(node_id=n.id, sequence=n.sequence + 1))
    changes.append(SequenceChange(node_id=node_id, sequence=new))
    return changes
