"""Rebuild a nested outline from a flat set of class nodes."""

from collections import defaultdict
from collections.abc import Iterable

from loguru import logger

from class_outline.errors import TreeCycleError
from class_outline.models.node import ClassNode, TreeItem


def _sort_key(node: ClassNode) -> tuple[int, str, str]:
    return (node.sequence, node.title, node.id)


def group_by_parent(nodes: Iterable[ClassNode]) -> dict[str | None, list[ClassNode]]:
    """Group nodes by parent id, each group ordered by sequence."""
    groups: dict[str | None, list[ClassNode]] = defaultdict(list)
    for node in nodes:
        groups[node.parent_id].append(node)
    for group in groups.values():
        group.sort(key=_sort_key)
    return dict(groups)


def _find_cycle(start: ClassNode, by_id: dict[str, ClassNode]) -> list[str] | None:
    """Follow parent links from ``start``; return the cycle if one is hit."""
    seen: list[str] = []
    current: ClassNode | None = start
    while current is not None:
        if current.id in seen:
            return [*seen[seen.index(current.id) :], current.id]
        seen.append(current.id)
        current = by_id.get(current.parent_id) if current.parent_id is not None else None
    return None


def build_tree(nodes: Iterable[ClassNode], *, only_active: bool = False) -> list[TreeItem]:
    """Build the nested tree of one class.

    Args:
        nodes: Flat, unordered nodes of a single class.
        only_active: Drop soft-deleted nodes before building.

    Returns:
        Root-level tree items ordered by sequence, with children attached.

    Raises:
        TreeCycleError: If parent references form a cycle.
    """
    selected = [n for n in nodes if n.is_active or not only_active]
    by_id = {n.id: n for n in selected}
    groups = group_by_parent(selected)

    roots = [TreeItem(node=n) for n in groups.get(None, [])]
    visited: set[str] = set()
    stack = list(roots)
    while stack:
        item = stack.pop()
        if item.node.id in visited:
            raise TreeCycleError([item.node.id, item.node.id])
        visited.add(item.node.id)
        for child in groups.get(item.node.id, []):
            child_item = TreeItem(node=child)
            item.children.append(child_item)
            stack.append(child_item)

    unreached = [n for n in selected if n.id not in visited]
    for node in unreached:
        cycle = _find_cycle(node, by_id)
        if cycle is not None:
            raise TreeCycleError(cycle)
    if unreached:
        logger.warning(
            "Dropped {} nodes whose parent is missing from the tree: {}",
            len(unreached),
            [n.id for n in unreached],
        )
    return roots


def count_items(items: Iterable[TreeItem]) -> int:
    """Count every node in a forest of tree items."""
    total = 0
    stack = list(items)
    while stack:
        item = stack.pop()
        total += 1
        stack.extend(item.children)
    return total
