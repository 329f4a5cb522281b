"""Import-lock checks evaluated before structural changes."""

from class_outline.errors import ForbiddenError
from class_outline.models.node import ClassNode


def can_mutate(node: ClassNode) -> bool:
    return not node.is_locked_by_import


def can_add_child_under(parent: ClassNode | None) -> bool:
    """Return whether a child may be added under ``parent``.

    ``None`` means root level, which is never locked. A parent id that was
    supplied but not found is a not-found condition for the caller to raise.
    """
    return parent is None or not parent.is_locked_by_import


def can_reorder_under(parent: ClassNode | None) -> bool:
    return can_add_child_under(parent)


def ensure_can_mutate(node: ClassNode, action: str) -> None:
    if not can_mutate(node):
        msg = f"Cannot {action} a locked (imported) node {node.id}. Unlock it first."
        raise ForbiddenError(msg)


def ensure_can_add_child_under(parent: ClassNode | None) -> None:
    if parent is not None and parent.is_locked_by_import:
        msg = f"Cannot add a child to locked (imported) node {parent.id}. Unlock the parent first."
        raise ForbiddenError(msg)


def ensure_can_reorder_under(parent: ClassNode | None) -> None:
    if parent is not None and parent.is_locked_by_import:
        msg = f"Cannot reorder children of locked (imported) node {parent.id}."
        raise ForbiddenError(msg)
