"""Domain models for class outline trees."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ClassNode:
    """A single node in a class's outline tree."""

    id: str
    class_id: str
    parent_id: str | None
    title: str
    sequence: int
    node_type: str | None = None
    description: str | None = None
    is_active: bool = True
    is_locked_by_import: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: str = ""


@dataclass(frozen=True)
class TreeItem:
    """A node with its ordered children."""

    node: ClassNode
    children: list["TreeItem"] = field(default_factory=list)


@dataclass(frozen=True)
class SequenceChange:
    """A new sequence value to persist for one sibling."""

    node_id: str
    sequence: int


@dataclass(frozen=True)
class InsertPlan:
    """Where a new node lands and which siblings make room for it."""

    sequence: int
    shifts: tuple[SequenceChange, ...] = ()
