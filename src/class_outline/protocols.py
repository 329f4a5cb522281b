"""Protocols for dependency injection in the outline service."""

from typing import Protocol, runtime_checkable

from class_outline.models.node import ClassNode


@runtime_checkable
class NodeStoreProtocol(Protocol):
    """Protocol for class node stores.

    Each call is expected to be atomic for a single row. No multi-row
    transaction is assumed across calls.
    """

    def get(self, node_id: str) -> ClassNode | None:
        """Return the node with this id, or None."""
        ...

    def list_class(self, class_id: str, *, only_active: bool = False) -> list[ClassNode]:
        """Return every node of a class, in no particular order."""
        ...

    def list_siblings(
        self,
        class_id: str,
        parent_id: str | None,
        *,
        only_active: bool = True,
    ) -> list[ClassNode]:
        """Return the nodes sharing (class_id, parent_id), in no particular order."""
        ...

    def insert(self, node: ClassNode) -> ClassNode:
        """Insert a new node and return it as stored."""
        ...

    def update(self, node: ClassNode) -> ClassNode:
        """Overwrite an existing node and return it as stored."""
        ...

    def update_sequence(self, node_id: str, sequence: int) -> None:
        """Set the sequence of a single node, leaving other fields untouched."""
        ...

    def delete(self, node_id: str) -> None:
        """Remove a node row permanently."""
        ...
