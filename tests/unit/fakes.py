"""Fake implementations for testing the outline service."""

import threading
import time
from dataclasses import replace

from class_outline.models.node import ClassNode


def make_node(
    node_id: str,
    sequence: int,
    *,
    class_id: str = "X",
    parent_id: str | None = None,
    title: str | None = None,
    is_active: bool = True,
    is_locked_by_import: bool = False,
) -> ClassNode:
    """Build a node with test-friendly defaults."""
    return ClassNode(
        id=node_id,
        class_id=class_id,
        parent_id=parent_id,
        title=title or node_id,
        sequence=sequence,
        is_active=is_active,
        is_locked_by_import=is_locked_by_import,
        created_at="2024-01-01T00:00:00+00:00",
    )


class FakeNodeStore:
    """In-memory fake for a node store.

    Keeps nodes in a dict and records every write for assertions. A small
    ``read_delay`` (sibling reads) or ``class_read_delay`` (whole-class reads)
    widens race windows in concurrency tests. ``reading_siblings`` is set once
    a sibling read has started.
    """

    def __init__(
        self,
        nodes: list[ClassNode] | None = None,
        *,
        read_delay: float = 0.0,
        class_read_delay: float = 0.0,
    ) -> None:
        self.nodes: dict[str, ClassNode] = {n.id: n for n in nodes or []}
        self.writes: list[tuple[str, str]] = []
        self.read_delay = read_delay
        self.class_read_delay = class_read_delay
        self.reading_siblings = threading.Event()
        self.fail_on_write: str | None = None
        self._lock = threading.Lock()

    def _maybe_fail(self, node_id: str) -> None:
        if self.fail_on_write == node_id:
            msg = f"FakeNodeStore: write to {node_id} failed"
            raise ConnectionError(msg)

    def get(self, node_id: str) -> ClassNode | None:
        return self.nodes.get(node_id)

    def list_class(self, class_id: str, *, only_active: bool = False) -> list[ClassNode]:
        with self._lock:
            nodes = list(self.nodes.values())
        if self.class_read_delay:
            time.sleep(self.class_read_delay)
        return [n for n in nodes if n.class_id == class_id and (n.is_active or not only_active)]

    def list_siblings(
        self,
        class_id: str,
        parent_id: str | None,
        *,
        only_active: bool = True,
    ) -> list[ClassNode]:
        self.reading_siblings.set()
        with self._lock:
            nodes = list(self.nodes.values())
        if self.read_delay:
            time.sleep(self.read_delay)
        return [
            n
            for n in nodes
            if n.class_id == class_id
            and n.parent_id == parent_id
            and (n.is_active or not only_active)
        ]

    def insert(self, node: ClassNode) -> ClassNode:
        self._maybe_fail(node.id)
        with self._lock:
            self.nodes[node.id] = node
            self.writes.append(("insert", node.id))
        return node

    def update(self, node: ClassNode) -> ClassNode:
        self._maybe_fail(node.id)
        with self._lock:
            self.nodes[node.id] = node
            self.writes.append(("update", node.id))
        return node

    def update_sequence(self, node_id: str, sequence: int) -> None:
        self._maybe_fail(node_id)
        with self._lock:
            self.nodes[node_id] = replace(self.nodes[node_id], sequence=sequence)
            self.writes.append(("sequence", node_id))

    def delete(self, node_id: str) -> None:
        with self._lock:
            del self.nodes[node_id]
            self.writes.append(("delete", node_id))

    def active_order(self, class_id: str = "X", parent_id: str | None = None) -> list[str]:
        """Active sibling ids ordered by sequence."""
        siblings = self.list_siblings(class_id, parent_id)
        return [n.id for n in sorted(siblings, key=lambda n: n.sequence)]

    def sequences(self, class_id: str = "X", parent_id: str | None = None) -> dict[str, int]:
        """Map of active sibling id to sequence."""
        return {n.id: n.sequence for n in self.list_siblings(class_id, parent_id)}
