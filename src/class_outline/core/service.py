"""Orchestrates structural edits on class outline trees.

NodeTreeService is the only writer of class nodes. Every operation validates
its preconditions against freshly read state before the first write, so a
rejected request performs zero writes. Once writes have started they are not
rolled back: a failing write propagates to the caller and the sibling group
may need re-normalizing.

Writers of the same (class_id, parent_id) group are serialized through
GroupLocks. Toggling a lock also holds the node's child group, and moves
hold a class-wide structure key. This covers callers sharing one service
instance; separate processes writing to the same store are not coordinated.
"""

import threading
import uuid
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import replace

from loguru import logger

from class_outline.core.locks import GroupKey, GroupLocks, group_key, structure_key
from class_outline.core.store.rows import utc_now_iso
from class_outline.core.tree import lock_guard, sequencer
from class_outline.core.tree.builder import build_tree
from class_outline.errors import BadRequestError, NotFoundError, OperationCancelledError
from class_outline.models.node import ClassNode, SequenceChange, TreeItem
from class_outline.protocols import NodeStoreProtocol

LOCK_REASON_KEY = "lock_reason"
LOCK_UPDATED_AT_KEY = "lock_updated_at"


def _check_cancel(cancel: threading.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        msg = "Operation cancelled by caller."
        raise OperationCancelledError(msg)


class NodeTreeService:
    """Create, reorder, move, lock and soft-delete class nodes."""

    def __init__(self, store: NodeStoreProtocol, locks: GroupLocks | None = None) -> None:
        self.store = store
        self.locks = locks or GroupLocks()

    # --- reads ---

    def _get_in_class(
        self,
        class_id: str,
        node_id: str,
        cancel: threading.Event | None,
        *,
        label: str = "Node",
    ) -> ClassNode:
        _check_cancel(cancel)
        node = self.store.get(node_id)
        if node is None or node.class_id != class_id:
            msg = f"{label} {node_id} not found in class {class_id}."
            raise NotFoundError(msg)
        return node

    def _get_parent(
        self,
        class_id: str,
        parent_id: str | None,
        cancel: threading.Event | None,
    ) -> ClassNode | None:
        if parent_id is None:
            return None
        return self._get_in_class(class_id, parent_id, cancel, label="Parent node")

    def _active_siblings(
        self,
        class_id: str,
        parent_id: str | None,
        cancel: threading.Event | None,
    ) -> list[ClassNode]:
        _check_cancel(cancel)
        siblings = self.store.list_siblings(class_id, parent_id, only_active=True)
        return sorted(siblings, key=lambda n: n.sequence)

    def _apply(self, changes: Sequence[SequenceChange], cancel: threading.Event | None) -> None:
        for change in changes:
            _check_cancel(cancel)
            self.store.update_sequence(change.node_id, change.sequence)

    @contextmanager
    def _hold_node_group(
        self,
        class_id: str,
        node_id: str,
        cancel: threading.Event | None,
        *extra_parents: str | None,
        extra_keys: Sequence[GroupKey] = (),
    ) -> Iterator[ClassNode]:
        """Lock the node's current sibling group and yield a fresh read of the node.

        ``extra_parents`` adds the child groups of those parents and
        ``extra_keys`` adds any other keys. Retries if the node was reparented
        between the unlocked and locked reads.
        """
        while True:
            node = self._get_in_class(class_id, node_id, cancel)
            keys = [group_key(class_id, node.parent_id), *extra_keys]
            keys.extend(group_key(class_id, p) for p in extra_parents)
            with self.locks.hold(*keys):
                fresh = self._get_in_class(class_id, node_id, cancel)
                if fresh.parent_id == node.parent_id:
                    yield fresh
                    return

    def get_flat(self, class_id: str, *, only_active: bool = False) -> list[ClassNode]:
        """Return all nodes of a class ordered by parent and sequence."""
        nodes = self.store.list_class(class_id, only_active=only_active)
        return sorted(nodes, key=lambda n: (n.parent_id or "", n.sequence, n.id))

    def get_tree(self, class_id: str, *, only_active: bool = False) -> list[TreeItem]:
        """Return the nested outline of a class."""
        return build_tree(self.store.list_class(class_id), only_active=only_active)

    # --- writes ---

    def create_node(
        self,
        class_id: str,
        title: str,
        *,
        parent_id: str | None = None,
        node_type: str | None = None,
        description: str | None = None,
        sequence: int | None = None,
        cancel: threading.Event | None = None,
    ) -> ClassNode:
        """Insert a node at ``sequence`` (clamped) or append it.

        Siblings at or after the target position are shifted up before the
        new node is inserted.
        """
        with self.locks.hold(group_key(class_id, parent_id)):
            parent = self._get_parent(class_id, parent_id, cancel)
            lock_guard.ensure_can_add_child_under(parent)

            siblings = self._active_siblings(class_id, parent_id, cancel)
            plan = sequencer.insert_at(siblings, sequence)
            self._apply(plan.shifts, cancel)

            node = ClassNode(
                id=str(uuid.uuid4()),
                class_id=class_id,
                parent_id=parent_id,
                title=title,
                sequence=plan.sequence,
                node_type=node_type,
                description=description,
                is_active=True,
                is_locked_by_import=False,
                metadata={},
                created_at=utc_now_iso(),
            )
            _check_cancel(cancel)
            node = self.store.insert(node)

        logger.info(
            "Created node {} in class {} under parent {} at sequence {}",
            node.id, class_id, parent_id, node.sequence,
        )
        return node

    def reorder_nodes(
        self,
        class_id: str,
        items: Sequence[tuple[str, int]],
        *,
        parent_id: str | None = None,
        cancel: threading.Event | None = None,
    ) -> list[SequenceChange]:
        """Renumber the active children of ``parent_id`` in the requested order.

        ``items`` must name every active sibling exactly once. Returns the
        changes that were written.
        """
        with self.locks.hold(group_key(class_id, parent_id)):
            parent = self._get_parent(class_id, parent_id, cancel)
            lock_guard.ensure_can_reorder_under(parent)

            siblings = self._active_siblings(class_id, parent_id, cancel)
            changes = sequencer.reorder(siblings, items)
            for sibling in siblings:
                lock_guard.ensure_can_mutate(sibling, "reorder")

            self._apply(changes, cancel)

        logger.info(
            "Reordered {} nodes under parent {} in class {} ({} changed)",
            len(items), parent_id, class_id, len(changes),
        )
        return changes

    def soft_delete_node(
        self,
        class_id: str,
        node_id: str,
        *,
        cancel: threading.Event | None = None,
    ) -> None:
        """Mark a node inactive and close the gap among its active siblings.

        The node keeps its last sequence for history.
        """
        with self._hold_node_group(class_id, node_id, cancel) as node:
            lock_guard.ensure_can_mutate(node, "delete")
            if not node.is_active:
                logger.debug("Node {} is already inactive", node_id)
                return

            _check_cancel(cancel)
            self.store.update(replace(node, is_active=False))

            remaining = self._active_siblings(class_id, node.parent_id, cancel)
            remaining = [n for n in remaining if n.id != node_id]
            self._apply(sequencer.compact_after_removal(remaining, node.sequence), cancel)

        logger.info("Soft-deleted node {} in class {}", node_id, class_id)

    def toggle_lock(
        self,
        class_id: str,
        node_id: str,
        is_locked: bool,
        *,
        reason: str | None = None,
        cancel: threading.Event | None = None,
    ) -> ClassNode:
        """Set or clear the import lock of one node.

        Descendants keep their own lock flags. The node's child group is held
        too, so edits that check this node as a parent see the flag settle.
        """
        with self._hold_node_group(class_id, node_id, cancel, node_id) as node:
            metadata = dict(node.metadata)
            if is_locked and reason and reason.strip():
                metadata[LOCK_REASON_KEY] = reason
                metadata[LOCK_UPDATED_AT_KEY] = utc_now_iso()
            elif not is_locked:
                metadata.pop(LOCK_REASON_KEY, None)

            _check_cancel(cancel)
            node = self.store.update(
                replace(node, is_locked_by_import=is_locked, metadata=metadata)
            )
        logger.info(
            "{} node {} in class {}", "Locked" if is_locked else "Unlocked", node_id, class_id
        )
        return node

    def update_node(
        self,
        class_id: str,
        node_id: str,
        *,
        title: str | None = None,
        node_type: str | None = None,
        description: str | None = None,
        sequence: int | None = None,
        cancel: threading.Event | None = None,
    ) -> ClassNode:
        """Edit node attributes and optionally its position among its siblings.

        Blank titles and None fields leave the current value in place.
        """
        with self._hold_node_group(class_id, node_id, cancel) as node:
            lock_guard.ensure_can_mutate(node, "update")

            changes: list[SequenceChange] = []
            if sequence is not None and sequence != node.sequence:
                if not node.is_active:
                    msg = f"Cannot resequence inactive node {node_id}."
                    raise BadRequestError(msg)
                parent = self._get_parent(class_id, node.parent_id, cancel)
                lock_guard.ensure_can_reorder_under(parent)
                siblings = self._active_siblings(class_id, node.parent_id, cancel)
                changes = sequencer.move_within(siblings, node_id, sequence)

            new_sequence = node.sequence
            for change in changes:
                if change.node_id == node_id:
                    new_sequence = change.sequence
            self._apply([c for c in changes if c.node_id != node_id], cancel)

            updated = replace(
                node,
                title=title.strip() if title and title.strip() else node.title,
                node_type=node_type if node_type is not None else node.node_type,
                description=description if description is not None else node.description,
                sequence=new_sequence,
            )
            _check_cancel(cancel)
            updated = self.store.update(updated)

        logger.info("Updated node {} in class {}", node_id, class_id)
        return updated

    def move_node(
        self,
        class_id: str,
        node_id: str,
        new_sequence: int,
        *,
        new_parent_id: str | None = None,
        cancel: threading.Event | None = None,
    ) -> ClassNode:
        """Move a node under another parent of the same class.

        The old group is compacted and the destination group makes room at
        ``new_sequence`` (clamped). Moves within a class are serialized so the
        descendant check sees every committed parent link.
        """
        if new_sequence < 1:
            msg = "new_sequence must be >= 1."
            raise BadRequestError(msg)

        with self._hold_node_group(
            class_id, node_id, cancel, new_parent_id, extra_keys=[structure_key(class_id)]
        ) as node:
            lock_guard.ensure_can_mutate(node, "move")
            if not node.is_active:
                msg = f"Cannot move inactive node {node_id}."
                raise BadRequestError(msg)

            if node.parent_id == new_parent_id:
                old_parent = self._get_parent(class_id, node.parent_id, cancel)
                lock_guard.ensure_can_reorder_under(old_parent)
                siblings = self._active_siblings(class_id, node.parent_id, cancel)
                changes = sequencer.move_within(siblings, node_id, new_sequence)
                self._apply(changes, cancel)
                final = next((c.sequence for c in changes if c.node_id == node_id), node.sequence)
                logger.info("Moved node {} within its parent to sequence {}", node_id, final)
                return replace(node, sequence=final)

            old_parent = self._get_parent(class_id, node.parent_id, cancel)
            lock_guard.ensure_can_reorder_under(old_parent)
            new_parent = self._get_parent(class_id, new_parent_id, cancel)
            lock_guard.ensure_can_add_child_under(new_parent)
            if new_parent_id is not None:
                self._ensure_not_descendant(class_id, node_id, new_parent_id, cancel)

            old_siblings = [
                n for n in self._active_siblings(class_id, node.parent_id, cancel)
                if n.id != node_id
            ]
            target_siblings = self._active_siblings(class_id, new_parent_id, cancel)
            plan = sequencer.insert_at(target_siblings, new_sequence)

            self._apply(sequencer.compact_after_removal(old_siblings, node.sequence), cancel)
            self._apply(plan.shifts, cancel)
            _check_cancel(cancel)
            moved = self.store.update(replace(node, parent_id=new_parent_id, sequence=plan.sequence))

        logger.info(
            "Moved node {} to parent {} at sequence {}", node_id, new_parent_id, plan.sequence
        )
        return moved

    def _ensure_not_descendant(
        self,
        class_id: str,
        node_id: str,
        new_parent_id: str,
        cancel: threading.Event | None,
    ) -> None:
        if new_parent_id == node_id:
            msg = "Cannot move a node under itself."
            raise BadRequestError(msg)

        _check_cancel(cancel)
        children: dict[str, list[str]] = {}
        for n in self.store.list_class(class_id):
            if n.parent_id is not None:
                children.setdefault(n.parent_id, []).append(n.id)

        descendants: set[str] = set()
        stack = [node_id]
        while stack:
            for kid in children.get(stack.pop(), []):
                if kid not in descendants:
                    descendants.add(kid)
                    stack.append(kid)
        if new_parent_id in descendants:
            msg = "Cannot move a node under its own descendant (cycle detected)."
            raise BadRequestError(msg)
