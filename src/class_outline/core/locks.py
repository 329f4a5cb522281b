"""Per sibling-group locks serializing writers inside one process."""

import threading
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager

GroupKey = tuple[str, str]


def group_key(class_id: str, parent_id: str | None) -> GroupKey:
    return (class_id, parent_id or "")


def structure_key(class_id: str) -> GroupKey:
    """Class-wide key held by every operation that changes a parent link."""
    return (class_id, "\x00structure")


class GroupLocks:
    """Registry of one lock per (class_id, parent_id) sibling group.

    Locks are created lazily. ``hold`` acquires several groups in sorted key
    order so two writers touching the same pair of groups cannot deadlock.
    """

    def __init__(self) -> None:
        self._registry_lock = threading.Lock()
        self._locks: dict[GroupKey, threading.Lock] = {}

    def _lock_for(self, key: GroupKey) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, *keys: GroupKey) -> Iterator[None]:
        with ExitStack() as stack:
            for key in sorted(set(keys)):
                stack.enter_context(self._lock_for(key))
            yield
