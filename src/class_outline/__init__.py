"""Ordered class outline trees with import locks."""

from class_outline.core.service import NodeTreeService
from class_outline.core.store.rest_store import RestNodeStore
from class_outline.core.store.sqlite_store import SqliteNodeStore
from class_outline.models.node import ClassNode, TreeItem
from class_outline.protocols import NodeStoreProtocol

__all__ = [
    "ClassNode",
    "NodeStoreProtocol",
    "NodeTreeService",
    "RestNodeStore",
    "SqliteNodeStore",
    "TreeItem",
]
