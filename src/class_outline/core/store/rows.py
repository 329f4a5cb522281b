"""Conversion between ClassNode and JSON-shaped row dicts."""

import json
from datetime import UTC, datetime
from typing import Any

from class_outline.errors import StoreError
from class_outline.models.node import ClassNode, TreeItem


def utc_now_iso() -> str:
    return datetime.now(tz=UTC).isoformat()


def node_to_row(node: ClassNode) -> dict[str, Any]:
    return {
        "id": node.id,
        "class_id": node.class_id,
        "parent_id": node.parent_id,
        "title": node.title,
        "node_type": node.node_type,
        "description": node.description,
        "sequence": node.sequence,
        "is_active": node.is_active,
        "is_locked_by_import": node.is_locked_by_import,
        "metadata": dict(node.metadata),
        "created_at": node.created_at,
    }


def node_from_row(row: dict[str, Any]) -> ClassNode:
    """Build a ClassNode from a row dict.

    ``metadata`` may arrive as a dict, as JSON text, or as null.
    """
    try:
        metadata = row.get("metadata") or {}
        if isinstance(metadata, str):
            metadata = json.loads(metadata)
        return ClassNode(
            id=str(row["id"]),
            class_id=str(row["class_id"]),
            parent_id=str(row["parent_id"]) if row.get("parent_id") is not None else None,
            title=row["title"],
            sequence=int(row["sequence"]),
            node_type=row.get("node_type"),
            description=row.get("description"),
            is_active=bool(row.get("is_active", True)),
            is_locked_by_import=bool(row.get("is_locked_by_import", False)),
            metadata=dict(metadata),
            created_at=row.get("created_at") or "",
        )
    except (KeyError, TypeError, ValueError) as e:
        msg = f"Malformed class node row: {row!r}"
        raise StoreError(msg) from e


def tree_to_dicts(items: list[TreeItem]) -> list[dict[str, Any]]:
    """Serialize tree items as nested ``{"node": ..., "children": [...]}`` dicts."""
    return [
        {"node": node_to_row(item.node), "children": tree_to_dicts(item.children)}
        for item in items
    ]
