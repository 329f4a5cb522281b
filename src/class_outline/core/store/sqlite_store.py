"""Class node store backed by a local SQLite database."""

import json
import sqlite3

from loguru import logger

from class_outline.models.node import ClassNode

_COLUMNS = (
    "id, class_id, parent_id, title, node_type, description, sequence, "
    "is_active, is_locked_by_import, metadata, created_at"
)


def _to_node(row: tuple) -> ClassNode:
    return ClassNode(
        id=row[0], class_id=row[1], parent_id=row[2], title=row[3],
        node_type=row[4], description=row[5], sequence=row[6],
        is_active=bool(row[7]), is_locked_by_import=bool(row[8]),
        metadata=json.loads(row[9]) if row[9] else {}, created_at=row[10],
    )


class SqliteNodeStore:
    """Node store over a SQLite connection (schema must already exist).

    Every write commits immediately, so each call is atomic for one row.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def get(self, node_id: str) -> ClassNode | None:
        row = self.conn.execute(
            f"SELECT {_COLUMNS} FROM class_nodes WHERE id = ?", (node_id,)
        ).fetchone()
        return _to_node(row) if row else None

    def list_class(self, class_id: str, *, only_active: bool = False) -> list[ClassNode]:
        query = f"SELECT {_COLUMNS} FROM class_nodes WHERE class_id = ?"
        if only_active:
            query += " AND is_active = 1"
        rows = self.conn.execute(query, (class_id,)).fetchall()
        return [_to_node(r) for r in rows]

    def list_siblings(
        self,
        class_id: str,
        parent_id: str | None,
        *,
        only_active: bool = True,
    ) -> list[ClassNode]:
        query = f"SELECT {_COLUMNS} FROM class_nodes WHERE class_id = ? AND parent_id IS ?"
        if only_active:
            query += " AND is_active = 1"
        rows = self.conn.execute(query + " ORDER BY sequence", (class_id, parent_id)).fetchall()
        return [_to_node(r) for r in rows]

    def insert(self, node: ClassNode) -> ClassNode:
        self.conn.execute(
            f"INSERT INTO class_nodes ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                node.id, node.class_id, node.parent_id, node.title, node.node_type,
                node.description, node.sequence, node.is_active, node.is_locked_by_import,
                json.dumps(node.metadata), node.created_at,
            ),
        )
        self.conn.commit()
        logger.debug("Inserted node {} at sequence {}", node.id, node.sequence)
        return node

    def update(self, node: ClassNode) -> ClassNode:
        self.conn.execute(
            """UPDATE class_nodes SET class_id = ?, parent_id = ?, title = ?, node_type = ?,
               description = ?, sequence = ?, is_active = ?, is_locked_by_import = ?,
               metadata = ?
               WHERE id = ?""",
            (
                node.class_id, node.parent_id, node.title, node.node_type, node.description,
                node.sequence, node.is_active, node.is_locked_by_import,
                json.dumps(node.metadata), node.id,
            ),
        )
        self.conn.commit()
        logger.debug("Updated node {}", node.id)
        return node

    def update_sequence(self, node_id: str, sequence: int) -> None:
        self.conn.execute("UPDATE class_nodes SET sequence = ? WHERE id = ?", (sequence, node_id))
        self.conn.commit()

    def delete(self, node_id: str) -> None:
        self.conn.execute("DELETE FROM class_nodes WHERE id = ?", (node_id,))
        self.conn.commit()
        logger.debug("Deleted node {}", node_id)
