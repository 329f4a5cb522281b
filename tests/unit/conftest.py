"""Shared test fixtures."""

import sqlite3

import pytest

from class_outline.core.database.schema import create_schema
from class_outline.core.service import NodeTreeService
from class_outline.core.store.sqlite_store import SqliteNodeStore
from tests.unit.fakes import FakeNodeStore, make_node


@pytest.fixture
def store() -> FakeNodeStore:
    """Class X with three root nodes A, B, C and a module M holding two lessons."""
    return FakeNodeStore(
        [
            make_node("A", 1),
            make_node("B", 2),
            make_node("C", 3),
            make_node("M", 4, title="Module"),
            make_node("L1", 1, parent_id="M", title="Lesson 1"),
            make_node("L2", 2, parent_id="M", title="Lesson 2"),
            make_node("other", 1, class_id="Y"),
        ]
    )


@pytest.fixture
def service(store: FakeNodeStore) -> NodeTreeService:
    return NodeTreeService(store)


@pytest.fixture
def sqlite_conn() -> sqlite3.Connection:
    """Return an in-memory DB with the outline schema."""
    conn = sqlite3.connect(":memory:")
    create_schema(conn)
    return conn


@pytest.fixture
def sqlite_service(sqlite_conn: sqlite3.Connection) -> NodeTreeService:
    return NodeTreeService(SqliteNodeStore(sqlite_conn))
