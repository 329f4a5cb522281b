"""MCP server exposing class outline editing tools."""

import functools
import os
import sqlite3
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger
from mcp.server.fastmcp import Context, FastMCP

from class_outline.config import DATABASE_FILENAME, resolve_backend, resolve_data_directory
from class_outline.core.database.schema import migrate_schema
from class_outline.core.service import NodeTreeService
from class_outline.core.store.rest_store import RestNodeStore
from class_outline.core.store.rows import node_to_row, tree_to_dicts
from class_outline.core.store.sqlite_store import SqliteNodeStore
from class_outline.core.tree.builder import count_items
from class_outline.core.tree.markdown import render_tree_as_markdown
from class_outline.errors import BadRequestError, ClassNodeError

_GENERIC_ERROR = "An unexpected error occurred. Please try again later."


def _guarded(func: Callable[..., dict[str, Any]]) -> Callable[..., dict[str, Any]]:
    """Turn service errors into ``{"error", "status"}`` results."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> dict[str, Any]:
        try:
            return func(*args, **kwargs)
        except ClassNodeError as e:
            logger.warning("{} rejected: {}", func.__name__, e)
            return {"error": str(e), "status": e.status_code}
        except Exception:
            logger.exception("Unexpected failure in {}", func.__name__)
            return {"error": _GENERIC_ERROR, "status": 500}

    return wrapper


# --- Core functions (testable without MCP context) ---


@_guarded
def outline_create_node(
    service: NodeTreeService,
    *,
    class_id: str,
    title: str,
    node_type: str | None = None,
    description: str | None = None,
    parent_id: str | None = None,
    sequence: int | None = None,
) -> dict[str, Any]:
    """Create a node under a parent (or at root level if parent_id is None).

    Args:
        class_id: Class owning the outline.
        title: Node title (required, trimmed).
        node_type: Optional free-form classification.
        description: Optional description.
        parent_id: Parent node ID, or None for root level.
        sequence: 1-based position among active siblings (None = append).
    """
    if not title or not title.strip():
        msg = "Title is required."
        raise BadRequestError(msg)
    node = service.create_node(
        class_id,
        title.strip(),
        parent_id=parent_id,
        node_type=node_type,
        description=description,
        sequence=sequence,
    )
    return {"node": node_to_row(node)}


@_guarded
def outline_update_node(
    service: NodeTreeService,
    *,
    class_id: str,
    node_id: str,
    title: str | None = None,
    node_type: str | None = None,
    description: str | None = None,
    sequence: int | None = None,
) -> dict[str, Any]:
    """Update a node's attributes or its position among its siblings."""
    node = service.update_node(
        class_id,
        node_id,
        title=title,
        node_type=node_type,
        description=description,
        sequence=sequence,
    )
    return {"node": node_to_row(node)}


@_guarded
def outline_move_node(
    service: NodeTreeService,
    *,
    class_id: str,
    node_id: str,
    new_sequence: int,
    new_parent_id: str | None = None,
) -> dict[str, Any]:
    """Move a node to a new parent and sequence within the same class."""
    node = service.move_node(class_id, node_id, new_sequence, new_parent_id=new_parent_id)
    return {"success": True, "node": node_to_row(node)}


@_guarded
def outline_reorder_nodes(
    service: NodeTreeService,
    *,
    class_id: str,
    items: list[dict[str, Any]],
    parent_id: str | None = None,
) -> dict[str, Any]:
    """Reorder all active children of a parent.

    Args:
        class_id: Class owning the outline.
        items: Every active sibling as ``{"node_id": ..., "sequence": ...}``.
        parent_id: Parent node ID, or None for root level.
    """
    if not items:
        msg = "items must contain at least one entry."
        raise BadRequestError(msg)
    try:
        pairs = [(str(item["node_id"]), int(item["sequence"])) for item in items]
    except (KeyError, TypeError, ValueError) as e:
        msg = f"Each item needs node_id and an integer sequence: {e}"
        raise BadRequestError(msg) from e

    changes = service.reorder_nodes(class_id, pairs, parent_id=parent_id)
    return {"success": True, "changed": len(changes)}


@_guarded
def outline_soft_delete_node(
    service: NodeTreeService,
    *,
    class_id: str,
    node_id: str,
) -> dict[str, Any]:
    """Soft delete a node and compact its siblings' sequence."""
    service.soft_delete_node(class_id, node_id)
    return {"success": True}


@_guarded
def outline_toggle_lock(
    service: NodeTreeService,
    *,
    class_id: str,
    node_id: str,
    is_locked: bool,
    reason: str | None = None,
) -> dict[str, Any]:
    """Set or clear the import lock on a node."""
    service.toggle_lock(class_id, node_id, is_locked, reason=reason)
    return {"success": True}


@_guarded
def outline_get_tree(
    service: NodeTreeService,
    *,
    class_id: str,
    only_active: bool = False,
    output_format: str = "json",
    max_depth: int | None = None,
) -> dict[str, Any]:
    """Return the nested outline of a class as JSON or markdown.

    Args:
        class_id: Class owning the outline.
        only_active: Exclude soft-deleted nodes.
        output_format: "json" (nested nodes) or "markdown".
        max_depth: Markdown only; levels below the roots to include.
    """
    tree = service.get_tree(class_id, only_active=only_active)
    if output_format == "markdown":
        return {
            "content": render_tree_as_markdown(tree, max_depth=max_depth, show_ids=True),
            "count": count_items(tree),
        }
    return {"tree": tree_to_dicts(tree), "count": count_items(tree)}


@_guarded
def outline_get_flat(
    service: NodeTreeService,
    *,
    class_id: str,
    only_active: bool = False,
) -> dict[str, Any]:
    """Return a flat list of a class's nodes."""
    nodes = service.get_flat(class_id, only_active=only_active)
    return {"nodes": [node_to_row(n) for n in nodes], "count": len(nodes)}


# --- MCP Server Setup ---


@dataclass
class ServerContext:
    """Shared resources for the MCP server lifetime."""

    service: NodeTreeService
    conn: sqlite3.Connection | None = None


def open_sqlite_service(data_dir: Path) -> tuple[NodeTreeService, sqlite3.Connection]:
    """Open (creating if needed) the local database and wrap it in a service."""
    data_dir.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(data_dir / DATABASE_FILENAME), check_same_thread=False)
    migrate_schema(conn)
    return NodeTreeService(SqliteNodeStore(conn)), conn


@asynccontextmanager
async def server_lifespan(_server: FastMCP) -> AsyncIterator[ServerContext]:
    """Open the configured store on startup, close on shutdown."""
    if resolve_backend() == "rest":
        logger.info("Using REST node store")
        yield ServerContext(service=NodeTreeService(RestNodeStore()))
        return

    data_dir = resolve_data_directory()
    service, conn = open_sqlite_service(data_dir)
    logger.info("Using SQLite node store in {}", data_dir)
    try:
        yield ServerContext(service=service, conn=conn)
    finally:
        conn.close()


mcp_server = FastMCP(
    "class-outline",
    instructions="""\
Class outlines are ordered trees. Siblings under one parent are numbered 1..N
by `sequence`; every edit keeps that numbering gap-free.

## Tips
- Call outline_get_tree_tool first to see node ids and current positions.
- Reorder must list every active sibling of the parent, not a subset.
- Locked nodes come from a curriculum import: they cannot be moved, deleted
  or given new children until unlocked with outline_toggle_lock_tool.
""",
    lifespan=server_lifespan,
)


def _service(mcp_ctx: Context) -> NodeTreeService:
    ctx: ServerContext = mcp_ctx.request_context.lifespan_context  # type: ignore[assignment]
    return ctx.service


# --- MCP Tool Wrappers ---


@mcp_server.tool()
async def outline_get_tree_tool(
    ctx: Context,
    class_id: str,
    only_active: bool = False,
    output_format: str = "json",
    max_depth: int | None = None,
) -> dict[str, Any]:
    """Get the nested outline of a class.

    Args:
        class_id: Class ID.
        only_active: Exclude soft-deleted nodes.
        output_format: "json" (structured) or "markdown" (human-readable).
        max_depth: Markdown only; max levels below the roots.
    """
    return outline_get_tree(
        _service(ctx),
        class_id=class_id,
        only_active=only_active,
        output_format=output_format,
        max_depth=max_depth,
    )


@mcp_server.tool()
async def outline_get_flat_tool(
    ctx: Context,
    class_id: str,
    only_active: bool = False,
) -> dict[str, Any]:
    """Get a flat list of a class's nodes ordered by parent and sequence."""
    return outline_get_flat(_service(ctx), class_id=class_id, only_active=only_active)


@mcp_server.tool()
async def outline_create_node_tool(
    ctx: Context,
    class_id: str,
    title: str,
    node_type: str | None = None,
    description: str | None = None,
    parent_id: str | None = None,
    sequence: int | None = None,
) -> dict[str, Any]:
    """Create a node. Existing siblings at or after `sequence` shift down.

    Args:
        class_id: Class ID.
        title: Node title.
        node_type: Optional classification (e.g. "module", "lesson").
        description: Optional description.
        parent_id: Parent node ID (omit for root level).
        sequence: 1-based position (omit to append).
    """
    return outline_create_node(
        _service(ctx),
        class_id=class_id,
        title=title,
        node_type=node_type,
        description=description,
        parent_id=parent_id,
        sequence=sequence,
    )


@mcp_server.tool()
async def outline_update_node_tool(
    ctx: Context,
    class_id: str,
    node_id: str,
    title: str | None = None,
    node_type: str | None = None,
    description: str | None = None,
    sequence: int | None = None,
) -> dict[str, Any]:
    """Update a node's title, type, description, or position under its parent."""
    return outline_update_node(
        _service(ctx),
        class_id=class_id,
        node_id=node_id,
        title=title,
        node_type=node_type,
        description=description,
        sequence=sequence,
    )


@mcp_server.tool()
async def outline_move_node_tool(
    ctx: Context,
    class_id: str,
    node_id: str,
    new_sequence: int,
    new_parent_id: str | None = None,
) -> dict[str, Any]:
    """Move a node under another parent (omit new_parent_id for root level)."""
    return outline_move_node(
        _service(ctx),
        class_id=class_id,
        node_id=node_id,
        new_sequence=new_sequence,
        new_parent_id=new_parent_id,
    )


@mcp_server.tool()
async def outline_reorder_nodes_tool(
    ctx: Context,
    class_id: str,
    items: list[dict[str, Any]],
    parent_id: str | None = None,
) -> dict[str, Any]:
    """Reorder all active children of a parent.

    Args:
        class_id: Class ID.
        items: Every active sibling as {"node_id": ..., "sequence": ...}.
        parent_id: Parent node ID (omit for root level).
    """
    return outline_reorder_nodes(
        _service(ctx), class_id=class_id, items=items, parent_id=parent_id
    )


@mcp_server.tool()
async def outline_soft_delete_node_tool(
    ctx: Context,
    class_id: str,
    node_id: str,
) -> dict[str, Any]:
    """Soft delete a node. Later siblings move up to close the gap."""
    return outline_soft_delete_node(_service(ctx), class_id=class_id, node_id=node_id)


@mcp_server.tool()
async def outline_toggle_lock_tool(
    ctx: Context,
    class_id: str,
    node_id: str,
    is_locked: bool,
    reason: str | None = None,
) -> dict[str, Any]:
    """Lock or unlock a node against structural edits."""
    return outline_toggle_lock(
        _service(ctx), class_id=class_id, node_id=node_id, is_locked=is_locked, reason=reason
    )


def run_mcp_server() -> None:
    """Run the MCP server with stdio transport."""
    from class_outline.logging_config import configure_logging

    log_file = os.environ.get("CLASS_OUTLINE_LOG_FILE")
    configure_logging(verbose=False, log_file=Path(log_file) if log_file else None)
    mcp_server.run(transport="stdio")
