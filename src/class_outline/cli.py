"""CLI for class outlines (edit, browse, MCP server)."""

import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from class_outline.config import resolve_data_directory
from class_outline.core.service import NodeTreeService
from class_outline.core.store.rows import node_to_row, tree_to_dicts
from class_outline.core.tree.markdown import render_tree_as_markdown
from class_outline.errors import ClassNodeError
from class_outline.logging_config import configure_logging
from class_outline.models.node import ClassNode

app = typer.Typer(help="Class outline: edit and browse ordered curriculum trees.")

DataDirOption = Annotated[
    Path | None,
    typer.Option("--data-dir", "-d", help="Outline database directory"),
]
ParentOption = Annotated[
    str | None,
    typer.Option("--parent", "-p", help="Parent node ID (omit for root level)"),
]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    configure_logging(verbose=verbose)


@contextmanager
def _open_service(data_dir: Path | None) -> Iterator[NodeTreeService]:
    """Open the local outline database and report service errors as exit code 1."""
    from class_outline.mcp.server import open_sqlite_service

    service, conn = open_sqlite_service(data_dir or resolve_data_directory())
    try:
        yield service
    except ClassNodeError as e:
        logger.error("{}", e)
        raise typer.Exit(1) from e
    finally:
        conn.close()


def _echo_node(node: ClassNode, output_json: bool) -> None:
    if output_json:
        typer.echo(json.dumps(node_to_row(node), indent=2))
    else:
        typer.echo(f"{node.sequence}. {node.title}  id={node.id}  parent={node.parent_id}")


@app.command()
def create(
    class_id: str = typer.Argument(..., help="Class ID"),
    title: str = typer.Argument(..., help="Node title"),
    parent: ParentOption = None,
    node_type: Annotated[
        str | None, typer.Option("--type", "-t", help="Node type, e.g. module or lesson")
    ] = None,
    description: Annotated[
        str | None, typer.Option("--description", help="Node description")
    ] = None,
    sequence: Annotated[
        int | None, typer.Option("--sequence", "-s", help="1-based position (default: append)")
    ] = None,
    data_dir: DataDirOption = None,
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Create a node, shifting later siblings down."""
    if not title.strip():
        typer.echo("Title is required.")
        raise typer.Exit(1)
    with _open_service(data_dir) as service:
        node = service.create_node(
            class_id,
            title.strip(),
            parent_id=parent,
            node_type=node_type,
            description=description,
            sequence=sequence,
        )
    _echo_node(node, output_json)


@app.command()
def update(
    class_id: str = typer.Argument(..., help="Class ID"),
    node_id: str = typer.Argument(..., help="Node ID"),
    title: Annotated[str | None, typer.Option("--title", help="New title")] = None,
    node_type: Annotated[str | None, typer.Option("--type", "-t", help="New node type")] = None,
    description: Annotated[
        str | None, typer.Option("--description", help="New description")
    ] = None,
    sequence: Annotated[
        int | None, typer.Option("--sequence", "-s", help="New position under the same parent")
    ] = None,
    data_dir: DataDirOption = None,
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Update a node's attributes or position among its siblings."""
    with _open_service(data_dir) as service:
        node = service.update_node(
            class_id,
            node_id,
            title=title,
            node_type=node_type,
            description=description,
            sequence=sequence,
        )
    _echo_node(node, output_json)


@app.command()
def move(
    class_id: str = typer.Argument(..., help="Class ID"),
    node_id: str = typer.Argument(..., help="Node ID"),
    new_sequence: int = typer.Argument(..., help="1-based position under the new parent"),
    parent: ParentOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """Move a node under another parent in the same class."""
    with _open_service(data_dir) as service:
        node = service.move_node(class_id, node_id, new_sequence, new_parent_id=parent)
    typer.echo(f"Moved {node_id} to parent {node.parent_id} at sequence {node.sequence}")


@app.command()
def reorder(
    class_id: str = typer.Argument(..., help="Class ID"),
    node_ids: list[str] = typer.Argument(..., help="Every active sibling, in the new order"),
    parent: ParentOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """Reorder the children of a parent to the given order."""
    items = [(node_id, position) for position, node_id in enumerate(node_ids, start=1)]
    with _open_service(data_dir) as service:
        changes = service.reorder_nodes(class_id, items, parent_id=parent)
    typer.echo(f"Reordered {len(items)} nodes ({len(changes)} changed)")


@app.command()
def delete(
    class_id: str = typer.Argument(..., help="Class ID"),
    node_id: str = typer.Argument(..., help="Node ID"),
    data_dir: DataDirOption = None,
) -> None:
    """Soft delete a node and close the gap among its siblings."""
    with _open_service(data_dir) as service:
        service.soft_delete_node(class_id, node_id)
    typer.echo(f"Deleted {node_id}")


@app.command()
def lock(
    class_id: str = typer.Argument(..., help="Class ID"),
    node_id: str = typer.Argument(..., help="Node ID"),
    reason: Annotated[str | None, typer.Option("--reason", "-r", help="Why it is locked")] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Lock a node against structural edits."""
    with _open_service(data_dir) as service:
        service.toggle_lock(class_id, node_id, True, reason=reason)
    typer.echo(f"Locked {node_id}")


@app.command()
def unlock(
    class_id: str = typer.Argument(..., help="Class ID"),
    node_id: str = typer.Argument(..., help="Node ID"),
    data_dir: DataDirOption = None,
) -> None:
    """Remove the import lock from a node."""
    with _open_service(data_dir) as service:
        service.toggle_lock(class_id, node_id, False)
    typer.echo(f"Unlocked {node_id}")


@app.command()
def tree(
    class_id: str = typer.Argument(..., help="Class ID"),
    only_active: bool = typer.Option(False, "--only-active", "-a", help="Hide deleted nodes"),
    max_depth: Annotated[
        int | None,
        typer.Option("--max-depth", "-m", help="Max depth levels to render"),
    ] = None,
    data_dir: DataDirOption = None,
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show a class outline as markdown or nested JSON."""
    with _open_service(data_dir) as service:
        items = service.get_tree(class_id, only_active=only_active)

    if output_json:
        typer.echo(json.dumps(tree_to_dicts(items), indent=2))
    elif items:
        typer.echo(render_tree_as_markdown(items, max_depth=max_depth, show_ids=True))
    else:
        typer.echo(f"Class '{class_id}' has no nodes.")


@app.command()
def flat(
    class_id: str = typer.Argument(..., help="Class ID"),
    only_active: bool = typer.Option(False, "--only-active", "-a", help="Hide deleted nodes"),
    data_dir: DataDirOption = None,
) -> None:
    """List a class's nodes ordered by parent and sequence."""
    with _open_service(data_dir) as service:
        nodes = service.get_flat(class_id, only_active=only_active)
    typer.echo(f"{len(nodes)} nodes:\n")
    for n in nodes:
        state = "" if n.is_active else "  (inactive)"
        typer.echo(f"  [{n.parent_id or 'root'}] {n.sequence}. {n.title}  id={n.id}{state}")


@app.command()
def serve() -> None:
    """Start the MCP server (stdio transport)."""
    from class_outline.mcp.server import run_mcp_server

    run_mcp_server()
