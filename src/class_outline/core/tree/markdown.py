"""Render outline trees as markdown."""

import io

from class_outline.models.node import TreeItem


def render_tree_as_markdown(
    items: list[TreeItem],
    *,
    max_depth: int | None = None,
    include_descriptions: bool = True,
    show_ids: bool = False,
) -> str:
    """Render tree items as an indented markdown bullet list.

    Args:
        items: Root-level items, already ordered.
        max_depth: Max levels below the roots to include (None = unlimited).
        include_descriptions: Whether to include node descriptions.
        show_ids: Append each node's id.

    Returns:
        Markdown string with bullet-list hierarchy.
    """
    out = io.StringIO()
    stack: list[tuple[TreeItem, int]] = [(item, 0) for item in reversed(items)]
    while stack:
        item, depth = stack.pop()
        node = item.node
        indent = "    " * depth

        prefix = f"- {node.sequence}. "
        if node.node_type:
            prefix += f"[{node.node_type}] "
        flags = []
        if node.is_locked_by_import:
            flags.append("locked")
        if not node.is_active:
            flags.append("inactive")
        suffix = f" ({', '.join(flags)})" if flags else ""
        if show_ids:
            suffix += f"  id={node.id}"

        lines = node.title.split("\n")
        out.write(f"{indent}{prefix}{lines[0]}{suffix}\n")
        for line in lines[1:]:
            out.write(f"{indent}  {line}\n")

        if include_descriptions and node.description:
            for desc_line in node.description.split("\n"):
                out.write(f"{indent}  > {desc_line}\n")

        if max_depth is not None and depth >= max_depth:
            # Truncation indicator when children are cut off by max_depth
            if item.children:
                child_indent = "    " * (depth + 1)
                count = len(item.children)
                noun = "child" if count == 1 else "children"
                out.write(f"{child_indent}- ... ({count} more {noun}, id={node.id})\n")
            continue

        stack.extend((child, depth + 1) for child in reversed(item.children))

    return out.getvalue()
