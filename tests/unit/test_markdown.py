"""Tests for markdown rendering of outline trees."""

from dataclasses import replace

from class_outline.core.tree.builder import build_tree
from class_outline.core.tree.markdown import render_tree_as_markdown
from tests.unit.fakes import make_node

NODES = [
    replace(make_node("M", 1, title="Module"), node_type="module", description="Intro\nsecond"),
    make_node("L1", 1, parent_id="M", title="Lesson 1"),
    make_node("L1a", 1, parent_id="L1", title="Reading"),
    make_node("L2", 2, parent_id="M", title="Lesson 2", is_locked_by_import=True),
    make_node("N", 2, title="Notes", is_active=False),
]


def test_render_nests_children_by_indentation() -> None:
    md = render_tree_as_markdown(build_tree(NODES))
    lines = md.splitlines()
    assert lines[0] == "- 1. [module] Module"
    assert "    - 1. Lesson 1" in lines
    assert "        - 1. Reading" in lines


def test_render_includes_descriptions_as_quotes() -> None:
    md = render_tree_as_markdown(build_tree(NODES))
    assert "  > Intro\n  > second\n" in md
    assert "> Intro" not in render_tree_as_markdown(build_tree(NODES), include_descriptions=False)


def test_render_flags_locked_and_inactive_nodes() -> None:
    md = render_tree_as_markdown(build_tree(NODES))
    assert "- 2. Lesson 2 (locked)" in md
    assert "- 2. Notes (inactive)" in md


def test_render_with_depth_limit_shows_truncation() -> None:
    md = render_tree_as_markdown(build_tree(NODES), max_depth=1)
    assert "Lesson 1" in md
    assert "Reading" not in md
    assert "... (1 more child, id=L1)" in md


def test_render_depth_zero_counts_all_children() -> None:
    md = render_tree_as_markdown(build_tree(NODES), max_depth=0)
    assert "... (2 more children, id=M)" in md
    assert "Lesson" not in md


def test_render_no_truncation_without_max_depth() -> None:
    assert "... (" not in render_tree_as_markdown(build_tree(NODES))


def test_render_show_ids() -> None:
    md = render_tree_as_markdown(build_tree(NODES), show_ids=True)
    assert "- 1. [module] Module  id=M" in md


def test_render_empty_tree() -> None:
    assert render_tree_as_markdown([]) == ""
