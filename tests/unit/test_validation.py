"""Tests for structural validation shared by create, update and move."""

import pytest

from knowledge_base.core.tree.queries import join_path, slugify
from knowledge_base.core.tree.validation import check_parent, validate_title, would_create_cycle
from knowledge_base.core.workspace import Workspace
from knowledge_base.errors import ParentNotFoundError, ValidationError
from knowledge_base.models.node import Node
from tests.unit.helpers import make_folder


@pytest.mark.parametrize(
    ("title", "expected"),
    [
        ("Hello World", "hello-world"),
        ("  C++ & Rust!  ", "c-rust"),
        ("already-slugged", "already-slugged"),
        ("Über Café", "ber-caf"),
        ("!!!", ""),
    ],
)
def test_slugify(title: str, expected: str) -> None:
    assert slugify(title) == expected


def test_join_path() -> None:
    assert join_path("", "Top Level") == "top-level"
    assert join_path(None, "Top Level") == "top-level"
    assert join_path("a/b", "Leaf Note") == "a/b/leaf-note"


def test_validate_title_returns_title() -> None:
    assert validate_title("ok") == "ok"


@pytest.mark.parametrize("title", [None, 42, "", "  ", "y" * 256])
def test_validate_title_rejects(title: object) -> None:
    with pytest.raises(ValidationError):
        validate_title(title)


def test_check_parent_returns_parent(ws: Workspace, populated: dict[str, Node]) -> None:
    parent = check_parent(ws.db.conn, parent_id=populated["Archive"].id)
    assert parent.id == populated["Archive"].id


def test_check_parent_missing(ws: Workspace) -> None:
    with pytest.raises(ParentNotFoundError) as info:
        check_parent(ws.db.conn, parent_id="ghost")
    assert info.value.ids == ("ghost",)


def test_cycle_detection_terminates_on_corrupt_loop(ws: Workspace) -> None:
    a = make_folder(ws, "A")
    b = make_folder(ws, "B", a.id)
    c = make_folder(ws, "C")
    # Corrupt the tree directly: A and B point at each other.
    ws.db.conn.execute("UPDATE nodes SET parent_id = ? WHERE id = ?", (b.id, a.id))
    assert would_create_cycle(ws.db.conn, c.id, a.id)


def test_cycle_detection_stops_at_missing_ancestor(ws: Workspace) -> None:
    a = make_folder(ws, "A")
    b = make_folder(ws, "B", a.id)
    c = make_folder(ws, "C")
    ws.db.conn.execute("DELETE FROM nodes WHERE id = ?", (a.id,))
    assert not would_create_cycle(ws.db.conn, c.id, b.id)
