"""Tests for tree navigation helpers."""

from knowledge_base.core.tree.navigation import (
    breadcrumbs,
    build_tree,
    find_in_tree,
    flatten_tree,
    full_path,
    get_siblings,
)
from knowledge_base.core.workspace import Workspace
from knowledge_base.models.node import Node
from tests.unit.helpers import make_doc


def test_build_tree_nests_by_parent_in_position_order(
    ws: Workspace, populated: dict[str, Node]
) -> None:
    roots = build_tree(ws.tree.list_all())
    assert [t.node.title for t in roots] == ["Projects", "Recipes"]
    projects = roots[0]
    assert [t.node.title for t in projects.children] == ["Python Notes", "Rust Notes", "Archive"]
    assert [t.node.title for t in projects.children[2].children] == ["Old Ideas"]


def test_build_tree_treats_orphans_as_roots(
    ws: Workspace, populated: dict[str, Node]
) -> None:
    subset = [populated["Archive"], populated["Old Ideas"], populated["Recipes"]]
    roots = build_tree(subset)
    assert {t.node.title for t in roots} == {"Archive", "Recipes"}


def test_flatten_tree_is_preorder(ws: Workspace, populated: dict[str, Node]) -> None:
    flat = flatten_tree(build_tree(ws.tree.list_all()))
    assert [n.title for n in flat] == [
        "Projects",
        "Python Notes",
        "Rust Notes",
        "Archive",
        "Old Ideas",
        "Recipes",
    ]


def test_find_in_tree(ws: Workspace, populated: dict[str, Node]) -> None:
    roots = build_tree(ws.tree.list_all())
    found = find_in_tree(roots, populated["Old Ideas"].id)
    assert found is not None
    assert found.node.title == "Old Ideas"
    assert find_in_tree(roots, "missing") is None


def test_full_path_and_breadcrumbs(ws: Workspace, populated: dict[str, Node]) -> None:
    old = populated["Old Ideas"].id
    assert full_path(ws.tree, old) == "Projects / Archive / Old Ideas"
    assert breadcrumbs(ws.tree, old) == "Projects > Archive > Old Ideas"
    assert breadcrumbs(ws.tree, "missing") == ""


def test_get_siblings_splits_before_and_after(
    ws: Workspace, populated: dict[str, Node]
) -> None:
    rust = populated["Rust Notes"]
    before, after = get_siblings(ws.tree, rust)
    assert [s.title for s in before] == ["Python Notes"]
    assert [s.title for s in after] == ["Archive"]


def test_get_siblings_respects_count(ws: Workspace) -> None:
    docs = [make_doc(ws, f"D{i}") for i in range(7)]
    before, after = get_siblings(ws.tree, docs[3], count=2)
    assert [s.title for s in before] == ["D1", "D2"]
    assert [s.title for s in after] == ["D4", "D5"]
    before, after = get_siblings(ws.tree, docs[3], count=0)
    assert before == ()
    assert after == ()
