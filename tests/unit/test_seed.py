"""Tests for the sample tree."""

import pytest

from knowledge_base.core.importer.seed import (
    GETTING_STARTED_TITLE,
    WELCOME_TITLE,
    seed_sample_tree,
)
from knowledge_base.core.workspace import Workspace
from knowledge_base.errors import PersistenceFailure
from knowledge_base.models.node import NewNode, Node, NodeKind


def test_seed_creates_welcome_folder_with_document(ws: Workspace) -> None:
    folder = seed_sample_tree(ws.tree, created_by="admin")
    assert folder is not None
    assert folder.kind is NodeKind.FOLDER
    assert folder.title == WELCOME_TITLE

    (doc,) = ws.tree.list_children(folder.id)
    assert doc.title == GETTING_STARTED_TITLE
    assert doc.path == "welcome/getting-started"
    assert doc.created_by == "admin"
    assert ws.search.search("markdown").total == 1


def test_seed_is_idempotent(ws: Workspace) -> None:
    seed_sample_tree(ws.tree, created_by="admin")
    assert seed_sample_tree(ws.tree, created_by="admin") is None
    assert len(ws.tree.list_all()) == 2


def test_seed_failure_leaves_no_partial_tree(
    ws: Workspace, monkeypatch: pytest.MonkeyPatch
) -> None:
    create = ws.tree.create
    calls: list[NewNode] = []

    def fail_on_document(new_node: NewNode) -> Node:
        calls.append(new_node)
        if new_node.kind is NodeKind.DOCUMENT:
            raise PersistenceFailure("disk full")
        return create(new_node)

    monkeypatch.setattr(ws.tree, "create", fail_on_document)
    with pytest.raises(PersistenceFailure):
        seed_sample_tree(ws.tree, created_by="admin")
    assert len(calls) == 2
    assert ws.tree.list_all() == []
