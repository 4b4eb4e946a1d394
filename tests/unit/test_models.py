"""Tests for domain models."""

import dataclasses

import pytest

from knowledge_base.models.node import UNSET, Node, NodeKind, NodeUpdate, Unset


def _node(kind: NodeKind = NodeKind.DOCUMENT) -> Node:
    return Node(
        id="n1",
        title="Title",
        kind=kind,
        parent_id=None,
        path="title",
        position=0,
        created_at=1,
        updated_at=2,
        created_by="u",
    )


def test_node_is_frozen() -> None:
    node = _node()
    with pytest.raises(dataclasses.FrozenInstanceError):
        node.title = "Other"  # type: ignore[misc]


def test_is_folder() -> None:
    assert _node(NodeKind.FOLDER).is_folder
    assert not _node().is_folder


def test_node_kind_is_string_valued() -> None:
    assert NodeKind("folder") is NodeKind.FOLDER
    assert f"{NodeKind.DOCUMENT}" == "document"


def test_unset_is_a_falsy_singleton() -> None:
    assert Unset() is UNSET
    assert not UNSET
    assert repr(UNSET) == "UNSET"


def test_node_update_is_empty() -> None:
    assert NodeUpdate().is_empty()
    assert not NodeUpdate(title="x").is_empty()
    assert not NodeUpdate(content="").is_empty()
    # None is a real value for parent_id: move to root.
    assert not NodeUpdate(parent_id=None).is_empty()
