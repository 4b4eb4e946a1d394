"""Node builders shared by the tests."""

from knowledge_base.core.workspace import Workspace
from knowledge_base.models.node import NewNode, Node, NodeKind

USER = "tester"


def make_folder(ws: Workspace, title: str, parent_id: str | None = None) -> Node:
    return ws.tree.create(
        NewNode(title=title, kind=NodeKind.FOLDER, created_by=USER, parent_id=parent_id)
    )


def make_doc(
    ws: Workspace, title: str, content: str = "", parent_id: str | None = None
) -> Node:
    return ws.tree.create(
        NewNode(
            title=title,
            kind=NodeKind.DOCUMENT,
            created_by=USER,
            content=content,
            parent_id=parent_id,
        )
    )


def positions(ws: Workspace, parent_id: str | None) -> list[tuple[str, int]]:
    """(title, position) pairs of a sibling group in position order."""
    return [(n.title, n.position) for n in ws.tree.list_children(parent_id)]
