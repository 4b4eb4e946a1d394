"""Personal knowledge base: document tree and ranked search."""

from knowledge_base.core.database.store import Database
from knowledge_base.core.search.searcher import SearchEngine
from knowledge_base.core.tree.reparent import ReparentEngine
from knowledge_base.core.tree.store import TreeStore
from knowledge_base.core.workspace import Workspace, open_workspace
from knowledge_base.models.node import (
    UNSET,
    NewNode,
    Node,
    NodeKind,
    NodeUpdate,
    SearchPage,
    SearchResult,
)
from knowledge_base.protocols import Notifier

__all__ = [
    "UNSET",
    "Database",
    "NewNode",
    "Node",
    "NodeKind",
    "NodeUpdate",
    "Notifier",
    "ReparentEngine",
    "SearchEngine",
    "SearchPage",
    "SearchResult",
    "TreeStore",
    "Workspace",
    "open_workspace",
]
