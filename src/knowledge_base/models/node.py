"""Domain models for the knowledge base."""

import enum
from dataclasses import dataclass, field


class NodeKind(enum.StrEnum):
    DOCUMENT = "document"
    FOLDER = "folder"


class Unset:
    """Marker for a field the caller did not supply."""

    _instance: "Unset | None" = None

    def __new__(cls) -> "Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = Unset()


@dataclass(frozen=True)
class Node:
    """A document or folder in the hierarchy."""

    id: str
    title: str
    kind: NodeKind
    parent_id: str | None
    path: str
    position: int
    created_at: int
    updated_at: int
    created_by: str
    content: str | None = None

    @property
    def is_folder(self) -> bool:
        return self.kind is NodeKind.FOLDER


@dataclass(frozen=True)
class NewNode:
    """A request to create a node."""

    title: str
    kind: NodeKind
    created_by: str
    content: str | None = None
    parent_id: str | None = None


@dataclass(frozen=True)
class NodeUpdate:
    """A partial update; fields left as UNSET are not touched.

    ``parent_id=None`` moves the node to the root.
    """

    title: str | Unset = UNSET
    content: str | Unset = UNSET
    parent_id: str | None | Unset = UNSET

    def is_empty(self) -> bool:
        return all(
            value is UNSET for value in (self.title, self.content, self.parent_id)
        )


@dataclass
class TreeNode:
    """A node with its ordered children, for tree views."""

    node: Node
    children: list["TreeNode"] = field(default_factory=list)


@dataclass(frozen=True)
class SearchResult:
    """A search hit with a highlighted snippet and breadcrumb path."""

    id: str
    title: str
    content: str
    snippet: str
    rank: float
    path: str


@dataclass(frozen=True)
class SearchPage:
    """One page of search results plus the total match count."""

    results: tuple[SearchResult, ...]
    total: int
    query: str
    fallback: bool = False
