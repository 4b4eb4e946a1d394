"""MCP server exposing knowledge base tree and search tools."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from loguru import logger
from mcp.server.fastmcp import Context, FastMCP

from knowledge_base.config import DEFAULT_SEARCH_LIMIT, DEFAULT_USER, resolve_database_path
from knowledge_base.core.database.store import Database
from knowledge_base.core.search.highlight import count_matches
from knowledge_base.core.tree.navigation import (
    breadcrumbs,
    build_tree,
    find_in_tree,
    flatten_tree,
    get_siblings,
)
from knowledge_base.core.workspace import Workspace
from knowledge_base.errors import KnowledgeBaseError
from knowledge_base.models.node import UNSET, NewNode, Node, NodeKind, NodeUpdate, TreeNode


def _iso(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=UTC).isoformat()


def _serialize(node: Node, *, include_content: bool = False) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "id": node.id,
        "title": node.title,
        "kind": node.kind.value,
        "parent_id": node.parent_id,
        "path": node.path,
        "position": node.position,
        "updated": _iso(node.updated_at),
    }
    if include_content:
        entry["content"] = node.content
        entry["created"] = _iso(node.created_at)
        entry["created_by"] = node.created_by
    return entry


def _error(e: KnowledgeBaseError) -> dict[str, Any]:
    result: dict[str, Any] = {"error": str(e), "error_type": type(e).__name__}
    if e.ids:
        result["ids"] = list(e.ids)
    return result


# --- Core functions (testable without MCP context) ---


def kb_search(
    ws: Workspace,
    *,
    query: str,
    limit: int = DEFAULT_SEARCH_LIMIT,
    offset: int = 0,
) -> dict[str, Any]:
    """Search documents using ranked full-text search.

    Args:
        query: Search text. All words must match; stemming is applied.
        limit: Max results (1-100, default 20).
        offset: Pagination offset.
    """
    try:
        page = ws.search.search(query, limit=limit, offset=offset)
    except KnowledgeBaseError as e:
        return {**_error(e), "results": [], "count": 0, "total": 0}

    results = [
        {
            "id": r.id,
            "title": r.title,
            "snippet": r.snippet,
            "rank": r.rank,
            "path": r.path,
            "match_count": count_matches(r.content, query),
        }
        for r in page.results
    ]
    output: dict[str, Any] = {
        "results": results,
        "count": len(results),
        "total": page.total,
        "has_more": offset + len(results) < page.total,
    }
    if output["has_more"]:
        output["next_offset"] = offset + limit
    return output


def kb_get_node(
    ws: Workspace,
    *,
    node_id: str,
    sibling_count: int = 3,
) -> dict[str, Any]:
    """Get a node with its content, breadcrumbs, siblings, and children."""
    node = ws.tree.get(node_id)
    if node is None:
        return {"error": f"Node '{node_id}' not found."}

    before, after = get_siblings(ws.tree, node, count=sibling_count)
    children = ws.tree.list_children(node_id) if node.is_folder else []
    return {
        "node": _serialize(node, include_content=True),
        "breadcrumbs": breadcrumbs(ws.tree, node_id),
        "siblings_before": [{"id": s.id, "title": s.title} for s in before],
        "siblings_after": [{"id": s.id, "title": s.title} for s in after],
        "children": [_serialize(c) for c in children],
    }


def kb_list_children(
    ws: Workspace,
    *,
    parent_id: str | None = None,
    recursive: bool = False,
) -> dict[str, Any]:
    """List the children of a folder (root when parent_id is None)."""
    if parent_id is not None and ws.tree.get(parent_id) is None:
        return {"error": f"Node '{parent_id}' not found.", "children": [], "count": 0}
    children = ws.tree.list_children(parent_id, recursive=recursive)
    return {"children": [_serialize(c) for c in children], "count": len(children)}


def kb_get_tree(
    ws: Workspace,
    *,
    node_id: str | None = None,
    max_depth: int | None = None,
) -> dict[str, Any]:
    """Return the hierarchy as nested JSON.

    Args:
        node_id: Serve only the subtree rooted at this node (None = everything).
        max_depth: Levels to include (None = unlimited). Truncated nodes keep
            their child_count but have no children key.
    """

    def _build(level: list[TreeNode], remaining: int | None) -> list[dict[str, Any]]:
        entries = []
        for tree_node in level:
            entry = _serialize(tree_node.node)
            entry["child_count"] = len(tree_node.children)
            if tree_node.children and (remaining is None or remaining > 1):
                entry["children"] = _build(
                    tree_node.children, None if remaining is None else remaining - 1
                )
            entries.append(entry)
        return entries

    roots = build_tree(ws.tree.list_all())
    if node_id is not None:
        subtree = find_in_tree(roots, node_id)
        if subtree is None:
            return {"error": f"Node '{node_id}' not found.", "tree": [], "node_count": 0}
        roots = [subtree]
    return {"tree": _build(roots, max_depth), "node_count": len(flatten_tree(roots))}


def kb_create_node(
    ws: Workspace,
    *,
    title: str,
    kind: str = "document",
    content: str | None = None,
    parent_id: str | None = None,
    created_by: str = DEFAULT_USER,
) -> dict[str, Any]:
    """Create a document or folder at the end of its parent."""
    try:
        node_kind = NodeKind(kind)
    except ValueError:
        return {"error": f"Invalid node kind {kind!r}", "error_type": "ValidationError"}
    try:
        node = ws.tree.create(
            NewNode(
                title=title,
                kind=node_kind,
                created_by=created_by,
                content=content,
                parent_id=parent_id,
            )
        )
    except KnowledgeBaseError as e:
        return _error(e)
    return {"success": True, "node": _serialize(node)}


def kb_update_node(
    ws: Workspace,
    *,
    node_id: str,
    title: str | None = None,
    content: str | None = None,
    parent_id: str | None = None,
    move_to_root: bool = False,
) -> dict[str, Any]:
    """Change a node's title, content, or parent."""
    changes = NodeUpdate(
        title=UNSET if title is None else title,
        content=UNSET if content is None else content,
        parent_id=None if move_to_root else (UNSET if parent_id is None else parent_id),
    )
    try:
        node = ws.tree.update(node_id, changes)
    except KnowledgeBaseError as e:
        return _error(e)
    return {"success": True, "node": _serialize(node)}


def kb_move_node(
    ws: Workspace,
    *,
    node_id: str,
    parent_id: str | None = None,
    move_to_root: bool = False,
    position: int | None = None,
) -> dict[str, Any]:
    """Move a node to another folder and/or sibling position."""
    target = None if move_to_root else (UNSET if parent_id is None else parent_id)
    try:
        node = ws.mover.move(node_id, parent_id=target, position=position)
    except KnowledgeBaseError as e:
        return _error(e)
    return {"success": True, "node": _serialize(node)}


def kb_reorder_nodes(
    ws: Workspace,
    *,
    node_ids: list[str],
    parent_id: str | None = None,
) -> dict[str, Any]:
    """Put a folder's children in the given order."""
    try:
        count = ws.mover.reorder(parent_id, node_ids)
    except KnowledgeBaseError as e:
        return _error(e)
    return {"success": True, "updated_count": count}


def kb_delete_node(ws: Workspace, *, node_id: str) -> dict[str, Any]:
    """Delete a document, or a folder that has no children."""
    try:
        ws.tree.delete(node_id)
    except KnowledgeBaseError as e:
        return _error(e)
    return {"success": True, "node_id": node_id}


# --- MCP Server Setup ---


@dataclass
class ServerContext:
    """Shared resources for the MCP server lifetime."""

    workspace: Workspace


@asynccontextmanager
async def server_lifespan(_server: FastMCP) -> AsyncIterator[ServerContext]:
    """Open database on startup, close on shutdown."""
    db = Database(resolve_database_path()).open()
    logger.info("Serving knowledge base from {}", db.path)
    try:
        yield ServerContext(workspace=Workspace.build(db))
    finally:
        db.close()


mcp_server = FastMCP(
    "knowledge-base",
    instructions="""\
A personal knowledge base of markdown documents organized in folders.

## Finding content
1. Search with kb_search_tool; results carry a highlighted snippet and the
   folder path of each document.
2. Call kb_get_node_tool with a result id to read the full content.

## Organizing
- Folders hold documents and other folders; documents cannot hold children.
- kb_move_node_tool changes a node's folder and/or position.
- kb_reorder_nodes_tool sets the order of a folder's children.
- A folder must be emptied before kb_delete_node_tool can delete it.
""",
    lifespan=server_lifespan,
)


def _ws(mcp_ctx: Context) -> Workspace:
    ctx: ServerContext = mcp_ctx.request_context.lifespan_context  # type: ignore[assignment]
    return ctx.workspace


# --- MCP Tool Wrappers ---


@mcp_server.tool()
async def kb_search_tool(
    ctx: Context,
    query: str,
    limit: int = DEFAULT_SEARCH_LIMIT,
    offset: int = 0,
) -> dict[str, Any]:
    """Search documents by content and title.

    All words must match; stemming is applied. Results are ranked by
    relevance and carry a highlighted snippet and breadcrumb path.

    Pagination: When has_more is true, use next_offset in a follow-up call.

    Args:
        query: Search text.
        limit: Max results (1-100, default 20).
        offset: Pagination offset.
    """
    return kb_search(_ws(ctx), query=query, limit=limit, offset=offset)


@mcp_server.tool()
async def kb_get_node_tool(ctx: Context, node_id: str, sibling_count: int = 3) -> dict[str, Any]:
    """Read a node's content with breadcrumbs, siblings, and children.

    Args:
        node_id: Node id from search results or listings.
        sibling_count: Siblings before/after to include.
    """
    return kb_get_node(_ws(ctx), node_id=node_id, sibling_count=sibling_count)


@mcp_server.tool()
async def kb_list_children_tool(
    ctx: Context,
    parent_id: str | None = None,
    recursive: bool = False,
) -> dict[str, Any]:
    """List a folder's children in order. Omit parent_id for the root.

    Args:
        parent_id: Folder id.
        recursive: Include every descendant, depth first.
    """
    return kb_list_children(_ws(ctx), parent_id=parent_id, recursive=recursive)


@mcp_server.tool()
async def kb_get_tree_tool(
    ctx: Context, node_id: str | None = None, max_depth: int | None = None
) -> dict[str, Any]:
    """Get the folder hierarchy as nested JSON.

    Args:
        node_id: Return only the subtree under this node (None = whole tree).
        max_depth: Max depth levels (None = unlimited).
    """
    return kb_get_tree(_ws(ctx), node_id=node_id, max_depth=max_depth)


@mcp_server.tool()
async def kb_create_node_tool(
    ctx: Context,
    title: str,
    kind: str = "document",
    content: str | None = None,
    parent_id: str | None = None,
) -> dict[str, Any]:
    """Create a document or folder at the end of its parent folder.

    Args:
        title: Title (1-255 characters).
        kind: "document" or "folder".
        content: Markdown content for documents.
        parent_id: Folder to create in (None = root).
    """
    return kb_create_node(
        _ws(ctx), title=title, kind=kind, content=content, parent_id=parent_id
    )


@mcp_server.tool()
async def kb_update_node_tool(
    ctx: Context,
    node_id: str,
    title: str | None = None,
    content: str | None = None,
    parent_id: str | None = None,
    move_to_root: bool = False,
) -> dict[str, Any]:
    """Change a node's title, content, or parent folder.

    Args:
        node_id: Node id.
        title: New title.
        content: New markdown content (documents only).
        parent_id: New parent folder; the node is appended at its end.
        move_to_root: Move the node to the root instead.
    """
    return kb_update_node(
        _ws(ctx),
        node_id=node_id,
        title=title,
        content=content,
        parent_id=parent_id,
        move_to_root=move_to_root,
    )


@mcp_server.tool()
async def kb_move_node_tool(
    ctx: Context,
    node_id: str,
    parent_id: str | None = None,
    move_to_root: bool = False,
    position: int | None = None,
) -> dict[str, Any]:
    """Move a node to another folder and/or position among its siblings.

    Args:
        node_id: Node id.
        parent_id: Destination folder (omit to stay in the current one).
        move_to_root: Move to the root instead.
        position: Zero-based target index; clamped to the end.
    """
    return kb_move_node(
        _ws(ctx),
        node_id=node_id,
        parent_id=parent_id,
        move_to_root=move_to_root,
        position=position,
    )


@mcp_server.tool()
async def kb_reorder_nodes_tool(
    ctx: Context,
    node_ids: list[str],
    parent_id: str | None = None,
) -> dict[str, Any]:
    """Set the order of a folder's children.

    Args:
        node_ids: Child ids in their new order.
        parent_id: Folder id (None = root).
    """
    return kb_reorder_nodes(_ws(ctx), node_ids=node_ids, parent_id=parent_id)


@mcp_server.tool()
async def kb_delete_node_tool(ctx: Context, node_id: str) -> dict[str, Any]:
    """Delete a document, or a folder with no children.

    Args:
        node_id: Node id.
    """
    return kb_delete_node(_ws(ctx), node_id=node_id)


def run_mcp_server() -> None:
    """Run the MCP server with stdio transport."""
    from knowledge_base.logging_config import configure_logging

    configure_logging(quiet=True)
    mcp_server.run(transport="stdio")
