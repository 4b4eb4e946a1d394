"""CLI for the knowledge base (tree editing, search, MCP server)."""

import json
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict
from pathlib import Path
from typing import Annotated, Any

import typer
from loguru import logger

from knowledge_base.config import (
    DEFAULT_SEARCH_LIMIT,
    DEFAULT_USER,
    USER_ENV_VAR,
    resolve_database_path,
)
from knowledge_base.core.importer.loader import import_markdown_dir
from knowledge_base.core.importer.seed import seed_sample_tree
from knowledge_base.core.search.highlight import count_matches, strip_html
from knowledge_base.core.tree.navigation import build_tree, find_in_tree, full_path
from knowledge_base.core.workspace import Workspace, open_workspace
from knowledge_base.errors import KnowledgeBaseError, NotFoundError
from knowledge_base.logging_config import configure_logging
from knowledge_base.models.node import UNSET, NewNode, Node, NodeKind, NodeUpdate, TreeNode

app = typer.Typer(help="Knowledge base: organize markdown documents in folders and search them.")

DbOption = Annotated[
    Path | None,
    typer.Option("--db", "-d", help="Database file (default: $KB_DATABASE or ~/.local/share)"),
]
UserOption = Annotated[
    str,
    typer.Option("--user", "-u", envvar=USER_ENV_VAR, help="User recorded as the creator"),
]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    configure_logging(verbose=verbose)


@contextmanager
def _workspace(db_path: Path | None) -> Iterator[Workspace]:
    """Open the workspace; report core errors and exit with status 1."""
    try:
        with open_workspace(db_path or resolve_database_path()) as ws:
            yield ws
    except KnowledgeBaseError as e:
        logger.error("{}", e)
        raise typer.Exit(1) from e


def _node_dict(node: Node) -> dict[str, Any]:
    data = asdict(node)
    data["kind"] = node.kind.value
    return data


def _read_content(content: str | None, content_file: Path | None) -> str | None:
    if content_file is not None:
        return content_file.read_text(encoding="utf-8")
    return content


def _echo_tree(level: list[TreeNode], depth: int = 0) -> None:
    for tree_node in level:
        node = tree_node.node
        marker = "/" if node.is_folder else ""
        typer.echo(f"{'    ' * depth}- {node.title}{marker}  [id={node.id}]")
        _echo_tree(tree_node.children, depth + 1)


@app.command()
def init(db: DbOption = None) -> None:
    """Create the database if it does not exist."""
    with _workspace(db) as ws:
        typer.echo(f"Database ready at {ws.db.path}")


@app.command()
def seed(db: DbOption = None, user: UserOption = DEFAULT_USER) -> None:
    """Create the sample Welcome folder and Getting Started document."""
    with _workspace(db) as ws:
        folder = seed_sample_tree(ws.tree, created_by=user)
        if folder is None:
            typer.echo("Sample content already present.")
        else:
            typer.echo(f"Seeded sample content [id={folder.id}]")


@app.command()
def create(
    title: str = typer.Argument(..., help="Title of the new node"),
    folder: bool = typer.Option(False, "--folder", "-F", help="Create a folder"),
    parent: Annotated[str | None, typer.Option("--parent", "-p", help="Parent folder id")] = None,
    content: Annotated[str | None, typer.Option("--content", "-c", help="Markdown content")] = None,
    content_file: Annotated[
        Path | None, typer.Option("--content-file", help="Read content from a file")
    ] = None,
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """Create a document (or folder) at the end of its parent."""
    with _workspace(db) as ws:
        node = ws.tree.create(
            NewNode(
                title=title,
                kind=NodeKind.FOLDER if folder else NodeKind.DOCUMENT,
                created_by=user,
                content=_read_content(content, content_file),
                parent_id=parent,
            )
        )
        typer.echo(f"Created {node.kind} {node.title!r} [id={node.id}] path={node.path}")


@app.command()
def show(
    node_id: str = typer.Argument(..., help="Node id"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
    db: DbOption = None,
) -> None:
    """Show a node and its content."""
    with _workspace(db) as ws:
        node = ws.tree.require(node_id)
        if output_json:
            typer.echo(json.dumps(_node_dict(node), indent=2))
            return
        typer.echo(f"{node.title}  ({node.kind}, position {node.position})")
        typer.echo(f"  path: {full_path(ws.tree, node.id)}")
        if node.content:
            typer.echo()
            typer.echo(node.content)


@app.command()
def update(
    node_id: str = typer.Argument(..., help="Node id"),
    title: Annotated[str | None, typer.Option("--title", "-t", help="New title")] = None,
    content: Annotated[str | None, typer.Option("--content", "-c", help="New content")] = None,
    content_file: Annotated[
        Path | None, typer.Option("--content-file", help="Read new content from a file")
    ] = None,
    parent: Annotated[str | None, typer.Option("--parent", "-p", help="New parent id")] = None,
    to_root: bool = typer.Option(False, "--root", help="Move the node to the root"),
    db: DbOption = None,
) -> None:
    """Change a node's title, content, or parent."""
    new_content = _read_content(content, content_file)
    changes = NodeUpdate(
        title=UNSET if title is None else title,
        content=UNSET if new_content is None else new_content,
        parent_id=None if to_root else (UNSET if parent is None else parent),
    )
    with _workspace(db) as ws:
        node = ws.tree.update(node_id, changes)
        typer.echo(f"Updated {node.title!r} [id={node.id}] path={node.path}")


@app.command()
def delete(
    node_id: str = typer.Argument(..., help="Node id"),
    db: DbOption = None,
) -> None:
    """Delete a document, or an empty folder."""
    with _workspace(db) as ws:
        ws.tree.delete(node_id)
        typer.echo(f"Deleted {node_id}")


@app.command(name="ls")
def list_cmd(
    parent: Annotated[str | None, typer.Argument(help="Parent folder id (default: root)")] = None,
    recursive: bool = typer.Option(False, "--recursive", "-r", help="Include all descendants"),
    db: DbOption = None,
) -> None:
    """List the children of a folder."""
    with _workspace(db) as ws:
        nodes = ws.tree.list_children(parent, recursive=recursive)
        for node in nodes:
            marker = "/" if node.is_folder else ""
            typer.echo(f"  {node.position:>3}  {node.path}{marker}  [id={node.id}]")


@app.command()
def tree(
    node_id: Annotated[str | None, typer.Argument(help="Print only this subtree")] = None,
    db: DbOption = None,
) -> None:
    """Print the document tree, or the subtree under one node."""
    with _workspace(db) as ws:
        roots = build_tree(ws.tree.list_all())
        if node_id is not None:
            subtree = find_in_tree(roots, node_id)
            if subtree is None:
                msg = f"Node {node_id} not found"
                raise NotFoundError(msg, ids=[node_id])
            roots = [subtree]
        if not roots:
            typer.echo("The knowledge base is empty.")
            return
        _echo_tree(roots)


@app.command()
def path(
    node_id: str = typer.Argument(..., help="Node id"),
    db: DbOption = None,
) -> None:
    """Print the title path from the root to a node."""
    with _workspace(db) as ws:
        ws.tree.require(node_id)
        typer.echo(full_path(ws.tree, node_id))


@app.command()
def move(
    node_id: str = typer.Argument(..., help="Node id"),
    parent: Annotated[str | None, typer.Option("--parent", "-p", help="New parent id")] = None,
    to_root: bool = typer.Option(False, "--root", help="Move the node to the root"),
    position: Annotated[
        int | None, typer.Option("--position", "-P", help="Target index among siblings")
    ] = None,
    db: DbOption = None,
) -> None:
    """Move a node to another folder and/or position."""
    target = None if to_root else (UNSET if parent is None else parent)
    with _workspace(db) as ws:
        node = ws.mover.move(node_id, parent_id=target, position=position)
        typer.echo(f"Moved {node.title!r} to position {node.position} path={node.path}")


@app.command()
def reorder(
    node_ids: list[str] = typer.Argument(..., help="Child ids in their new order"),
    parent: Annotated[str | None, typer.Option("--parent", "-p", help="Parent folder id")] = None,
    db: DbOption = None,
) -> None:
    """Reorder the children of a folder (root by default)."""
    with _workspace(db) as ws:
        count = ws.mover.reorder(parent, node_ids)
        typer.echo(f"Reordered {count} nodes")


@app.command()
def search(
    query: str = typer.Argument(..., help="Search query"),
    limit: int = typer.Option(DEFAULT_SEARCH_LIMIT, "--limit", "-n", help="Max results"),
    offset: int = typer.Option(0, "--offset", "-o", help="Pagination offset"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
    db: DbOption = None,
) -> None:
    """Search documents by content and title."""
    with _workspace(db) as ws:
        page = ws.search.search(query, limit=limit, offset=offset)

        if output_json:
            data = {
                "results": [
                    {
                        "id": r.id,
                        "title": r.title,
                        "snippet": r.snippet,
                        "rank": r.rank,
                        "path": r.path,
                        "match_count": count_matches(r.content, query),
                    }
                    for r in page.results
                ],
                "total": page.total,
                "query": page.query,
            }
            typer.echo(json.dumps(data, indent=2))
            return

        typer.echo(f"Found {page.total} results (showing {len(page.results)}):\n")
        for r in page.results:
            typer.echo(f"  {r.title}  [{r.path}]")
            typer.echo(f"    {strip_html(r.snippet)}")
            matches = count_matches(r.content, query)
            typer.echo(f"    id={r.id}  rank={r.rank:.4f}  matches={matches}")
            typer.echo()


@app.command(name="import")
def import_cmd(
    source_dir: Path = typer.Argument(..., help="Directory of markdown files"),
    parent: Annotated[
        str | None, typer.Option("--parent", "-p", help="Folder to import into")
    ] = None,
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """Import a directory tree of markdown files."""
    if not source_dir.is_dir():
        logger.error("Source directory not found: {}", source_dir)
        raise typer.Exit(1)

    with _workspace(db) as ws:
        stats = import_markdown_dir(ws.tree, source_dir, created_by=user, parent_id=parent)
        typer.echo(
            f"Imported {stats.documents_created} documents in "
            f"{stats.folders_created} folders, skipped {stats.files_skipped} files"
        )


@app.command()
def serve() -> None:
    """Start the MCP server (stdio transport)."""
    from knowledge_base.mcp.server import run_mcp_server

    run_mcp_server()
