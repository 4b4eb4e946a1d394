"""Row-level queries over the nodes table."""

import re
import sqlite3
import time

from knowledge_base.config import MAX_TREE_DEPTH
from knowledge_base.models.node import Node, NodeKind

_NODE_FIELDS = (
    "id",
    "title",
    "content",
    "kind",
    "parent_id",
    "path",
    "position",
    "created_at",
    "updated_at",
    "created_by",
)
NODE_COLUMNS = ", ".join(_NODE_FIELDS)

_SLUG_SEPARATORS = re.compile(r"[^a-z0-9]+")


def aliased_columns(alias: str) -> str:
    return ", ".join(f"{alias}.{name}" for name in _NODE_FIELDS)


def now_ms() -> int:
    return int(time.time() * 1000)


def slugify(title: str) -> str:
    """Lowercase a title and collapse everything but [a-z0-9] into dashes."""
    return _SLUG_SEPARATORS.sub("-", title.lower()).strip("-")


def join_path(parent_path: str | None, title: str) -> str:
    slug = slugify(title)
    if parent_path:
        return f"{parent_path}/{slug}"
    return slug


def row_to_node(row: sqlite3.Row | tuple) -> Node:
    return Node(
        id=row[0],
        title=row[1],
        content=row[2],
        kind=NodeKind(row[3]),
        parent_id=row[4],
        path=row[5],
        position=row[6],
        created_at=row[7],
        updated_at=row[8],
        created_by=row[9],
    )


def fetch_node(conn: sqlite3.Connection, node_id: str) -> Node | None:
    row = conn.execute(
        f"SELECT {NODE_COLUMNS} FROM nodes WHERE id = ?", (node_id,)
    ).fetchone()
    return row_to_node(row) if row else None


def fetch_nodes(conn: sqlite3.Connection, node_ids: list[str]) -> dict[str, Node]:
    """Look up several nodes at once, keyed by id. Missing ids are absent."""
    if not node_ids:
        return {}
    placeholders = ",".join("?" * len(node_ids))
    rows = conn.execute(
        f"SELECT {NODE_COLUMNS} FROM nodes WHERE id IN ({placeholders})",
        node_ids,
    ).fetchall()
    return {row[0]: row_to_node(row) for row in rows}


def fetch_parent_id(conn: sqlite3.Connection, node_id: str) -> tuple[bool, str | None]:
    """Return (exists, parent_id) for a node."""
    row = conn.execute("SELECT parent_id FROM nodes WHERE id = ?", (node_id,)).fetchone()
    if row is None:
        return False, None
    return True, row[0]


def fetch_children(conn: sqlite3.Connection, parent_id: str | None) -> list[Node]:
    """Direct children of a parent (None = root), ordered by position."""
    rows = conn.execute(
        f"SELECT {NODE_COLUMNS} FROM nodes WHERE parent_id IS ? ORDER BY position, id",
        (parent_id,),
    ).fetchall()
    return [row_to_node(r) for r in rows]


def count_children(
    conn: sqlite3.Connection, parent_id: str | None, *, exclude_id: str | None = None
) -> int:
    row = conn.execute(
        "SELECT COUNT(*) FROM nodes WHERE parent_id IS ? AND id IS NOT ?",
        (parent_id, exclude_id),
    ).fetchone()
    return int(row[0])


def fetch_descendants(conn: sqlite3.Connection, parent_id: str | None) -> list[Node]:
    """All descendants of a parent in depth-first pre-order.

    Siblings keep their position order; recursion stops at MAX_TREE_DEPTH.
    """
    rows = conn.execute(
        f"""
        WITH RECURSIVE sub(id, depth, sort_key) AS (
            SELECT id, 1, printf('%08d', position)
            FROM nodes WHERE parent_id IS ?
            UNION ALL
            SELECT n.id, sub.depth + 1, sub.sort_key || '/' || printf('%08d', n.position)
            FROM nodes n JOIN sub ON n.parent_id = sub.id
            WHERE sub.depth < ?
        )
        SELECT {aliased_columns("n")}
        FROM sub JOIN nodes n ON n.id = sub.id
        ORDER BY sub.sort_key
        """,
        (parent_id, MAX_TREE_DEPTH),
    ).fetchall()
    return [row_to_node(r) for r in rows]


def fetch_all(conn: sqlite3.Connection) -> list[Node]:
    rows = conn.execute(
        f"SELECT {NODE_COLUMNS} FROM nodes ORDER BY path, position"
    ).fetchall()
    return [row_to_node(r) for r in rows]


def refresh_descendant_paths(conn: sqlite3.Connection, node_id: str, path: str) -> int:
    """Rewrite the paths of every descendant below a node whose path changed.

    Returns the number of rows rewritten.
    """
    updated = 0
    todo: list[tuple[str, str]] = [(node_id, path)]
    seen = {node_id}
    while todo:
        parent_id, parent_path = todo.pop()
        rows = conn.execute(
            "SELECT id, title FROM nodes WHERE parent_id = ?", (parent_id,)
        ).fetchall()
        for child_id, title in rows:
            if child_id in seen:
                continue
            seen.add(child_id)
            child_path = join_path(parent_path, title)
            conn.execute("UPDATE nodes SET path = ? WHERE id = ?", (child_path, child_id))
            updated += 1
            todo.append((child_id, child_path))
    return updated
