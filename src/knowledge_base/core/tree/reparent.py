"""Atomic moves and reorders of nodes among siblings.

Every operation keeps each affected sibling group's positions contiguous
(``0..n-1``) and runs inside a single write transaction, so a failed
validation leaves no partial index shift behind.
"""

import sqlite3
from collections.abc import Callable, Sequence
from dataclasses import replace

from loguru import logger

from knowledge_base.core.database.store import Database
from knowledge_base.core.tree.queries import (
    count_children,
    fetch_children,
    fetch_node,
    fetch_nodes,
    join_path,
    now_ms,
    refresh_descendant_paths,
)
from knowledge_base.core.tree.validation import check_parent
from knowledge_base.errors import NotFoundError, ValidationError
from knowledge_base.models.node import UNSET, Node, Unset


def _shift_within_parent(
    conn: sqlite3.Connection,
    parent_id: str | None,
    *,
    old_position: int,
    new_position: int,
) -> None:
    if new_position < old_position:
        conn.execute(
            "UPDATE nodes SET position = position + 1 "
            "WHERE parent_id IS ? AND position >= ? AND position < ?",
            (parent_id, new_position, old_position),
        )
    elif new_position > old_position:
        conn.execute(
            "UPDATE nodes SET position = position - 1 "
            "WHERE parent_id IS ? AND position > ? AND position <= ?",
            (parent_id, old_position, new_position),
        )


def _shift_across_parents(
    conn: sqlite3.Connection,
    node: Node,
    *,
    new_parent_id: str | None,
    new_position: int,
) -> None:
    # Close the gap in the old group, then open a slot in the new one.
    conn.execute(
        "UPDATE nodes SET position = position - 1 "
        "WHERE parent_id IS ? AND position > ? AND id != ?",
        (node.parent_id, node.position, node.id),
    )
    conn.execute(
        "UPDATE nodes SET position = position + 1 "
        "WHERE parent_id IS ? AND position >= ? AND id != ?",
        (new_parent_id, new_position, node.id),
    )


class ReparentEngine:
    """Moves nodes between parents and reorders sibling groups."""

    def __init__(self, db: Database, *, clock: Callable[[], int] = now_ms) -> None:
        self.db = db
        self.clock = clock

    def move(
        self,
        node_id: str,
        *,
        parent_id: str | None | Unset = UNSET,
        position: int | None = None,
    ) -> Node:
        """Move a node to a new parent and/or position.

        Args:
            node_id: Node to move.
            parent_id: New parent; None moves to the root, UNSET keeps the current parent.
            position: Target index among the destination siblings. Omitted means
                "append" when the parent changes and "stay" otherwise. Values past
                the end are clamped.

        Returns:
            The moved node as persisted.
        """
        if position is not None and position < 0:
            msg = f"Position must be non-negative, got {position}"
            raise ValidationError(msg, ids=[node_id])

        with self.db.transaction() as conn:
            node = fetch_node(conn, node_id)
            if node is None:
                msg = f"Node {node_id} not found"
                raise NotFoundError(msg, ids=[node_id])

            if isinstance(parent_id, str):
                check_parent(conn, parent_id=parent_id, node_id=node_id)

            final_parent_id = node.parent_id if isinstance(parent_id, Unset) else parent_id
            same_parent = final_parent_id == node.parent_id

            sibling_count = count_children(conn, final_parent_id, exclude_id=node_id)
            if position is None:
                final_position = node.position if same_parent else sibling_count
            else:
                final_position = position
            final_position = min(final_position, sibling_count)

            if same_parent:
                _shift_within_parent(
                    conn,
                    final_parent_id,
                    old_position=node.position,
                    new_position=final_position,
                )
            else:
                _shift_across_parents(
                    conn, node, new_parent_id=final_parent_id, new_position=final_position
                )

            parent_path = ""
            if final_parent_id is not None:
                parent = fetch_node(conn, final_parent_id)
                parent_path = parent.path if parent else ""
            path = join_path(parent_path, node.title)

            moved = replace(
                node,
                parent_id=final_parent_id,
                position=final_position,
                path=path,
                updated_at=self.clock(),
            )
            conn.execute(
                "UPDATE nodes SET parent_id = ?, position = ?, path = ?, updated_at = ? "
                "WHERE id = ?",
                (moved.parent_id, moved.position, moved.path, moved.updated_at, node_id),
            )
            if path != node.path:
                rewritten = refresh_descendant_paths(conn, node_id, path)
                if rewritten:
                    logger.debug("Rewrote {} descendant paths under {}", rewritten, node_id)

        logger.debug(
            "Moved {} from {}:{} to {}:{}",
            node_id,
            node.parent_id,
            node.position,
            moved.parent_id,
            moved.position,
        )
        return moved

    def reorder(self, parent_id: str | None, ordered_ids: Sequence[str]) -> int:
        """Assign positions to a parent's children in the given order.

        Children of the parent that are not listed keep their relative order
        after the listed ones. Returns the number of listed ids.
        """
        ids = list(ordered_ids)
        if not ids:
            msg = "At least one node id is required"
            raise ValidationError(msg)
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            msg = f"Duplicate node ids: {', '.join(duplicates)}"
            raise ValidationError(msg, ids=duplicates)

        with self.db.transaction() as conn:
            nodes = fetch_nodes(conn, ids)
            missing = [i for i in ids if i not in nodes]
            if missing:
                msg = f"Nodes not found: {', '.join(missing)}"
                raise ValidationError(msg, ids=missing)

            foreign = [i for i in ids if nodes[i].parent_id != parent_id]
            if foreign:
                msg = f"Nodes do not belong to parent {parent_id}: {', '.join(foreign)}"
                raise ValidationError(msg, ids=foreign)

            listed = set(ids)
            rest = [c.id for c in fetch_children(conn, parent_id) if c.id not in listed]
            conn.executemany(
                "UPDATE nodes SET position = ? WHERE id = ?",
                [(index, node_id) for index, node_id in enumerate(ids + rest)],
            )

        logger.debug("Reordered {} children of {}", len(ids), parent_id)
        return len(ids)
