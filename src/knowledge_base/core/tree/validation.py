"""Structural checks shared by every mutation that sets a parent."""

import sqlite3

from loguru import logger

from knowledge_base.config import MAX_TITLE_LENGTH
from knowledge_base.core.tree.queries import fetch_node, fetch_parent_id
from knowledge_base.errors import ParentNotFoundError, ValidationError
from knowledge_base.models.node import Node


def validate_title(title: object) -> str:
    if not isinstance(title, str) or not title.strip():
        msg = "Title is required"
        raise ValidationError(msg)
    if len(title) > MAX_TITLE_LENGTH:
        msg = f"Title too long ({len(title)} > {MAX_TITLE_LENGTH} characters)"
        raise ValidationError(msg)
    return title


def would_create_cycle(conn: sqlite3.Connection, node_id: str, candidate_parent_id: str) -> bool:
    """Check whether making candidate_parent_id the parent of node_id forms a cycle.

    Walks up from the candidate. A chain that revisits an id counts as a cycle;
    a chain that ends at a missing parent is simply terminated.
    """
    visited: set[str] = set()
    current: str | None = candidate_parent_id
    while current:
        if current == node_id:
            return True
        if current in visited:
            logger.warning("Parent chain of {} loops back on {}", candidate_parent_id, current)
            return True
        visited.add(current)
        exists, current = fetch_parent_id(conn, current)
        if not exists:
            break
    return False


def check_parent(
    conn: sqlite3.Connection,
    *,
    parent_id: str,
    node_id: str | None = None,
) -> Node:
    """Validate that parent_id may hold node_id (None for a node not yet created).

    Returns the parent node.
    """
    if node_id is not None and parent_id == node_id:
        msg = f"Node {node_id} cannot be its own parent"
        raise ValidationError(msg, ids=[node_id])

    parent = fetch_node(conn, parent_id)
    if parent is None:
        msg = f"Parent {parent_id} not found"
        raise ParentNotFoundError(msg, ids=[parent_id])
    if not parent.is_folder:
        msg = f"Parent {parent_id} must be a folder, not a {parent.kind}"
        raise ValidationError(msg, ids=[parent_id])

    if node_id is not None and would_create_cycle(conn, node_id, parent_id):
        msg = f"Moving {node_id} under {parent_id} would create a cycle"
        raise ValidationError(msg, ids=[node_id, parent_id])
    return parent
