"""Node CRUD and read-only hierarchy traversal."""

import uuid
from collections.abc import Callable

from loguru import logger

from knowledge_base.core.database.store import Database
from knowledge_base.core.tree import queries
from knowledge_base.core.tree.queries import join_path, now_ms
from knowledge_base.core.tree.reparent import ReparentEngine
from knowledge_base.core.tree.validation import check_parent, validate_title, would_create_cycle
from knowledge_base.errors import ConflictError, NotFoundError, ValidationError
from knowledge_base.models.node import NewNode, Node, NodeKind, NodeUpdate, Unset


class TreeStore:
    """Documents and folders with contiguous sibling positions.

    Structural changes requested through :meth:`update` are delegated to the
    reparent engine so that one validation path guards every parent change.
    """

    def __init__(
        self,
        db: Database,
        *,
        mover: ReparentEngine | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.db = db
        self.clock = clock
        self.mover = mover or ReparentEngine(db, clock=clock)

    def create(self, new_node: NewNode) -> Node:
        """Create a node at the end of its sibling group.

        Raises:
            ValidationError: Bad title or kind, or the parent is not a folder.
            ParentNotFoundError: The parent id does not resolve.
        """
        validate_title(new_node.title)
        try:
            kind = NodeKind(new_node.kind)
        except ValueError as e:
            msg = f"Invalid node kind {new_node.kind!r}"
            raise ValidationError(msg) from e
        if not new_node.created_by:
            msg = "created_by is required"
            raise ValidationError(msg)
        content = None if kind is NodeKind.FOLDER else new_node.content

        with self.db.transaction() as conn:
            parent_path = ""
            if new_node.parent_id is not None:
                parent = check_parent(conn, parent_id=new_node.parent_id)
                parent_path = parent.path

            now = self.clock()
            node = Node(
                id=str(uuid.uuid4()),
                title=new_node.title,
                content=content,
                kind=kind,
                parent_id=new_node.parent_id,
                path=join_path(parent_path, new_node.title),
                position=queries.count_children(conn, new_node.parent_id),
                created_at=now,
                updated_at=now,
                created_by=new_node.created_by,
            )
            conn.execute(
                f"INSERT INTO nodes ({queries.NODE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    node.id, node.title, node.content, node.kind.value, node.parent_id,
                    node.path, node.position, node.created_at, node.updated_at,
                    node.created_by,
                ),
            )

        logger.debug("Created {} {} at {}:{}", node.kind, node.id, node.parent_id, node.position)
        return node

    def get(self, node_id: str) -> Node | None:
        with self.db.read() as conn:
            return queries.fetch_node(conn, node_id)

    def require(self, node_id: str) -> Node:
        node = self.get(node_id)
        if node is None:
            msg = f"Node {node_id} not found"
            raise NotFoundError(msg, ids=[node_id])
        return node

    def update(self, node_id: str, changes: NodeUpdate) -> Node:
        """Apply a partial update.

        A title change rewrites this node's path and every descendant's. A
        parent change is a move to the end of the new sibling group.
        """
        if changes.is_empty():
            msg = "No fields to update"
            raise ValidationError(msg, ids=[node_id])
        if not isinstance(changes.title, Unset):
            validate_title(changes.title)
        if not isinstance(changes.content, Unset) and not isinstance(changes.content, str):
            msg = "Content must be a string"
            raise ValidationError(msg, ids=[node_id])

        with self.db.transaction() as conn:
            node = queries.fetch_node(conn, node_id)
            if node is None:
                msg = f"Node {node_id} not found"
                raise NotFoundError(msg, ids=[node_id])
            if node.is_folder and not isinstance(changes.content, Unset):
                msg = f"Folder {node_id} has no content"
                raise ValidationError(msg, ids=[node_id])

            if not isinstance(changes.parent_id, Unset) and changes.parent_id != node.parent_id:
                node = self.mover.move(node_id, parent_id=changes.parent_id)

            assignments: list[str] = ["updated_at = ?"]
            params: list[str | int | None] = [self.clock()]
            if not isinstance(changes.content, Unset):
                assignments.append("content = ?")
                params.append(changes.content)
            new_path: str | None = None
            if not isinstance(changes.title, Unset) and changes.title != node.title:
                parent = queries.fetch_node(conn, node.parent_id) if node.parent_id else None
                new_path = join_path(parent.path if parent else "", changes.title)
                assignments.extend(["title = ?", "path = ?"])
                params.extend([changes.title, new_path])

            params.append(node_id)
            conn.execute(f"UPDATE nodes SET {', '.join(assignments)} WHERE id = ?", params)
            if new_path is not None and new_path != node.path:
                queries.refresh_descendant_paths(conn, node_id, new_path)

            updated = queries.fetch_node(conn, node_id)

        if updated is None:
            msg = f"Node {node_id} vanished during update"
            raise NotFoundError(msg, ids=[node_id])
        logger.debug("Updated {}", node_id)
        return updated

    def delete(self, node_id: str) -> None:
        """Delete a document, or a folder without children.

        The gap left in the sibling group is closed in the same transaction.
        """
        with self.db.transaction() as conn:
            node = queries.fetch_node(conn, node_id)
            if node is None:
                msg = f"Node {node_id} not found"
                raise NotFoundError(msg, ids=[node_id])
            if node.is_folder:
                child_count = queries.count_children(conn, node_id)
                if child_count:
                    msg = (
                        f"Cannot delete folder {node_id} with {child_count} children. "
                        "Delete or move the children first."
                    )
                    raise ConflictError(msg, ids=[node_id])

            conn.execute("DELETE FROM nodes WHERE id = ?", (node_id,))
            conn.execute(
                "UPDATE nodes SET position = position - 1 WHERE parent_id IS ? AND position > ?",
                (node.parent_id, node.position),
            )

        logger.debug("Deleted {} {}", node.kind, node_id)

    def list_children(self, parent_id: str | None, *, recursive: bool = False) -> list[Node]:
        """Children of a parent (None = root) ordered by position.

        With ``recursive`` every descendant is returned in depth-first order.
        """
        with self.db.read() as conn:
            if recursive:
                return queries.fetch_descendants(conn, parent_id)
            return queries.fetch_children(conn, parent_id)

    def list_all(self) -> list[Node]:
        with self.db.read() as conn:
            return queries.fetch_all(conn)

    def ancestor_chain(self, node_id: str) -> list[Node]:
        """Nodes from the root down to node_id itself.

        Stops early at a dangling parent reference or a revisited id.
        """
        chain: list[Node] = []
        seen: set[str] = set()
        current: str | None = node_id
        with self.db.read() as conn:
            while current and current not in seen:
                seen.add(current)
                node = queries.fetch_node(conn, current)
                if node is None:
                    break
                chain.append(node)
                current = node.parent_id
        chain.reverse()
        return chain

    def would_create_cycle(self, node_id: str, candidate_parent_id: str) -> bool:
        with self.db.read() as conn:
            return would_create_cycle(conn, node_id, candidate_parent_id)
