"""Wire a database and the core components together for an entry point."""

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from knowledge_base.core.database.store import Database
from knowledge_base.core.search.searcher import SearchEngine
from knowledge_base.core.tree.queries import now_ms
from knowledge_base.core.tree.reparent import ReparentEngine
from knowledge_base.core.tree.store import TreeStore
from knowledge_base.protocols import Notifier


@dataclass
class Workspace:
    """An open database plus the components bound to it."""

    db: Database
    tree: TreeStore
    mover: ReparentEngine
    search: SearchEngine

    @classmethod
    def build(
        cls,
        db: Database,
        *,
        notifier: Notifier | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> "Workspace":
        mover = ReparentEngine(db, clock=clock)
        tree = TreeStore(db, mover=mover, clock=clock)
        return cls(
            db=db,
            tree=tree,
            mover=mover,
            search=SearchEngine(db, tree, notifier=notifier),
        )


@contextmanager
def open_workspace(
    path: str | Path,
    *,
    notifier: Notifier | None = None,
) -> Iterator[Workspace]:
    """Open the database at path, yield a workspace, close on exit."""
    db = Database(path).open()
    try:
        yield Workspace.build(db, notifier=notifier)
    finally:
        db.close()
