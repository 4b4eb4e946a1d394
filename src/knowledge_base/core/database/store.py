"""Database handle: connection lifecycle and transactions."""

import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from types import TracebackType

from loguru import logger

from knowledge_base.config import BUSY_TIMEOUT_SECONDS
from knowledge_base.core.database.schema import migrate_schema
from knowledge_base.errors import PersistenceFailure

MEMORY = ":memory:"


class Database:
    """An explicitly opened SQLite database shared by the core components.

    The connection runs in autocommit mode and may be shared between threads.
    A re-entrant lock guards it: :meth:`transaction` holds the lock from
    ``BEGIN IMMEDIATE`` until commit or rollback, and :meth:`read` holds it for
    the duration of a query, so no thread sees another thread's uncommitted
    rows. Separate handles on the same file serialize on SQLite's own write
    lock.
    """

    def __init__(self, path: str | Path = MEMORY) -> None:
        self.path = str(path)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._local = threading.local()

    def open(self) -> "Database":
        if self._conn is not None:
            return self
        if self.path != MEMORY:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        try:
            conn = sqlite3.connect(
                self.path,
                isolation_level=None,
                timeout=BUSY_TIMEOUT_SECONDS,
                check_same_thread=False,
            )
            if self.path != MEMORY:
                conn.execute("PRAGMA journal_mode = WAL")
            migrate_schema(conn)
        except sqlite3.Error as e:
            msg = f"Cannot open database {self.path!r}: {e}"
            raise PersistenceFailure(msg) from e
        self._conn = conn
        logger.debug("Opened database {}", self.path)
        return self

    def close(self) -> None:
        with self._lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None
        logger.debug("Closed database {}", self.path)

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            msg = f"Database {self.path!r} is not open"
            raise PersistenceFailure(msg)
        return self._conn

    @property
    def _depth(self) -> int:
        return getattr(self._local, "depth", 0)

    @_depth.setter
    def _depth(self, value: int) -> None:
        self._local.depth = value

    @contextmanager
    def read(self) -> Iterator[sqlite3.Connection]:
        """Borrow the connection for queries that must not interleave with a writer."""
        with self._lock:
            yield self.conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run the block as one all-or-nothing unit.

        Nested use on the same thread joins the enclosing transaction; other
        threads wait until it commits or rolls back. SQLite errors roll the
        whole unit back and surface as PersistenceFailure.
        """
        with self._lock:
            conn = self.conn
            if self._depth > 0:
                self._depth += 1
                try:
                    yield conn
                finally:
                    self._depth -= 1
                return

            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                msg = f"Cannot start transaction: {e}"
                raise PersistenceFailure(msg) from e

            self._depth = 1
            try:
                yield conn
            except sqlite3.Error as e:
                conn.rollback()
                msg = f"Transaction failed: {e}"
                raise PersistenceFailure(msg) from e
            except BaseException:
                conn.rollback()
                raise
            finally:
                self._depth = 0

            try:
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                msg = f"Commit failed: {e}"
                raise PersistenceFailure(msg) from e

    def __enter__(self) -> "Database":
        return self.open()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
