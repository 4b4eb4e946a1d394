"""Tests for database schema."""

import sqlite3

import pytest

from knowledge_base.core.database.schema import (
    create_schema,
    get_metadata,
    get_schema_version,
    migrate_schema,
    set_metadata,
)


def _tables(conn: sqlite3.Connection) -> set[str]:
    return {
        row[0]
        for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
    }


def test_create_schema_creates_nodes_table_and_fts() -> None:
    conn = sqlite3.connect(":memory:")
    create_schema(conn)
    tables = _tables(conn)
    assert "nodes" in tables
    assert "nodes_fts" in tables
    assert "metadata" in tables


def test_migrate_schema_on_empty_db_creates_schema_and_sets_version() -> None:
    conn = sqlite3.connect(":memory:")
    assert get_schema_version(conn) is None
    migrate_schema(conn)
    assert get_schema_version(conn) == 1


def test_migrate_schema_is_idempotent() -> None:
    conn = sqlite3.connect(":memory:")
    migrate_schema(conn)
    migrate_schema(conn)
    assert get_schema_version(conn) == 1


def test_metadata_round_trip_and_overwrite() -> None:
    conn = sqlite3.connect(":memory:")
    create_schema(conn)
    set_metadata(conn, "owner", "alice")
    set_metadata(conn, "owner", "bob")
    assert get_metadata(conn, "owner") == "bob"
    assert get_metadata(conn, "missing") is None


def test_fts_index_follows_inserts_updates_and_deletes() -> None:
    conn = sqlite3.connect(":memory:")
    create_schema(conn)
    conn.execute(
        "INSERT INTO nodes (id, title, content, kind, parent_id, path, position, "
        "created_at, updated_at, created_by) "
        "VALUES ('a', 'Garden', 'tomatoes and basil', 'document', NULL, 'garden', 0, 1, 1, 'u')"
    )

    def matches(term: str) -> int:
        return conn.execute(
            "SELECT COUNT(*) FROM nodes_fts WHERE nodes_fts MATCH ?", (term,)
        ).fetchone()[0]

    assert matches("basil") == 1

    conn.execute("UPDATE nodes SET content = 'peppers' WHERE id = 'a'")
    assert matches("basil") == 0
    assert matches("peppers") == 1

    conn.execute("DELETE FROM nodes WHERE id = 'a'")
    assert matches("peppers") == 0


def test_folder_without_content_is_indexed_by_title() -> None:
    conn = sqlite3.connect(":memory:")
    create_schema(conn)
    conn.execute(
        "INSERT INTO nodes (id, title, content, kind, parent_id, path, position, "
        "created_at, updated_at, created_by) "
        "VALUES ('f', 'Travel', NULL, 'folder', NULL, 'travel', 0, 1, 1, 'u')"
    )
    row = conn.execute(
        "SELECT COUNT(*) FROM nodes_fts WHERE nodes_fts MATCH 'travel'"
    ).fetchone()
    assert row[0] == 1


def test_position_must_be_non_negative() -> None:
    conn = sqlite3.connect(":memory:")
    create_schema(conn)
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute(
            "INSERT INTO nodes (id, title, kind, path, position, created_at, updated_at, "
            "created_by) VALUES ('x', 'X', 'document', 'x', -1, 1, 1, 'u')"
        )
