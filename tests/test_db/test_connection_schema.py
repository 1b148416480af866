"""Tests for connection scoping and schema initialization."""

from __future__ import annotations

import sqlite3

import pytest

from typing_server.db.connection import connection_scope, get_connection, get_db_path
from typing_server.db.schema import HOT_PATH_INDEX_STATEMENTS, init_database


def _query_plan_details(cursor: sqlite3.Cursor, sql: str, params: tuple[object, ...]) -> list[str]:
    """Return ``EXPLAIN QUERY PLAN`` detail strings for a SQL statement."""
    cursor.execute(f"EXPLAIN QUERY PLAN {sql}", params)  # nosec B608
    return [str(row[3]) for row in cursor.fetchall()]


@pytest.mark.db
def test_get_db_path_follows_test_database(temp_db_path):
    assert get_db_path() == temp_db_path


@pytest.mark.db
def test_connection_enables_foreign_keys(temp_db_path):
    conn = get_connection()
    try:
        assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1
        assert conn.execute("PRAGMA busy_timeout").fetchone()[0] == 5000
    finally:
        conn.close()


@pytest.mark.db
def test_write_scope_commits_on_success(test_db):
    with connection_scope(write=True) as conn:
        conn.execute("INSERT INTO users (username) VALUES ('carol')")

    with connection_scope() as conn:
        assert conn.execute("SELECT COUNT(*) FROM users").fetchone()[0] == 1


@pytest.mark.db
def test_write_scope_rolls_back_on_error(test_db):
    with pytest.raises(RuntimeError):
        with connection_scope(write=True) as conn:
            conn.execute("INSERT INTO users (username) VALUES ('carol')")
            raise RuntimeError("abort")

    with connection_scope() as conn:
        assert conn.execute("SELECT COUNT(*) FROM users").fetchone()[0] == 0


@pytest.mark.db
def test_init_database_is_idempotent(test_db, temp_db_path):
    init_database()
    init_database(db_path=temp_db_path)

    with connection_scope() as conn:
        tables = {
            row[0]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        }
    assert {"users", "sessions", "results"} <= tables


@pytest.mark.db
def test_init_database_creates_parent_directory(tmp_path):
    db_path = tmp_path / "nested" / "dir" / "typing.db"

    init_database(db_path=db_path)

    assert db_path.exists()


@pytest.mark.db
def test_history_query_uses_user_id_index(test_db):
    """The cursor page query should be served by ``idx_results_user_id_desc``."""
    assert any("idx_results_user_id_desc" in stmt for stmt in HOT_PATH_INDEX_STATEMENTS)
    with connection_scope() as conn:
        details = _query_plan_details(
            conn.cursor(),
            "SELECT id FROM results WHERE user_id = ? AND id < ? ORDER BY id DESC LIMIT ?",
            (1, 10, 5),
        )

    assert any("idx_results_user_id_desc" in detail for detail in details)
