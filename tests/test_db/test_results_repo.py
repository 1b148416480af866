"""Focused tests for ``typing_server.db.results_repo``."""

from __future__ import annotations

import sqlite3
from unittest.mock import patch

import pytest

from typing_server.db import connection as db_connection
from typing_server.db.connection import connection_scope
from typing_server.db.errors import DatabaseReadError, DatabaseWriteError
from typing_server.db.results_repo import InsertOutcome, SQLiteResultStore


def _insert(
    store: SQLiteResultStore, user_id: int, completed_at_ms: int, params: str = '{"mode":"words"}'
):
    return store.insert_result(
        user_id=user_id,
        test_params=params,
        completed_at_ms=completed_at_ms,
        wpm=80.0,
        raw_wpm=85.5,
        accuracy=97.25,
    )


@pytest.mark.db
def test_insert_assigns_ids_starting_at_one(store, users):
    first = _insert(store, users["alice"], 1000)
    second = _insert(store, users["bob"], 1000)

    assert first.outcome is InsertOutcome.INSERTED
    assert first.result_id == 1
    assert second.result_id == 2


@pytest.mark.db
def test_insert_duplicate_returns_explicit_outcome(store, users):
    assert _insert(store, users["alice"], 1000).outcome is InsertOutcome.INSERTED

    duplicate = _insert(store, users["alice"], 1000)

    assert duplicate.outcome is InsertOutcome.DUPLICATE
    assert duplicate.result_id is None
    assert store.count_results(users["alice"]) == 1


@pytest.mark.db
def test_dedup_key_covers_user_params_and_time(store, users):
    """Changing any one part of the dedup key stores a new row."""
    alice, bob = users["alice"], users["bob"]
    assert _insert(store, alice, 1000).outcome is InsertOutcome.INSERTED
    assert _insert(store, bob, 1000).outcome is InsertOutcome.INSERTED
    assert _insert(store, alice, 1001).outcome is InsertOutcome.INSERTED
    assert _insert(store, alice, 1000, '{"mode":"time"}').outcome is InsertOutcome.INSERTED

    assert store.count_results(alice) == 3
    assert store.count_results(bob) == 1


@pytest.mark.db
def test_insert_unknown_user_is_a_write_error_not_a_duplicate(store, users):
    """Foreign-key failures are integrity errors too, but not dedup conflicts."""
    with pytest.raises(DatabaseWriteError) as exc_info:
        _insert(store, 999_999, 1000)

    assert isinstance(exc_info.value.cause, sqlite3.IntegrityError)
    assert exc_info.value.context.operation == "results.insert_result"


@pytest.mark.db
def test_ids_are_not_reused_after_newest_row_is_removed(store, users):
    """Even a manual repair that drops the guard and deletes rows keeps ids fresh."""
    _insert(store, users["alice"], 1000)
    second = _insert(store, users["alice"], 2000)
    with connection_scope(write=True) as conn:
        conn.execute("DROP TRIGGER enforce_results_append_only")
        conn.execute("DELETE FROM results WHERE id = ?", (second.result_id,))

    third = _insert(store, users["alice"], 3000)

    assert third.result_id == 3


@pytest.mark.db
def test_results_rows_cannot_be_deleted(store, users):
    _insert(store, users["alice"], 1000)

    with pytest.raises(sqlite3.IntegrityError, match="results are never deleted"):
        with connection_scope(write=True) as conn:
            conn.execute("DELETE FROM results WHERE id = 1")

    assert store.count_results(users["alice"]) == 1


@pytest.mark.db
def test_user_with_results_cannot_be_deleted(store, users):
    _insert(store, users["alice"], 1000)

    with pytest.raises(sqlite3.IntegrityError):
        with connection_scope(write=True) as conn:
            conn.execute("DELETE FROM users WHERE id = ?", (users["alice"],))

    assert store.count_results(users["alice"]) == 1


@pytest.mark.db
def test_fetch_results_orders_by_id_descending_and_honours_cursor(store, users):
    alice = users["alice"]
    # Completion times deliberately out of order: ids, not timestamps, decide order.
    for completed_at in (5000, 1000, 3000, 2000, 4000):
        _insert(store, alice, completed_at)

    newest = store.fetch_results(alice, before_id=None, limit=2)
    assert [row.id for row in newest] == [5, 4]

    older = store.fetch_results(alice, before_id=4, limit=10)
    assert [row.id for row in older] == [3, 2, 1]
    assert [row.completed_at_ms for row in older] == [3000, 1000, 5000]


@pytest.mark.db
def test_fetch_results_is_scoped_to_user(store, users):
    _insert(store, users["alice"], 1000)
    _insert(store, users["bob"], 1000)
    _insert(store, users["alice"], 2000)

    rows = store.fetch_results(users["alice"], before_id=None, limit=10)

    assert [row.id for row in rows] == [3, 1]
    assert {row.user_id for row in rows} == {users["alice"]}


@pytest.mark.db
def test_fetch_results_round_trips_stored_values(store, users):
    _insert(store, users["alice"], 1_709_294_400_123, '{"language":"english","mode":"quote"}')

    (row,) = store.fetch_results(users["alice"], before_id=None, limit=1)

    assert row.test_params == '{"language":"english","mode":"quote"}'
    assert row.completed_at_ms == 1_709_294_400_123
    assert (row.wpm, row.raw_wpm, row.accuracy) == (80.0, 85.5, 97.25)


@pytest.mark.db
def test_results_rows_are_immutable(store, users):
    _insert(store, users["alice"], 1000)

    with pytest.raises(sqlite3.IntegrityError, match="results are immutable"):
        with connection_scope(write=True) as conn:
            conn.execute("UPDATE results SET wpm = 200 WHERE id = 1")

    (row,) = store.fetch_results(users["alice"], before_id=None, limit=1)
    assert row.wpm == 80.0


@pytest.mark.db
def test_store_raises_typed_errors_on_connection_failure(store):
    """Connection failures should surface as typed repository errors."""
    with patch.object(db_connection, "get_connection", side_effect=Exception("db boom")):
        with pytest.raises(DatabaseWriteError):
            _insert(store, 1, 1000)

        with pytest.raises(DatabaseReadError):
            store.fetch_results(1, before_id=None, limit=1)

        with pytest.raises(DatabaseReadError):
            store.count_results(1)

        with pytest.raises(DatabaseReadError):
            store.ping()


@pytest.mark.db
def test_ping_fails_before_schema_exists(temp_db_path):
    with pytest.raises(DatabaseReadError):
        SQLiteResultStore(temp_db_path).ping()
