"""Result repository operations for the SQLite backend.

This module is the only code that touches the ``results`` table. It stores
rows exactly as handed over (``test_params`` is already canonical text and
``completed_at`` already epoch milliseconds) and reports duplicates as an
explicit :class:`InsertOutcome` rather than an exception, so callers never
have to inspect SQLite error text.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import NoReturn

from typing_server.db.connection import connection_scope
from typing_server.db.errors import (
    DatabaseError,
    DatabaseOperationContext,
    DatabaseReadError,
    DatabaseWriteError,
)

logger = logging.getLogger(__name__)


def _raise_read_error(operation: str, exc: Exception, *, details: str | None = None) -> NoReturn:
    """Raise a typed repository read error while preserving chained cause."""
    if isinstance(exc, DatabaseError):
        raise exc
    raise DatabaseReadError(
        context=DatabaseOperationContext(operation=operation, details=details),
        cause=exc,
    ) from exc


def _raise_write_error(operation: str, exc: Exception, *, details: str | None = None) -> NoReturn:
    """Raise a typed repository write error while preserving chained cause."""
    if isinstance(exc, DatabaseError):
        raise exc
    raise DatabaseWriteError(
        context=DatabaseOperationContext(operation=operation, details=details),
        cause=exc,
    ) from exc


def _is_unique_violation(exc: sqlite3.IntegrityError) -> bool:
    """Return True when SQLite rejected a row for a UNIQUE constraint.

    The ``results`` primary key is AUTOINCREMENT and never collides, so the
    only UNIQUE constraint an insert can trip is the dedup key. Foreign-key,
    NOT NULL, and CHECK failures carry different extended result codes.
    """
    return getattr(exc, "sqlite_errorcode", None) == sqlite3.SQLITE_CONSTRAINT_UNIQUE


class InsertOutcome(Enum):
    """Outcome of a single result insert."""

    INSERTED = "inserted"
    DUPLICATE = "duplicate"


@dataclass(frozen=True, slots=True)
class InsertResult:
    """Insert outcome plus the store-assigned id when a row was written."""

    outcome: InsertOutcome
    result_id: int | None = None


@dataclass(frozen=True, slots=True)
class StoredResult:
    """
    One ``results`` row in storage form.

    Attributes:
        id: Store-assigned, strictly increasing identifier (starts at 1).
        user_id: Owning user.
        test_params: Canonical JSON text of the test configuration.
        completed_at_ms: Client-supplied completion time, epoch milliseconds.
        wpm: Net words per minute.
        raw_wpm: Raw words per minute.
        accuracy: Accuracy as supplied by the client.
    """

    id: int
    user_id: int
    test_params: str
    completed_at_ms: int
    wpm: float
    raw_wpm: float
    accuracy: float


_SELECT_COLUMNS = "id, user_id, test_params, completed_at, wpm, raw_wpm, accuracy"


class SQLiteResultStore:
    """
    Append-only result storage bound to one SQLite database file.

    Instances hold no connection. Each call opens its own connection through
    :func:`connection_scope` and closes it before returning, so a single
    store can be shared freely across threads and concurrent requests.

    Args:
        db_path: Explicit database file. When omitted the configured path is
            resolved on every call, which keeps ``use_test_database`` working.
    """

    def __init__(self, db_path: Path | str | None = None) -> None:
        self.db_path = Path(db_path) if db_path is not None else None

    def insert_result(
        self,
        *,
        user_id: int,
        test_params: str,
        completed_at_ms: int,
        wpm: float,
        raw_wpm: float,
        accuracy: float,
    ) -> InsertResult:
        """Append one result row with a single INSERT statement.

        Returns:
            ``InsertResult(INSERTED, id)`` on success, or
            ``InsertResult(DUPLICATE)`` when ``(user_id, test_params,
            completed_at)`` already exists.

        Raises:
            DatabaseWriteError: On any other SQLite failure, including
                foreign-key and NOT NULL violations.
        """
        try:
            with connection_scope(write=True, db_path=self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    INSERT INTO results (
                        user_id,
                        test_params,
                        completed_at,
                        wpm,
                        raw_wpm,
                        accuracy
                    )
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (user_id, test_params, completed_at_ms, wpm, raw_wpm, accuracy),
                )
                result_id = cursor.lastrowid
            if result_id is None:
                raise ValueError("SQLite did not report an id for the inserted result.")
            return InsertResult(InsertOutcome.INSERTED, int(result_id))
        except sqlite3.IntegrityError as exc:
            if _is_unique_violation(exc):
                logger.debug(
                    "Duplicate result rejected for user_id=%s completed_at=%s",
                    user_id,
                    completed_at_ms,
                )
                return InsertResult(InsertOutcome.DUPLICATE)
            _raise_write_error(
                "results.insert_result",
                exc,
                details=f"user_id={user_id!r}, completed_at={completed_at_ms!r}",
            )
        except Exception as exc:
            _raise_write_error(
                "results.insert_result",
                exc,
                details=f"user_id={user_id!r}, completed_at={completed_at_ms!r}",
            )

    def fetch_results(
        self,
        user_id: int,
        *,
        before_id: int | None,
        limit: int,
    ) -> list[StoredResult]:
        """Return up to ``limit`` rows for ``user_id``, newest id first.

        Args:
            user_id: Owner whose rows are returned. Always part of the predicate.
            before_id: Exclusive upper bound on ``id``; ``None`` starts from the
                newest row.
            limit: Maximum number of rows.

        Raises:
            DatabaseReadError: On SQLite failure.
        """
        try:
            with connection_scope(db_path=self.db_path) as conn:
                cursor = conn.cursor()
                if before_id is None:
                    cursor.execute(
                        f"""
                        SELECT {_SELECT_COLUMNS}
                        FROM results
                        WHERE user_id = ?
                        ORDER BY id DESC
                        LIMIT ?
                        """,
                        (user_id, limit),
                    )
                else:
                    cursor.execute(
                        f"""
                        SELECT {_SELECT_COLUMNS}
                        FROM results
                        WHERE user_id = ? AND id < ?
                        ORDER BY id DESC
                        LIMIT ?
                        """,
                        (user_id, before_id, limit),
                    )
                rows = cursor.fetchall()

            return [
                StoredResult(
                    id=int(row[0]),
                    user_id=int(row[1]),
                    test_params=str(row[2]),
                    completed_at_ms=int(row[3]),
                    wpm=float(row[4]),
                    raw_wpm=float(row[5]),
                    accuracy=float(row[6]),
                )
                for row in rows
            ]
        except Exception as exc:
            _raise_read_error(
                "results.fetch_results",
                exc,
                details=f"user_id={user_id!r}, before_id={before_id!r}, limit={limit}",
            )

    def count_results(self, user_id: int) -> int:
        """Return the number of stored results for ``user_id``."""
        try:
            with connection_scope(db_path=self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT COUNT(*) FROM results WHERE user_id = ?", (user_id,))
                row = cursor.fetchone()
            return int(row[0]) if row else 0
        except Exception as exc:
            _raise_read_error("results.count_results", exc, details=f"user_id={user_id!r}")

    def ping(self) -> None:
        """Run a trivial query to prove the database is reachable."""
        try:
            with connection_scope(db_path=self.db_path) as conn:
                conn.execute("SELECT 1 FROM results LIMIT 1").fetchall()
        except Exception as exc:
            _raise_read_error("results.ping", exc)
