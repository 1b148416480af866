"""Session token repository operations for the SQLite backend.

A session row maps an opaque bearer token to a user id. The API auth
dependency resolves tokens through :func:`get_session_user_id`; nothing in
the result ledger reads this table directly.
"""

from __future__ import annotations

from pathlib import Path
from typing import NoReturn

from typing_server.db.connection import connection_scope
from typing_server.db.errors import (
    DatabaseError,
    DatabaseOperationContext,
    DatabaseReadError,
    DatabaseWriteError,
)


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


def create_session(user_id: int, session_id: str, *, db_path: Path | str | None = None) -> bool:
    """Store a session token for ``user_id``.

    Expiry follows ``config.session.ttl_minutes``; ``0`` stores a token that
    never expires.
    """
    from typing_server.config import config

    try:
        with connection_scope(write=True, db_path=db_path) as conn:
            cursor = conn.cursor()
            if config.session.ttl_minutes > 0:
                cursor.execute(
                    """
                    INSERT INTO sessions (user_id, session_id, expires_at)
                    VALUES (?, ?, datetime('now', ?))
                    """,
                    (user_id, session_id, f"+{config.session.ttl_minutes} minutes"),
                )
            else:
                cursor.execute(
                    "INSERT INTO sessions (user_id, session_id, expires_at) VALUES (?, ?, NULL)",
                    (user_id, session_id),
                )
        return True
    except Exception as exc:
        _raise_write_error("sessions.create_session", exc, details=f"user_id={user_id!r}")


def get_session_user_id(session_id: str, *, db_path: Path | str | None = None) -> int | None:
    """Resolve a live session token to its user id.

    Expired tokens resolve to ``None``. A successful lookup refreshes
    ``last_activity``.
    """
    try:
        with connection_scope(write=True, db_path=db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT user_id
                FROM sessions
                WHERE session_id = ?
                  AND (expires_at IS NULL OR datetime(expires_at) > datetime('now'))
                """,
                (session_id,),
            )
            row = cursor.fetchone()
            if not row:
                return None
            cursor.execute(
                "UPDATE sessions SET last_activity = CURRENT_TIMESTAMP WHERE session_id = ?",
                (session_id,),
            )
        return int(row[0])
    except Exception as exc:
        _raise_read_error("sessions.get_session_user_id", exc)


def remove_session_by_id(session_id: str, *, db_path: Path | str | None = None) -> bool:
    """Remove one session by its token."""
    try:
        with connection_scope(write=True, db_path=db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM sessions WHERE session_id = ?", (session_id,))
            return int(cursor.rowcount or 0) > 0
    except Exception as exc:
        _raise_write_error("sessions.remove_session_by_id", exc)


def cleanup_expired_sessions(*, db_path: Path | str | None = None) -> int:
    """Delete expired session rows and return how many were removed."""
    try:
        with connection_scope(write=True, db_path=db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                DELETE FROM sessions
                WHERE expires_at IS NOT NULL AND datetime(expires_at) <= datetime('now')
                """
            )
            return int(cursor.rowcount or 0)
    except Exception as exc:
        _raise_write_error("sessions.cleanup_expired_sessions", exc)
