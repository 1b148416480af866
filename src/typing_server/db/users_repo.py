"""User repository operations for the SQLite backend.

Users exist here only so sessions and results have a stable owner id. There
are no credentials: account provisioning and sign-in belong to the identity
provider in front of this service.
"""

from __future__ import annotations

import sqlite3
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


def create_user(username: str, *, db_path: Path | str | None = None) -> int | None:
    """Create a user row and return its id.

    Returns:
        The new user id, or ``None`` when the username is already taken.
    """
    try:
        with connection_scope(write=True, db_path=db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("INSERT INTO users (username) VALUES (?)", (username,))
            user_id = cursor.lastrowid
        return int(user_id) if user_id is not None else None
    except sqlite3.IntegrityError:
        return None
    except Exception as exc:
        _raise_write_error("users.create_user", exc, details=f"username={username!r}")


def get_user_id(username: str, *, db_path: Path | str | None = None) -> int | None:
    """Return the id for ``username`` or ``None`` when unknown."""
    try:
        with connection_scope(db_path=db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT id FROM users WHERE username = ?", (username,))
            row = cursor.fetchone()
        return int(row[0]) if row else None
    except Exception as exc:
        _raise_read_error("users.get_user_id", exc, details=f"username={username!r}")
