"""Ledger-level error taxonomy.

Every failure below the ledger (SQLite, serialization) is translated into
exactly one of these before it reaches a caller:

- :exc:`ConflictError`: the submission duplicates an existing result.
  Client-correctable; callers may treat it as "already recorded".
- :exc:`InvalidRequest`: an argument the ledger cannot accept (a non-finite
  metric, a cursor or limit outside the store's integer range). Raised
  before the store is touched. Also a ``ValueError``.
- :exc:`StorageError`: anything else. Opaque to callers; the underlying
  exception is chained as ``__cause__`` for logs.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for result ledger failures."""


class ConflictError(LedgerError):
    """A result with the same user, test params and completion time exists."""

    def __init__(self, user_id: int, completed_at_ms: int) -> None:
        super().__init__(
            f"Duplicate result for user_id={user_id} completed_at={completed_at_ms}"
        )
        self.user_id = user_id
        self.completed_at_ms = completed_at_ms


class InvalidRequest(LedgerError, ValueError):
    """A submit or page argument is out of range."""


class StorageError(LedgerError):
    """The store could not complete the operation."""


class InvalidTestParams(StorageError, ValueError):
    """Test params are not a well-formed JSON object."""
