"""Ingest and pagination over the result store.

:class:`ResultLedger` is stateless apart from the store it was given. Each
call runs its single SQL statement in a worker thread so the event loop is
never blocked on SQLite, and all cross-request consistency (dedup, id order)
is left to the database:

- ``submit`` is one INSERT. Two racing duplicates cannot both land; the loser
  gets :exc:`ConflictError`.
- ``list_results`` is one SELECT bounded by ``id < cursor``. Rows inserted
  after the first page always have larger ids, so they can never appear in
  or shift a later page of the same walk.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Mapping
from datetime import datetime
from typing import Any

from typing_server.db.errors import DatabaseError
from typing_server.db.results_repo import InsertOutcome, SQLiteResultStore, StoredResult
from typing_server.ledger.errors import (
    ConflictError,
    InvalidRequest,
    InvalidTestParams,
    StorageError,
)
from typing_server.ledger.records import (
    END_OF_HISTORY,
    MAX_STORE_INTEGER,
    ResultPage,
    ResultRecord,
    TestParams,
    check_metric,
    datetime_from_epoch_ms,
    datetime_to_epoch_ms,
)

logger = logging.getLogger(__name__)


def _to_record(row: StoredResult) -> ResultRecord:
    return ResultRecord(
        id=row.id,
        user_id=row.user_id,
        test_params=TestParams.decode(row.test_params),
        completed_at=datetime_from_epoch_ms(row.completed_at_ms),
        wpm=row.wpm,
        raw_wpm=row.raw_wpm,
        accuracy=row.accuracy,
    )


class ResultLedger:
    """
    Append-only ledger of completed typing tests.

    Args:
        store: Result storage. Injected so each app (or test) decides which
            database it talks to.
    """

    def __init__(self, store: SQLiteResultStore) -> None:
        self.store = store

    async def submit(
        self,
        user_id: int,
        test_params: TestParams | Mapping[str, Any],
        completed_at: datetime,
        wpm: float,
        raw_wpm: float,
        accuracy: float,
    ) -> ResultRecord:
        """Record one completed test.

        Args:
            user_id: Authenticated owner. Trusted as given.
            test_params: Test configuration document.
            completed_at: Client-reported completion time.
            wpm: Net words per minute.
            raw_wpm: Raw words per minute.
            accuracy: Accuracy.

        Returns:
            The stored record, including its assigned id.

        Raises:
            ConflictError: The same ``(user_id, test_params, completed_at)``
                was already recorded.
            StorageError: Serialization or persistence failed.
            InvalidRequest: A metric is not a finite number.
        """
        if not isinstance(test_params, TestParams):
            test_params = TestParams(test_params)
        encoded = test_params.encode()
        completed_at_ms = datetime_to_epoch_ms(completed_at)
        metrics = (
            check_metric("wpm", wpm),
            check_metric("raw_wpm", raw_wpm),
            check_metric("accuracy", accuracy),
        )

        try:
            inserted = await asyncio.to_thread(
                self.store.insert_result,
                user_id=user_id,
                test_params=encoded,
                completed_at_ms=completed_at_ms,
                wpm=metrics[0],
                raw_wpm=metrics[1],
                accuracy=metrics[2],
            )
        except DatabaseError as exc:
            raise StorageError(str(exc)) from exc

        if inserted.outcome is InsertOutcome.DUPLICATE:
            raise ConflictError(user_id, completed_at_ms)

        if inserted.result_id is None:
            raise StorageError("store did not assign an id to the inserted result")
        logger.info("Recorded result id=%s for user_id=%s", inserted.result_id, user_id)
        return ResultRecord(
            id=inserted.result_id,
            user_id=user_id,
            test_params=test_params,
            completed_at=datetime_from_epoch_ms(completed_at_ms),
            wpm=metrics[0],
            raw_wpm=metrics[1],
            accuracy=metrics[2],
        )

    async def list_results(
        self,
        user_id: int,
        cursor: int | None = None,
        *,
        limit: int,
    ) -> ResultPage:
        """Return the next page of ``user_id``'s results, newest first.

        Args:
            user_id: Owner whose history is read.
            cursor: ``next_cursor`` from the previous page, or ``None`` for
                the newest page. Only ids strictly below it are returned.
            limit: Page size, at least 1.

        Returns:
            Up to ``limit`` records in descending id order. ``next_cursor`` is
            the smallest id in the page, or ``END_OF_HISTORY`` when the page
            is empty.

        Raises:
            InvalidRequest: ``limit`` or ``cursor`` is outside ``1..2**63-1``
                (``cursor`` may also be 0).
            StorageError: The read failed or a stored row is corrupt.
        """
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise InvalidRequest("limit must be a positive integer")
        if limit > MAX_STORE_INTEGER:
            raise InvalidRequest(f"limit must be at most {MAX_STORE_INTEGER}")
        if cursor is not None and not 0 <= cursor <= MAX_STORE_INTEGER:
            raise InvalidRequest(f"cursor must be between 0 and {MAX_STORE_INTEGER}")

        try:
            rows = await asyncio.to_thread(
                self.store.fetch_results, user_id, before_id=cursor, limit=limit
            )
        except DatabaseError as exc:
            raise StorageError(str(exc)) from exc

        try:
            records = tuple(_to_record(row) for row in rows)
        except InvalidTestParams:
            logger.error("Corrupt test params in stored results for user_id=%s", user_id)
            raise

        next_cursor = records[-1].id if records else END_OF_HISTORY
        return ResultPage(results=records, next_cursor=next_cursor)

    async def iter_results(self, user_id: int, *, page_size: int) -> AsyncIterator[ResultRecord]:
        """Yield every result for ``user_id``, newest first, one page at a time."""
        cursor: int | None = None
        while True:
            page = await self.list_results(user_id, cursor, limit=page_size)
            for record in page.results:
                yield record
            if page.exhausted or len(page.results) < page_size:
                return
            cursor = page.next_cursor
