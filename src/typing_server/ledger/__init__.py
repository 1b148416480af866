"""Result ledger: append-only record of completed typing tests.

Public surface
--------------
- :class:`ResultLedger`: ``submit`` a result, ``list_results`` page by page.
- :class:`ResultRecord`: one stored attempt.
- :class:`ResultPage`  : a page plus ``next_cursor``.
- :class:`TestParams`  : opaque test configuration document.
- :exc:`ConflictError` : duplicate submission.
- :exc:`InvalidRequest`: out-of-range metric, cursor or limit.
- :exc:`StorageError`  : any other failure.

Usage example
-------------
::

    from typing_server.db.results_repo import SQLiteResultStore
    from typing_server.ledger import ConflictError, ResultLedger

    ledger = ResultLedger(SQLiteResultStore())
    try:
        await ledger.submit(user_id, {"mode": "words", "length": 25}, finished, 82.5, 90.1, 96.4)
    except ConflictError:
        pass  # already recorded

    page = await ledger.list_results(user_id, limit=20)
    while not page.exhausted:
        page = await ledger.list_results(user_id, page.next_cursor, limit=20)
"""

from typing_server.ledger.errors import (
    ConflictError,
    InvalidRequest,
    InvalidTestParams,
    LedgerError,
    StorageError,
)
from typing_server.ledger.records import (
    END_OF_HISTORY,
    ResultPage,
    ResultRecord,
    TestParams,
)
from typing_server.ledger.service import ResultLedger

__all__ = [
    "END_OF_HISTORY",
    "ConflictError",
    "InvalidRequest",
    "InvalidTestParams",
    "LedgerError",
    "ResultLedger",
    "ResultPage",
    "ResultRecord",
    "StorageError",
    "TestParams",
]
