"""Result submission and history endpoints.

Error mapping:
    ConflictError      -> 422 "Duplicate result"
    InvalidTestParams  -> 422 "Invalid test params"
    InvalidRequest     -> 422 with the reason
    StorageError       -> 500 "Internal server error" (logged with traceback)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from typing_server.api.auth import get_current_user_id
from typing_server.api.models import ResultItem, ResultPageResponse, SubmitResultRequest
from typing_server.api.routes.utils import get_ledger
from typing_server.config import config
from typing_server.ledger import (
    ConflictError,
    InvalidRequest,
    InvalidTestParams,
    ResultLedger,
    ResultRecord,
    StorageError,
)
from typing_server.ledger.records import MAX_STORE_INTEGER, datetime_from_epoch_ms

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_item(record: ResultRecord) -> ResultItem:
    return ResultItem(
        test_params=record.test_params.to_dict(),
        completed_at=record.completed_at_ms,
        wpm=record.wpm,
        raw_wpm=record.raw_wpm,
        accuracy=record.accuracy,
    )


@router.post("/result")
async def post_result(
    request: SubmitResultRequest,
    user_id: int = Depends(get_current_user_id),
    ledger: ResultLedger = Depends(get_ledger),
) -> None:
    """Record a completed test for the authenticated user.

    Returns an empty body on success. A resubmission of the same test (same
    params and completion time) answers 422 so clients retrying after a
    network failure can treat it as already recorded.
    """
    try:
        completed_at = datetime_from_epoch_ms(request.completed_at)
    except (OverflowError, OSError, ValueError):
        raise HTTPException(status_code=422, detail="completedAt is out of range") from None

    try:
        await ledger.submit(
            user_id,
            request.test_params,
            completed_at,
            request.wpm,
            request.raw_wpm,
            request.accuracy,
        )
    except ConflictError:
        raise HTTPException(status_code=422, detail="Duplicate result") from None
    except InvalidTestParams as exc:
        raise HTTPException(status_code=422, detail=f"Invalid test params: {exc}") from None
    except InvalidRequest as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from None
    except StorageError:
        logger.exception("Failed to record result for user_id=%s", user_id)
        raise HTTPException(status_code=500, detail="Internal server error") from None
    return None


@router.get("/result", response_model=ResultPageResponse)
async def get_results(
    cursor: int | None = Query(default=None, ge=0, le=MAX_STORE_INTEGER),
    limit: int | None = Query(default=None, ge=1),
    user_id: int = Depends(get_current_user_id),
    ledger: ResultLedger = Depends(get_ledger),
):
    """Return the authenticated user's results, newest first.

    Omit ``cursor`` for the newest page; pass the previous response's
    ``cursor`` to continue. A response with ``cursor == 0`` and no results
    marks the end of the history.
    """
    page_size = limit if limit is not None else config.results.default_page_size
    if page_size > config.results.max_page_size:
        raise HTTPException(
            status_code=422,
            detail=f"limit must be at most {config.results.max_page_size}",
        )

    try:
        page = await ledger.list_results(user_id, cursor, limit=page_size)
    except InvalidRequest as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from None
    except StorageError:
        logger.exception("Failed to list results for user_id=%s", user_id)
        raise HTTPException(status_code=500, detail="Internal server error") from None

    return ResultPageResponse(
        cursor=page.next_cursor,
        results=[_to_item(record) for record in page.results],
    )
