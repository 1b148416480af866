"""Health and root endpoints.

Provides the root ``/`` endpoint (API identity and version) and the
``/health`` endpoint (liveness plus database reachability).
"""

import asyncio
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from typing_server import __version__
from typing_server.api.routes.utils import get_ledger
from typing_server.db.errors import DatabaseError
from typing_server.ledger import ResultLedger

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
async def root():
    """Root endpoint showing API identity and current version."""
    return {"message": "Typing Result API", "version": __version__}


@router.get("/health")
async def health_check(ledger: ResultLedger = Depends(get_ledger)):
    """Health check endpoint. Returns 503 when the database is unreachable."""
    try:
        await asyncio.to_thread(ledger.store.ping)
    except DatabaseError:
        logger.warning("Health check could not reach the database", exc_info=True)
        return JSONResponse(status_code=503, content={"status": "degraded", "database": "error"})
    return {"status": "ok", "database": "ok"}
