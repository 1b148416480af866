"""Session token endpoints."""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException

from typing_server.api.auth import get_app_db_path, get_current_user_id, get_session_token
from typing_server.api.models import LogoutResponse
from typing_server.db import sessions_repo
from typing_server.db.errors import DatabaseError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/logout", response_model=LogoutResponse)
def logout(
    token: str = Depends(get_session_token),
    user_id: int = Depends(get_current_user_id),
    db_path: Path | None = Depends(get_app_db_path),
):
    """Revoke the presented session token."""
    try:
        removed = sessions_repo.remove_session_by_id(token, db_path=db_path)
    except DatabaseError:
        logger.exception("Failed to revoke session for user_id=%s", user_id)
        raise HTTPException(status_code=500, detail="Internal server error") from None
    return LogoutResponse(success=removed)
