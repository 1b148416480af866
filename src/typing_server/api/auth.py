"""Request identity resolution.

The service does not sign anyone in. A caller presents a session token,
either as ``Authorization: Bearer <token>`` or as a ``session_id`` cookie,
and :func:`get_current_user_id` resolves it to the user id every ledger
operation is scoped to.

Sessions are looked up in the same database file the app's ledger writes
to, so the resolved user id always satisfies the results foreign key.
"""

import logging
from pathlib import Path

from fastapi import Cookie, Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from typing_server.db import sessions_repo
from typing_server.db.errors import DatabaseError

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_app_db_path(request: Request) -> Path | None:
    """Database file of the app's ledger (``None`` means the configured path)."""
    return request.app.state.ledger.store.db_path


def get_session_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session_id: str | None = Cookie(default=None),
) -> str:
    """Return the presented session token or fail with 401."""
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    if session_id:
        return session_id
    raise HTTPException(status_code=401, detail="Not authenticated")


def get_current_user_id(
    token: str = Depends(get_session_token),
    db_path: Path | None = Depends(get_app_db_path),
) -> int:
    """Resolve the session token to a user id or fail with 401."""
    try:
        user_id = sessions_repo.get_session_user_id(token, db_path=db_path)
    except DatabaseError:
        logger.exception("Session lookup failed")
        raise HTTPException(status_code=500, detail="Internal server error") from None
    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid or expired session")
    return user_id
