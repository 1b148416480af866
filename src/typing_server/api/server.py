"""
FastAPI backend server for the typing result ledger.

This module builds and serves the FastAPI application:
- CORS middleware so the browser client (on another origin) can call the API
  with credentials
- The :class:`ResultLedger` instance shared by all requests via ``app.state``
- All API route endpoints

``create_app`` is a factory so tests can build isolated apps around their
own ledger; ``app`` is the module-level instance uvicorn serves.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from typing_server import __version__
from typing_server.api.routes import register_routes
from typing_server.config import config
from typing_server.db import sessions_repo
from typing_server.db.results_repo import SQLiteResultStore
from typing_server.db.schema import init_database
from typing_server.ledger import ResultLedger
from typing_server.logging_config import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Prepare the database on startup."""
    configure_logging()
    db_path = app.state.ledger.store.db_path
    init_database(db_path=db_path)
    removed = sessions_repo.cleanup_expired_sessions(db_path=db_path)
    if removed:
        logger.info("Removed %d expired sessions", removed)
    logger.info("Typing result API %s ready", __version__)
    yield


def create_app(ledger: ResultLedger | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        ledger: Ledger to serve. Defaults to one backed by the configured
            database path.
    """
    docs_url = "/docs" if config.docs_should_be_enabled else None
    redoc_url = "/redoc" if config.docs_should_be_enabled else None
    app = FastAPI(
        title="Typing Result API",
        version=__version__,
        docs_url=docs_url,
        redoc_url=redoc_url,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.security.cors_origins,
        allow_credentials=config.security.cors_allow_credentials,
        allow_methods=config.security.cors_allow_methods,
        allow_headers=config.security.cors_allow_headers,
    )

    app.state.ledger = ledger if ledger is not None else ResultLedger(SQLiteResultStore())
    register_routes(app)
    return app


app = create_app()


def start_server(host: str | None = None, port: int | None = None) -> None:
    """Run the API with uvicorn, falling back to configured host/port."""
    import uvicorn

    uvicorn.run(
        app,
        host=host or config.server.host,
        port=port or config.server.port,
        log_config=None,
    )


if __name__ == "__main__":
    start_server()
