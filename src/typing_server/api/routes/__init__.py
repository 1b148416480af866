"""API route registration."""

from fastapi import FastAPI

from typing_server.api.routes import health, results, session


def register_routes(app: FastAPI) -> None:
    """Register all API routers with the FastAPI app."""
    app.include_router(health.router)
    app.include_router(results.router)
    app.include_router(session.router)
