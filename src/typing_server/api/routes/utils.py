"""Shared helpers for API route modules."""

from fastapi import Request

from typing_server.ledger import ResultLedger


def get_ledger(request: Request) -> ResultLedger:
    """Return the ledger the app was built with."""
    return request.app.state.ledger
