"""
Shared pytest fixtures for the typing result server test suite.

This module provides fixtures that are automatically available to all test files:
- Temporary test databases wired through ``use_test_database``
- A ledger bound explicitly to the temporary database
- FastAPI TestClient instances with authenticated users

Every fixture is function-scoped so each test starts from an empty ledger.
"""

import shutil
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from typing_server.config import use_test_database
from typing_server.db import sessions_repo, users_repo
from typing_server.db.results_repo import SQLiteResultStore
from typing_server.db.schema import init_database
from typing_server.ledger import ResultLedger

# ============================================================================
# DATABASE FIXTURES
# ============================================================================


@pytest.fixture(scope="function")
def temp_db_path() -> Generator[Path, None, None]:
    """
    Create a temporary database file for testing.

    Uses the config system's ``use_test_database`` context manager so code
    that resolves the configured path (sessions, users) sees the same file.

    Yields:
        Path to temporary database file
    """
    temp_dir = tempfile.mkdtemp()
    temp_db = Path(temp_dir) / "test_typing.db"

    with use_test_database(temp_db):
        yield temp_db

    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture(scope="function")
def test_db(temp_db_path: Path) -> Generator[None, None, None]:
    """Initialize the production schema in the temporary database."""
    init_database()
    yield


@pytest.fixture(scope="function")
def users(test_db) -> dict[str, int]:
    """
    Create two users for ownership and isolation tests.

    Returns:
        Dict mapping usernames ("alice", "bob") to user ids
    """
    created = {}
    for username in ("alice", "bob"):
        user_id = users_repo.create_user(username)
        assert user_id is not None
        created[username] = user_id
    return created


# ============================================================================
# LEDGER FIXTURES
# ============================================================================


@pytest.fixture(scope="function")
def store(temp_db_path: Path, test_db) -> SQLiteResultStore:
    """Result store bound explicitly to the temporary database."""
    return SQLiteResultStore(temp_db_path)


@pytest.fixture(scope="function")
def ledger(store: SQLiteResultStore) -> ResultLedger:
    """Ledger over the temporary store."""
    return ResultLedger(store)


# ============================================================================
# FASTAPI TEST CLIENT FIXTURES
# ============================================================================


@pytest.fixture(scope="function")
def test_client(ledger: ResultLedger) -> TestClient:
    """
    Create a FastAPI TestClient around the temporary ledger.

    Example:
        def test_health(test_client):
            response = test_client.get("/health")
            assert response.status_code == 200
    """
    from typing_server.api.server import create_app

    return TestClient(create_app(ledger))


def _issue_token(user_id: int, token: str) -> dict[str, str]:
    assert sessions_repo.create_session(user_id, token)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def auth_headers(users: dict[str, int]) -> dict[str, str]:
    """Bearer headers for alice."""
    return _issue_token(users["alice"], "alice-token")


@pytest.fixture(scope="function")
def other_auth_headers(users: dict[str, int]) -> dict[str, str]:
    """Bearer headers for bob."""
    return _issue_token(users["bob"], "bob-token")
