"""
Unit tests for CLI module (typing_server/cli.py).

Tests cover:
- Command parsing
- init-db command
- create-user command (token issue, validation, reuse)
- export command (JSON lines, unknown user)
"""

import argparse
import asyncio
import json
from datetime import UTC, datetime
from unittest.mock import patch

import pytest

from typing_server import cli
from typing_server.db import sessions_repo, users_repo
from typing_server.db.results_repo import SQLiteResultStore
from typing_server.ledger import ResultLedger
from tests.constants import QUOTE_PARAMS

# ============================================================================
# INIT-DB COMMAND TESTS
# ============================================================================


@pytest.mark.unit
def test_cmd_init_db_success():
    """Test init-db command succeeds."""
    with patch("typing_server.db.schema.init_database") as mock_init:
        result = cli.cmd_init_db(argparse.Namespace())

        assert result == 0
        mock_init.assert_called_once()


@pytest.mark.unit
def test_cmd_init_db_error(capsys):
    """Test init-db command handles errors."""
    with patch("typing_server.db.schema.init_database", side_effect=Exception("DB error")):
        result = cli.cmd_init_db(argparse.Namespace())

    assert result == 1
    assert "DB error" in capsys.readouterr().err


@pytest.mark.db
def test_cmd_init_db_creates_file(temp_db_path):
    assert cli.main(["init-db"]) == 0
    assert temp_db_path.exists()


# ============================================================================
# CREATE-USER COMMAND TESTS
# ============================================================================


@pytest.mark.db
def test_create_user_prints_usable_token(temp_db_path, capsys):
    assert cli.main(["create-user", "carol"]) == 0

    token = capsys.readouterr().out.strip()
    user_id = users_repo.get_user_id("carol")
    assert user_id is not None
    assert sessions_repo.get_session_user_id(token) == user_id


@pytest.mark.db
def test_create_user_reuses_existing_user(temp_db_path, capsys):
    assert cli.main(["create-user", "carol"]) == 0
    first = capsys.readouterr().out.strip()
    assert cli.main(["create-user", "carol"]) == 0
    second = capsys.readouterr().out.strip()

    assert first != second
    assert sessions_repo.get_session_user_id(first) == sessions_repo.get_session_user_id(second)


@pytest.mark.unit
@pytest.mark.parametrize("username", ["", "   ", "x" * 65])
def test_create_user_rejects_bad_usernames(username, capsys):
    assert cli.cmd_create_user(argparse.Namespace(username=username)) == 1
    assert "1-64 characters" in capsys.readouterr().err


# ============================================================================
# EXPORT COMMAND TESTS
# ============================================================================


@pytest.mark.db
async def test_export_writes_history_newest_first(users, temp_db_path, capsys):
    ledger = ResultLedger(SQLiteResultStore(temp_db_path))
    for n in range(3):
        completed = datetime(2024, 3, 1, 12, 0, n, tzinfo=UTC)
        await ledger.submit(users["alice"], QUOTE_PARAMS, completed, 50.0 + n, 55.0, 98.0)

    exit_code = await asyncio.to_thread(cli.main, ["export", "alice", "--page-size", "2"])

    captured = capsys.readouterr()
    lines = [json.loads(line) for line in captured.out.splitlines()]
    assert exit_code == 0
    assert [line["id"] for line in lines] == [3, 2, 1]
    assert lines[0]["testParams"] == QUOTE_PARAMS
    assert lines[0]["wpm"] == 52.0
    assert "Exported 3 of 3 results." in captured.err


@pytest.mark.db
def test_export_unknown_user(users, capsys):
    assert cli.main(["export", "nobody"]) == 1
    assert "Unknown user" in capsys.readouterr().err


@pytest.mark.unit
def test_export_rejects_bad_page_size(capsys):
    assert cli.cmd_export(argparse.Namespace(username="alice", page_size=0)) == 1


# ============================================================================
# ARGUMENT PARSING
# ============================================================================


@pytest.mark.unit
def test_main_no_command(capsys):
    assert cli.main([]) == 0
    assert "typing-server" in capsys.readouterr().out


@pytest.mark.unit
def test_main_run_prints_config_and_passes_host_and_port(capsys):
    with patch("typing_server.api.server.start_server") as mock_start:
        result = cli.main(["run", "--host", "127.0.0.1", "--port", "9100"])

    assert result == 0
    mock_start.assert_called_once_with(host="127.0.0.1", port=9100)
    assert "SERVER CONFIGURATION" in capsys.readouterr().out


@pytest.mark.unit
def test_cmd_run_reports_startup_error(capsys):
    with patch("typing_server.api.server.start_server", side_effect=OSError("in use")):
        result = cli.cmd_run(argparse.Namespace(host=None, port=None))

    assert result == 1
    assert "in use" in capsys.readouterr().err
