"""
Command-line interface for the typing result server.

Provides CLI commands for server management:
- init-db: Initialize the database schema
- create-user: Create a user and print a session token for it
- export: Write a user's full result history as JSON lines
- run: Start the API server

Usage:
    typing-server init-db
    typing-server create-user alice
    typing-server export alice > alice.jsonl
    typing-server run [--port PORT] [--host HOST]

Environment Variables:
    TYPING_HOST: Host to bind the API server (default: 0.0.0.0)
    TYPING_PORT: Port for the API server (default: 8080)
    TYPING_DB_PATH: SQLite database file (default: data/typing.db)
"""

import argparse
import asyncio
import json
import secrets
import sys


def cmd_init_db(args: argparse.Namespace) -> int:
    """
    Initialize the database schema.

    Returns:
        0 on success, 1 on error
    """
    from typing_server.db.schema import init_database

    try:
        init_database()
        print("Database initialized successfully.")
        return 0
    except Exception as e:
        print(f"Error initializing database: {e}", file=sys.stderr)
        return 1


def cmd_create_user(args: argparse.Namespace) -> int:
    """
    Create a user (or reuse an existing one) and issue a session token.

    The token is printed on stdout so it can be captured by scripts and sent
    as ``Authorization: Bearer <token>``.

    Returns:
        0 on success, 1 on error
    """
    from typing_server.db import sessions_repo, users_repo
    from typing_server.db.errors import DatabaseError
    from typing_server.db.schema import init_database

    username = args.username.strip()
    if not username or len(username) > 64:
        print("Error: Username must be 1-64 characters.", file=sys.stderr)
        return 1

    try:
        init_database()
        user_id = users_repo.get_user_id(username)
        if user_id is None:
            user_id = users_repo.create_user(username)
            if user_id is None:
                print(f"Error: Failed to create user '{username}'.", file=sys.stderr)
                return 1
            print(f"Created user '{username}' (id {user_id}).", file=sys.stderr)

        token = secrets.token_urlsafe(32)
        sessions_repo.create_session(user_id, token)
    except DatabaseError as e:
        print(f"Error creating session: {e}", file=sys.stderr)
        return 1

    print(token)
    return 0


async def _export_results(user_id: int, page_size: int) -> int:
    from typing_server.db.results_repo import SQLiteResultStore
    from typing_server.ledger import ResultLedger

    ledger = ResultLedger(SQLiteResultStore())
    count = 0
    async for record in ledger.iter_results(user_id, page_size=page_size):
        line = {
            "id": record.id,
            "testParams": record.test_params.to_dict(),
            "completedAt": record.completed_at_ms,
            "wpm": record.wpm,
            "rawWpm": record.raw_wpm,
            "accuracy": record.accuracy,
        }
        print(json.dumps(line, sort_keys=True))
        count += 1
    return count


def cmd_export(args: argparse.Namespace) -> int:
    """
    Write every result for a user to stdout, newest first, one JSON per line.

    Returns:
        0 on success, 1 on error
    """
    from typing_server.db import users_repo
    from typing_server.db.errors import DatabaseError
    from typing_server.db.results_repo import SQLiteResultStore
    from typing_server.ledger import LedgerError

    if args.page_size < 1:
        print("Error: --page-size must be at least 1.", file=sys.stderr)
        return 1

    try:
        user_id = users_repo.get_user_id(args.username)
        if user_id is None:
            print(f"Error: Unknown user '{args.username}'.", file=sys.stderr)
            return 1
        expected = SQLiteResultStore().count_results(user_id)
        exported = asyncio.run(_export_results(user_id, args.page_size))
    except (DatabaseError, LedgerError) as e:
        print(f"Error exporting results: {e}", file=sys.stderr)
        return 1

    print(f"Exported {exported} of {expected} results.", file=sys.stderr)
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    """
    Run the API server in the foreground.

    Returns:
        0 on clean shutdown (Ctrl+C), 1 on startup error
    """
    from typing_server.api.server import start_server
    from typing_server.config import print_config_summary

    print_config_summary()

    try:
        start_server(host=getattr(args, "host", None), port=getattr(args, "port", None))
        return 0
    except KeyboardInterrupt:
        print("\nServer stopped.")
        return 0
    except Exception as e:
        print(f"Error starting server: {e}", file=sys.stderr)
        return 1


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="typing-server",
        description="Typing result server - records and pages typing test results",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    init_parser = subparsers.add_parser(
        "init-db",
        help="Initialize the database schema",
        description="Create the users, sessions and results tables if they do not exist.",
    )
    init_parser.set_defaults(func=cmd_init_db)

    user_parser = subparsers.add_parser(
        "create-user",
        help="Create a user and print a session token",
        description=(
            "Create the user if it does not exist, then issue a new session token "
            "and print it on stdout."
        ),
    )
    user_parser.add_argument("username", help="Username to create or reuse")
    user_parser.set_defaults(func=cmd_create_user)

    export_parser = subparsers.add_parser(
        "export",
        help="Export a user's results as JSON lines",
        description="Walk a user's full result history newest-first and print it as JSON lines.",
    )
    export_parser.add_argument("username", help="User whose results are exported")
    export_parser.add_argument(
        "--page-size",
        type=int,
        default=100,
        help="Results fetched per page while walking the history (default: 100)",
    )
    export_parser.set_defaults(func=cmd_export)

    run_parser = subparsers.add_parser(
        "run",
        help="Run the API server",
        description="Start the FastAPI server with uvicorn.",
    )
    run_parser.add_argument(
        "--port",
        "-p",
        type=int,
        help="API server port (default: 8080, or TYPING_PORT env var)",
    )
    run_parser.add_argument(
        "--host",
        type=str,
        help="Host to bind to (default: 0.0.0.0, or TYPING_HOST env var)",
    )
    run_parser.set_defaults(func=cmd_run)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
