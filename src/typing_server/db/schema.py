"""Schema creation and invariant trigger wiring for the SQLite backend.

The schema layer is isolated from query code so schema changes are reviewable
without wading through unrelated repository logic.

Tables:
    users:    Identity rows referenced by sessions and results.
    sessions: Bearer tokens resolved to a user id by the API auth dependency.
    results:  Append-only ledger of completed typing tests.
"""

from __future__ import annotations

import logging
from pathlib import Path

from typing_server.db.connection import get_connection

logger = logging.getLogger(__name__)

# Name of the uniqueness constraint guarding against double submission. SQLite
# does not report constraint names in errors; the name documents intent in
# ``.schema`` output only.
RESULT_DEDUP_CONSTRAINT = "unique_result"

# Hot-path index rationale:
# 1. result history pages are always user-scoped and walk ids newest-first
#    below a cursor, so (user_id, id DESC) serves both the first page and
#    every ``id < cursor`` continuation without a sort step.
# 2. session tokens are resolved on every authenticated request.
HOT_PATH_INDEX_STATEMENTS = (
    "CREATE INDEX IF NOT EXISTS idx_results_user_id_desc ON results(user_id, id DESC)",
    "CREATE INDEX IF NOT EXISTS idx_sessions_user_id ON sessions(user_id)",
)


def create_result_invariant_triggers(cursor) -> None:
    """Create triggers that keep result rows immutable once written.

    Rows are never edited or removed by the application. The triggers also
    protect the ledger against direct SQL writes made outside the repository.
    """
    cursor.execute("DROP TRIGGER IF EXISTS enforce_results_immutable")
    cursor.execute("""
        CREATE TRIGGER enforce_results_immutable
        BEFORE UPDATE ON results
        BEGIN
            SELECT RAISE(ABORT, 'result invariant violated: results are immutable');
        END;
    """)
    cursor.execute("DROP TRIGGER IF EXISTS enforce_results_append_only")
    cursor.execute("""
        CREATE TRIGGER enforce_results_append_only
        BEFORE DELETE ON results
        BEGIN
            SELECT RAISE(ABORT, 'result invariant violated: results are never deleted');
        END;
    """)


def init_database(*, db_path: Path | str | None = None) -> None:
    """Initialize the SQLite database schema and baseline triggers.

    Behavior:
    - Creates the parent directory of the database file when missing.
    - Creates required tables and indexes if missing.
    - Installs the result immutability triggers (no UPDATE, no DELETE).

    Args:
        db_path: Explicit database file. Defaults to the configured path.
    """
    if db_path is not None:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    else:
        from typing_server.db.connection import get_db_path

        get_db_path().parent.mkdir(parents=True, exist_ok=True)

    conn = get_connection(db_path)
    try:
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                username TEXT UNIQUE NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS sessions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                session_id TEXT UNIQUE NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                last_activity TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                expires_at TIMESTAMP,
                FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
            )
        """)

        # AUTOINCREMENT (not a plain rowid alias) guarantees ids start at 1 and
        # are never reused. Pagination relies on both: 0 is the end-of-history
        # cursor.
        cursor.execute(f"""
            CREATE TABLE IF NOT EXISTS results (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                test_params TEXT NOT NULL,
                completed_at INTEGER NOT NULL,  -- epoch milliseconds, client supplied
                wpm REAL NOT NULL,
                raw_wpm REAL NOT NULL,
                accuracy REAL NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE RESTRICT,
                CONSTRAINT {RESULT_DEDUP_CONSTRAINT} UNIQUE (user_id, test_params, completed_at)
            )
        """)

        for statement in HOT_PATH_INDEX_STATEMENTS:
            cursor.execute(statement)

        create_result_invariant_triggers(cursor)
        conn.commit()
    finally:
        conn.close()

    logger.info("Database schema ready")
