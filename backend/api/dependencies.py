"""Database connection and common dependencies for the API."""
import sqlite3
import os
from pathlib import Path
from contextlib import contextmanager
from typing import Generator

# Database path - configurable via env var, defaults to vendors.db next to the backend
DB_PATH = Path(os.environ.get("DATABASE_PATH", str(Path(__file__).parent.parent / "vendors.db")))

# Query timeout in seconds (configurable via environment variable)
DB_QUERY_TIMEOUT = int(os.environ.get("DB_QUERY_TIMEOUT", "30"))


def get_db_connection() -> sqlite3.Connection:
    """Create a database connection with row factory and timeout.

    Connections are per-thread: the analysis job opens its own.
    """
    conn = sqlite3.connect(str(DB_PATH), timeout=DB_QUERY_TIMEOUT)
    conn.row_factory = sqlite3.Row
    # Set busy timeout to handle concurrent access
    conn.execute(f"PRAGMA busy_timeout = {DB_QUERY_TIMEOUT * 1000}")
    # WAL mode allows concurrent readers while one writer is active
    conn.execute("PRAGMA journal_mode = WAL")
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def get_db() -> Generator[sqlite3.Connection, None, None]:
    """Context manager for database connections."""
    conn = get_db_connection()
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def immediate_transaction(conn: sqlite3.Connection) -> Generator[sqlite3.Connection, None, None]:
    """Run a check-then-write sequence under SQLite's write lock.

    BEGIN IMMEDIATE takes the reserved lock before the first read, so a
    concurrent writer cannot pass the same check before we commit.
    """
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.rollback()
        raise
    else:
        conn.commit()


def verify_database_exists() -> bool:
    """Check if the database file exists."""
    return DB_PATH.exists()
