"""Database schema initialization."""

from __future__ import annotations

import sqlite3

from chunksmith.db.migrations import MIGRATIONS, run_migrations

CURRENT_VERSION = MIGRATIONS[-1][0]


def initialize(conn: sqlite3.Connection) -> None:
    """Initialize the database schema via the migration runner (idempotent)."""
    run_migrations(conn)


def current_version(conn: sqlite3.Connection) -> int:
    """Return the highest applied schema version (0 for an empty database)."""
    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    return row[0] if row and row[0] is not None else 0
