"""Forward-only migration runner for the chunksmith schema."""

from __future__ import annotations

import sqlite3

# schema_version is the bootstrap table, created before migrations run.
_CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

_V1_SQL = """
CREATE TABLE IF NOT EXISTS projects (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    name                TEXT NOT NULL,
    design_document     TEXT NOT NULL DEFAULT '',
    schema_sql          TEXT,
    language            TEXT NOT NULL DEFAULT '',
    publish_url         TEXT NOT NULL DEFAULT '',
    mock_records_count  INTEGER NOT NULL DEFAULT 10,
    generation_status   TEXT NOT NULL DEFAULT 'not_started',
    total_chunks        INTEGER NOT NULL DEFAULT 0,
    completed_chunks    INTEGER NOT NULL DEFAULT 0,
    created_at          DATETIME NOT NULL DEFAULT (datetime('now')),
    updated_at          DATETIME
);

CREATE TABLE IF NOT EXISTS manifests (
    project_id      INTEGER PRIMARY KEY REFERENCES projects(id) ON DELETE CASCADE,
    manifest_json   TEXT NOT NULL,
    created_at      DATETIME NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS chunk_records (
    project_id          INTEGER NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    chunk_id            TEXT NOT NULL,
    chunk_type          TEXT NOT NULL,
    description         TEXT NOT NULL DEFAULT '',
    generation_order    INTEGER NOT NULL,
    declaration_index   INTEGER NOT NULL DEFAULT 0,
    dependencies        TEXT NOT NULL DEFAULT '[]',
    status              TEXT NOT NULL DEFAULT 'pending',
    files_json          TEXT,
    files_count         INTEGER NOT NULL DEFAULT 0,
    tokens_used         INTEGER,
    generation_time_ms  INTEGER,
    error_message       TEXT,
    created_at          DATETIME NOT NULL DEFAULT (datetime('now')),
    generated_at        DATETIME,
    PRIMARY KEY (project_id, chunk_id)
);

CREATE INDEX IF NOT EXISTS idx_chunk_records_order
    ON chunk_records (project_id, generation_order, declaration_index);
CREATE INDEX IF NOT EXISTS idx_chunk_records_status
    ON chunk_records (status);
"""

# Append-only. Each entry: (version: int, sql: str).
# executescript() issues an implicit COMMIT before running.
MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
]


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply all pending migrations in ascending version order.

    Idempotent: safe to call on a database at any version.
    """
    conn.execute(_CREATE_SCHEMA_VERSION)
    conn.commit()

    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    current = row[0] if row[0] is not None else 0

    for version, sql in MIGRATIONS:
        if version > current:
            conn.executescript(sql)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )
            conn.commit()
