"""Repository pattern for all chunksmith database operations.

Single interface for projects, manifests and chunk records. Every chunk
state transition runs in one transaction together with the recount of the
owning project's total/completed counters, so the aggregate can never drift
from the chunk rows it summarizes.
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager

from chunksmith.db.models import (
    CHUNK_STATUSES,
    COMPLETED,
    FAILED,
    GENERATING,
    PENDING,
    PROJECT_PLANNED,
    ChunkRecord,
    Project,
)
from chunksmith.errors import PersistenceFailure

_PROJECT_COLUMNS = (
    "id, name, design_document, schema_sql, language, publish_url, mock_records_count, "
    "generation_status, total_chunks, completed_chunks, created_at, updated_at"
)
_CHUNK_COLUMNS = (
    "project_id, chunk_id, chunk_type, description, generation_order, declaration_index, "
    "dependencies, status, files_json, files_count, tokens_used, generation_time_ms, "
    "error_message, created_at, generated_at"
)

_REFRESH_AGGREGATE = """
UPDATE projects SET
    total_chunks = (SELECT COUNT(*) FROM chunk_records WHERE project_id = :pid),
    completed_chunks = (
        SELECT COUNT(*) FROM chunk_records WHERE project_id = :pid AND status = 'completed'
    ),
    updated_at = datetime('now')
WHERE id = :pid
"""


class Repository:
    """Data access layer for projects, manifests and chunk records.

    Wraps an open sqlite3.Connection. The connection is owned by the caller
    and must be closed after use. Write failures surface as PersistenceFailure.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with the schema initialised
                (see chunksmith.db.schema.initialize).
        """
        self._conn = conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Commit on success, roll back and raise PersistenceFailure on error."""
        try:
            with self._conn:
                yield self._conn
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"Database write failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def add_project(self, project: Project) -> int:
        """Insert a project and return its new id."""
        with self._transaction() as conn:
            cur = conn.execute(
                """
                INSERT INTO projects
                    (name, design_document, schema_sql, language, publish_url, mock_records_count)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    project.name,
                    project.design_document,
                    project.schema_sql,
                    project.language,
                    project.publish_url,
                    project.mock_records_count,
                ),
            )
        project.id = cur.lastrowid
        return cur.lastrowid

    def get_project(self, project_id: int) -> Project | None:
        """Return a project by id, or None if not found."""
        row = self._conn.execute(
            f"SELECT {_PROJECT_COLUMNS} FROM projects WHERE id = ?", (project_id,)
        ).fetchone()
        return _row_to_project(row) if row else None

    def list_projects(self) -> list[Project]:
        """Return all projects, oldest first."""
        rows = self._conn.execute(
            f"SELECT {_PROJECT_COLUMNS} FROM projects ORDER BY id"
        ).fetchall()
        return [_row_to_project(r) for r in rows]

    def set_project_status(self, project_id: int, status: str) -> None:
        """Set the project's generation_status."""
        with self._transaction() as conn:
            conn.execute(
                "UPDATE projects SET generation_status = ?, updated_at = datetime('now') WHERE id = ?",
                (status, project_id),
            )

    # ------------------------------------------------------------------
    # Manifest + plan replacement
    # ------------------------------------------------------------------

    def get_manifest_json(self, project_id: int) -> str | None:
        """Return the verbatim manifest blob for *project_id*, or None."""
        row = self._conn.execute(
            "SELECT manifest_json FROM manifests WHERE project_id = ?", (project_id,)
        ).fetchone()
        return row["manifest_json"] if row else None

    def replace_plan(
        self, project_id: int, manifest_json: str, records: list[ChunkRecord]
    ) -> None:
        """Store a new manifest and swap the project's whole chunk set.

        Runs as one transaction: either the old manifest and records survive
        untouched, or every old record is gone and the new ones are pending.
        """
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO manifests (project_id, manifest_json)
                VALUES (?, ?)
                ON CONFLICT(project_id) DO UPDATE SET
                    manifest_json = excluded.manifest_json,
                    created_at = datetime('now')
                """,
                (project_id, manifest_json),
            )
            conn.execute("DELETE FROM chunk_records WHERE project_id = ?", (project_id,))
            conn.executemany(
                """
                INSERT INTO chunk_records
                    (project_id, chunk_id, chunk_type, description, generation_order,
                     declaration_index, dependencies, status)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        project_id,
                        r.chunk_id,
                        r.chunk_type,
                        r.description,
                        r.generation_order,
                        r.declaration_index,
                        json.dumps(r.dependencies),
                        PENDING,
                    )
                    for r in records
                ],
            )
            conn.execute(_REFRESH_AGGREGATE, {"pid": project_id})
            conn.execute(
                "UPDATE projects SET generation_status = ? WHERE id = ?",
                (PROJECT_PLANNED, project_id),
            )

    # ------------------------------------------------------------------
    # Chunk records
    # ------------------------------------------------------------------

    def get_chunk(self, project_id: int, chunk_id: str) -> ChunkRecord | None:
        """Return one chunk record, or None if not found."""
        row = self._conn.execute(
            f"SELECT {_CHUNK_COLUMNS} FROM chunk_records WHERE project_id = ? AND chunk_id = ?",
            (project_id, chunk_id),
        ).fetchone()
        return _row_to_chunk(row) if row else None

    def list_chunks(self, project_id: int) -> list[ChunkRecord]:
        """Return all chunk records of a project in generation order."""
        rows = self._conn.execute(
            f"""
            SELECT {_CHUNK_COLUMNS} FROM chunk_records
            WHERE project_id = ?
            ORDER BY generation_order, declaration_index
            """,
            (project_id,),
        ).fetchall()
        return [_row_to_chunk(r) for r in rows]

    def count_chunks_by_status(self, project_id: int) -> dict[str, int]:
        """Return {status: count} with every known status present."""
        counts = {status: 0 for status in CHUNK_STATUSES}
        for row in self._conn.execute(
            "SELECT status, COUNT(*) AS n FROM chunk_records WHERE project_id = ? GROUP BY status",
            (project_id,),
        ).fetchall():
            counts[row["status"]] = row["n"]
        return counts

    def mark_generating(self, project_id: int, chunk_id: str) -> None:
        """Move a chunk to 'generating' before the external call starts."""
        self._transition(
            project_id,
            "UPDATE chunk_records SET status = ? WHERE project_id = ? AND chunk_id = ?",
            (GENERATING, project_id, chunk_id),
        )

    def complete_chunk(
        self,
        project_id: int,
        chunk_id: str,
        files_json: str,
        files_count: int,
        tokens_used: int | None,
        generation_time_ms: int,
    ) -> None:
        """Persist a successful generation and clear any previous error."""
        self._transition(
            project_id,
            """
            UPDATE chunk_records SET
                status = ?,
                files_json = ?,
                files_count = ?,
                tokens_used = ?,
                generation_time_ms = ?,
                error_message = NULL,
                generated_at = datetime('now')
            WHERE project_id = ? AND chunk_id = ?
            """,
            (COMPLETED, files_json, files_count, tokens_used, generation_time_ms, project_id, chunk_id),
        )

    def fail_chunk(self, project_id: int, chunk_id: str, error_message: str) -> None:
        """Mark a chunk failed. Other fields keep their previous values."""
        self._transition(
            project_id,
            "UPDATE chunk_records SET status = ?, error_message = ? WHERE project_id = ? AND chunk_id = ?",
            (FAILED, error_message, project_id, chunk_id),
        )

    def _transition(self, project_id: int, sql: str, params: tuple) -> None:
        with self._transaction() as conn:
            conn.execute(sql, params)
            conn.execute(_REFRESH_AGGREGATE, {"pid": project_id})


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------

def _row_to_project(row: sqlite3.Row) -> Project:
    return Project(
        id=row["id"],
        name=row["name"],
        design_document=row["design_document"],
        schema_sql=row["schema_sql"],
        language=row["language"],
        publish_url=row["publish_url"],
        mock_records_count=row["mock_records_count"],
        generation_status=row["generation_status"],
        total_chunks=row["total_chunks"],
        completed_chunks=row["completed_chunks"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_chunk(row: sqlite3.Row) -> ChunkRecord:
    return ChunkRecord(
        project_id=row["project_id"],
        chunk_id=row["chunk_id"],
        chunk_type=row["chunk_type"],
        description=row["description"],
        generation_order=row["generation_order"],
        declaration_index=row["declaration_index"],
        dependencies=json.loads(row["dependencies"]),
        status=row["status"],
        files_json=row["files_json"],
        files_count=row["files_count"],
        tokens_used=row["tokens_used"],
        generation_time_ms=row["generation_time_ms"],
        error_message=row["error_message"],
        created_at=row["created_at"],
        generated_at=row["generated_at"],
    )
