"""Persisted records: projects and per-chunk generation state."""

from __future__ import annotations

import json
from dataclasses import dataclass, field

from chunksmith.pipeline.models import GeneratedFile

# Chunk status values. Forward-only: pending → generating → completed | failed;
# failed (or a stale generating row) may go back to generating on retry.
PENDING = "pending"
GENERATING = "generating"
COMPLETED = "completed"
FAILED = "failed"

CHUNK_STATUSES: tuple[str, ...] = (PENDING, GENERATING, COMPLETED, FAILED)

# Project generation_status values.
PROJECT_NOT_STARTED = "not_started"
PROJECT_PLANNED = "planned"
PROJECT_RUNNING = "running"
PROJECT_COMPLETED = "completed"
PROJECT_PARTIAL = "partial"
PROJECT_FAILED = "failed"


@dataclass
class Project:
    name: str
    design_document: str = ""
    language: str = ""
    publish_url: str = ""
    mock_records_count: int = 10
    schema_sql: str | None = None
    generation_status: str = PROJECT_NOT_STARTED
    total_chunks: int = 0
    completed_chunks: int = 0
    created_at: str | None = None
    updated_at: str | None = None
    id: int | None = None  # set after insert


@dataclass
class ChunkRecord:
    project_id: int
    chunk_id: str
    chunk_type: str
    generation_order: int
    description: str = ""
    dependencies: list[str] = field(default_factory=list)
    declaration_index: int = 0
    status: str = PENDING
    files_json: str | None = None
    files_count: int = 0
    tokens_used: int | None = None
    generation_time_ms: int | None = None
    error_message: str | None = None
    created_at: str | None = None
    generated_at: str | None = None

    @property
    def files(self) -> list[GeneratedFile]:
        """Decode the stored payload. Empty unless the chunk completed."""
        if not self.files_json:
            return []
        return [GeneratedFile.from_dict(f) for f in json.loads(self.files_json)]
