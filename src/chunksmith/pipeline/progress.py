"""Read-only progress queries over persisted chunk records.

Every call reads the database; nothing is cached, so a poller sees each
chunk transition as soon as the writer commits it.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from chunksmith.db.models import COMPLETED, ChunkRecord
from chunksmith.db.repository import Repository
from chunksmith.errors import ProjectNotFound
from chunksmith.pipeline.models import GeneratedFile


@dataclass
class ProjectStatus:
    project_id: int
    overall_status: str
    total_chunks: int
    completed_chunks: int
    per_status_counts: dict[str, int]
    total_tokens: int
    total_time_ms: int
    chunks: list[ChunkRecord] = field(default_factory=list)

    @property
    def percent_complete(self) -> float:
        if not self.total_chunks:
            return 0.0
        return 100.0 * self.completed_chunks / self.total_chunks


@dataclass
class ChunkFile:
    """A generated file tagged with the chunk that produced it."""

    chunk_id: str
    chunk_type: str
    file: GeneratedFile


class ProgressReporter:
    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    def status(self, project_id: int) -> ProjectStatus:
        """Aggregate the current chunk records of *project_id*.

        Raises:
            ProjectNotFound: No such project.
        """
        project = self._repo.get_project(project_id)
        if project is None:
            raise ProjectNotFound(project_id)

        chunks = self._repo.list_chunks(project_id)
        counts = self._repo.count_chunks_by_status(project_id)
        return ProjectStatus(
            project_id=project_id,
            overall_status=project.generation_status,
            total_chunks=len(chunks),
            completed_chunks=sum(1 for c in chunks if c.status == COMPLETED),
            per_status_counts=counts,
            total_tokens=sum(c.tokens_used or 0 for c in chunks),
            total_time_ms=sum(c.generation_time_ms or 0 for c in chunks),
            chunks=chunks,
        )

    def list_files(self, project_id: int) -> list[ChunkFile]:
        """Return every file of every completed chunk, in generation order."""
        if self._repo.get_project(project_id) is None:
            raise ProjectNotFound(project_id)
        return [
            ChunkFile(chunk_id=c.chunk_id, chunk_type=c.chunk_type, file=f)
            for c in self._repo.list_chunks(project_id)
            if c.status == COMPLETED
            for f in c.files
        ]
