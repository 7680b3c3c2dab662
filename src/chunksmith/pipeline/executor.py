"""Single-chunk execution.

execute() is safe to call repeatedly: a completed chunk is a free no-op, a
failed or stale 'generating' chunk is retried, and a chunk whose
dependencies are not all completed is refused without touching its record.
Anything that goes wrong after the chunk is marked 'generating' is recorded
on the chunk as 'failed' and reported in the returned ChunkResult.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass

from chunksmith.db.models import COMPLETED, FAILED
from chunksmith.db.repository import Repository
from chunksmith.errors import (
    ChunkExecutionFailure,
    ChunkNotFound,
    DependencyNotSatisfied,
    ManifestParseError,
    PlanningFailure,
)
from chunksmith.llm.client import GenerationService
from chunksmith.pipeline.models import Manifest, parse_generated_files
from chunksmith.pipeline.prompts import build_chunk_prompt
from chunksmith.pipeline.sanitizer import parse_json_object

logger = logging.getLogger(__name__)


@dataclass
class ChunkResult:
    chunk_id: str
    status: str
    files_generated: int = 0
    tokens_used: int | None = None
    duration_ms: int = 0
    skipped: bool = False  # True when the chunk was already completed
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == COMPLETED


class ChunkExecutor:
    """Generate the files of one chunk and record the outcome.

    Args:
        repo:    Open Repository instance.
        service: Generation service used for the chunk call.
        timeout: Per-call timeout in seconds; a timeout is a normal failure.
    """

    def __init__(
        self,
        repo: Repository,
        service: GenerationService,
        timeout: float | None = None,
    ) -> None:
        self._repo = repo
        self._service = service
        self._timeout = timeout

    def execute(self, project_id: int, chunk_id: str) -> ChunkResult:
        """Run *chunk_id* of *project_id*.

        Returns:
            ChunkResult with status 'completed' (possibly skipped) or 'failed'.

        Raises:
            ChunkNotFound: No such chunk record.
            DependencyNotSatisfied: A dependency is not completed. The chunk's
                status is left unchanged.
            PlanningFailure: The project has chunk records but no manifest.
            PersistenceFailure: Recording the outcome itself failed.
        """
        record = self._repo.get_chunk(project_id, chunk_id)
        if record is None:
            raise ChunkNotFound(project_id, chunk_id)

        if record.status == COMPLETED:
            logger.debug("Chunk %s already completed; skipping", chunk_id)
            return ChunkResult(
                chunk_id=chunk_id,
                status=COMPLETED,
                files_generated=record.files_count,
                tokens_used=record.tokens_used,
                duration_ms=record.generation_time_ms or 0,
                skipped=True,
            )

        unmet = self._unmet_dependencies(project_id, record.dependencies)
        if unmet:
            raise DependencyNotSatisfied(chunk_id, unmet)

        manifest = self._load_manifest(project_id)
        definition = manifest.chunk(chunk_id)
        if definition is None:
            raise ChunkNotFound(project_id, chunk_id)
        project = self._repo.get_project(project_id)
        design_document = project.design_document if project else ""

        # Persist before the call so a crash leaves visible in-progress state.
        self._repo.mark_generating(project_id, chunk_id)
        logger.info("Generating chunk %s (%s)", chunk_id, definition.chunk_type)

        started = time.monotonic()
        try:
            prompt = build_chunk_prompt(definition, manifest, design_document)
            completion = self._service.complete(prompt, timeout=self._timeout)
            try:
                files = parse_generated_files(parse_json_object(completion.text))
            except ManifestParseError as exc:
                raise ChunkExecutionFailure(f"Unparsable generation output: {exc}") from exc
            if not files:
                raise ChunkExecutionFailure("Generation returned no files")

            duration_ms = int((time.monotonic() - started) * 1000)
            self._repo.complete_chunk(
                project_id,
                chunk_id,
                files_json=json.dumps([f.to_dict() for f in files]),
                files_count=len(files),
                tokens_used=completion.tokens_used,
                generation_time_ms=duration_ms,
            )
        except TimeoutError as exc:
            error = f"Timeout: {str(exc) or 'generation service did not respond in time'}"
        except ChunkExecutionFailure as exc:
            error = str(exc)
        except Exception as exc:
            error = f"{type(exc).__name__}: {exc}"
        else:
            logger.info(
                "Chunk %s completed: %d files in %d ms", chunk_id, len(files), duration_ms
            )
            return ChunkResult(
                chunk_id=chunk_id,
                status=COMPLETED,
                files_generated=len(files),
                tokens_used=completion.tokens_used,
                duration_ms=duration_ms,
            )

        logger.warning("Chunk %s failed: %s", chunk_id, error)
        self._repo.fail_chunk(project_id, chunk_id, error)
        return ChunkResult(
            chunk_id=chunk_id,
            status=FAILED,
            duration_ms=int((time.monotonic() - started) * 1000),
            error=error,
        )

    def _unmet_dependencies(self, project_id: int, dependencies: list[str]) -> list[str]:
        unmet: list[str] = []
        for dep in dependencies:
            dep_record = self._repo.get_chunk(project_id, dep)
            if dep_record is None or dep_record.status != COMPLETED:
                unmet.append(dep)
        return unmet

    def _load_manifest(self, project_id: int) -> Manifest:
        raw = self._repo.get_manifest_json(project_id)
        if raw is None:
            raise PlanningFailure(f"Project {project_id} has no manifest; plan it first.")
        return Manifest.from_dict(json.loads(raw))
