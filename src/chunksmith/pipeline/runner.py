"""Run every remaining chunk of a project, in generation order.

One chunk at a time, one external call per chunk, a fixed pause between
calls. A failed chunk never aborts the run: later chunks that do not depend
on it still complete, and chunks that do depend on it are refused by the
executor and reported as failed. Re-running retries only what is not yet
completed.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from chunksmith.db.models import (
    COMPLETED,
    PROJECT_COMPLETED,
    PROJECT_PARTIAL,
    PROJECT_RUNNING,
    ChunkRecord,
)
from chunksmith.db.repository import Repository
from chunksmith.errors import DependencyNotSatisfied, PlanningFailure, ProjectNotFound
from chunksmith.pipeline.executor import ChunkExecutor, ChunkResult

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    total_chunks: int = 0
    completed: int = 0
    failed: int = 0
    errors: dict[str, str] = field(default_factory=dict)  # chunk_id → error message
    executed: int = 0  # chunks that reached the generation service
    stopped: bool = False  # True if should_stop() ended the run early

    @property
    def status(self) -> str:
        return PROJECT_COMPLETED if self.failed == 0 and not self.stopped else PROJECT_PARTIAL


class PipelineRunner:
    """Drive all chunks of a project through ChunkExecutor.

    Args:
        repo:          Open Repository instance.
        executor:      Executor used for every chunk.
        pacing_delay:  Seconds to wait between consecutive generation calls.
        sleep:         Sleep function (injectable for tests).
    """

    def __init__(
        self,
        repo: Repository,
        executor: ChunkExecutor,
        pacing_delay: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._repo = repo
        self._executor = executor
        self._pacing_delay = pacing_delay
        self._sleep = sleep

    def run_all(
        self,
        project_id: int,
        should_stop: Callable[[], bool] | None = None,
        on_chunk: Callable[[ChunkRecord, ChunkResult | None, str | None], None] | None = None,
    ) -> RunReport:
        """Execute every non-completed chunk of *project_id* once.

        Args:
            project_id:  Project to run.
            should_stop: Checked before scheduling each chunk; returning True
                stops the run (a chunk already sent is never aborted).
            on_chunk:    Called after each chunk with (record, result, error);
                result is None when the executor refused the chunk.

        Raises:
            ProjectNotFound: No such project.
            PlanningFailure: The project has not been planned yet.
            PersistenceFailure: A state transition could not be written.
        """
        if self._repo.get_project(project_id) is None:
            raise ProjectNotFound(project_id)
        if self._repo.get_manifest_json(project_id) is None:
            raise PlanningFailure(f"Project {project_id} has no manifest; plan it first.")

        records = self._repo.list_chunks(project_id)
        report = RunReport(total_chunks=len(records))
        self._repo.set_project_status(project_id, PROJECT_RUNNING)
        logger.info("Running project %s: %d chunks", project_id, len(records))

        for record in records:
            if record.status == COMPLETED:
                report.completed += 1
                continue

            if should_stop is not None and should_stop():
                logger.info("Run of project %s stopped before chunk %s", project_id, record.chunk_id)
                report.stopped = True
                break

            if report.executed > 0 and self._pacing_delay > 0:
                self._sleep(self._pacing_delay)

            try:
                result = self._executor.execute(project_id, record.chunk_id)
            except DependencyNotSatisfied as exc:
                report.failed += 1
                report.errors[record.chunk_id] = str(exc)
                logger.warning("Chunk %s skipped: %s", record.chunk_id, exc)
                if on_chunk:
                    on_chunk(record, None, str(exc))
                continue

            report.executed += 1
            if result.ok:
                report.completed += 1
            else:
                report.failed += 1
                report.errors[record.chunk_id] = result.error or "unknown error"
            if on_chunk:
                on_chunk(record, result, result.error)

        self._repo.set_project_status(project_id, report.status)
        logger.info(
            "Run of project %s finished: %d/%d completed, %d failed",
            project_id, report.completed, report.total_chunks, report.failed,
        )
        return report
