"""Exception hierarchy for the generation pipeline.

PlanningFailure and DependencyNotSatisfied are returned to the caller without
touching chunk state. ChunkExecutionFailure is recorded on the chunk by the
executor and never escapes it. PersistenceFailure always propagates.
"""

from __future__ import annotations


class ChunksmithError(Exception):
    """Base class for all chunksmith errors."""


class ProjectNotFound(ChunksmithError):
    def __init__(self, project_id: int) -> None:
        super().__init__(f"Project {project_id} not found.")
        self.project_id = project_id


class ChunkNotFound(ChunksmithError):
    def __init__(self, project_id: int, chunk_id: str) -> None:
        super().__init__(f"Chunk '{chunk_id}' not found for project {project_id}.")
        self.project_id = project_id
        self.chunk_id = chunk_id


class ManifestParseError(ValueError):
    """Raised when a sanitized reply does not match the expected structure."""


class PlanningFailure(ChunksmithError):
    """The manifest could not be produced; no chunk records were replaced."""


class DependencyNotSatisfied(ChunksmithError):
    """A chunk was executed before all of its dependencies completed."""

    def __init__(self, chunk_id: str, unmet: list[str]) -> None:
        super().__init__(
            f"Dependencies not satisfied for chunk '{chunk_id}': {', '.join(unmet)}"
        )
        self.chunk_id = chunk_id
        self.unmet = list(unmet)


class ChunkExecutionFailure(ChunksmithError):
    """Service error, empty result, or unparsable output for one chunk."""


class PersistenceFailure(ChunksmithError):
    """The database rejected a write. Not recoverable locally."""


class GenerationTimeout(TimeoutError):
    """The generation service did not answer within the configured timeout."""
