"""Manifest planning: design document → chunk dependency graph.

Runs once per project. A successful plan replaces the project's manifest and
its entire chunk record set in one transaction, with every record pending.
A failed plan leaves the previous manifest and records exactly as they were
and marks the project 'failed'.
"""

from __future__ import annotations

import json
import logging
from typing import NoReturn

from chunksmith.db.models import PROJECT_FAILED, ChunkRecord
from chunksmith.db.repository import Repository
from chunksmith.errors import ManifestParseError, PlanningFailure, ProjectNotFound
from chunksmith.llm.client import GenerationService
from chunksmith.pipeline.extract import extract_modules, extract_tables
from chunksmith.pipeline.models import Manifest
from chunksmith.pipeline.prompts import build_planning_prompt
from chunksmith.pipeline.sanitizer import parse_json_object

logger = logging.getLogger(__name__)


class ManifestPlanner:
    """Ask the generation service for a chunk plan and persist it.

    Args:
        repo:    Open Repository instance.
        service: Generation service used for the planning call.
        timeout: Per-call timeout in seconds (None = service default).
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

    def plan_project(self, project_id: int) -> Manifest:
        """Plan *project_id* using the design inputs stored on the project."""
        project = self._repo.get_project(project_id)
        if project is None:
            raise ProjectNotFound(project_id)
        return self.plan(
            project_id,
            project.design_document,
            project.language,
            project.publish_url,
            project.mock_records_count,
            schema_sql=project.schema_sql,
            project_name=project.name,
        )

    def plan(
        self,
        project_id: int,
        design_document: str,
        language: str,
        publish_url: str,
        mock_record_target: int,
        *,
        schema_sql: str | None = None,
        project_name: str = "",
    ) -> Manifest:
        """Produce, validate and persist a manifest for *project_id*.

        Raises:
            PlanningFailure: The service call failed, or its reply could not be
                parsed into a valid chunk graph. Nothing was replaced.
            PersistenceFailure: The database rejected the write.
        """
        modules = extract_modules(design_document)
        tables = extract_tables(schema_sql or design_document)
        logger.info(
            "Planning project %s: %d modules, %d tables extracted",
            project_id, len(modules), len(tables),
        )

        prompt = build_planning_prompt(
            project_name=project_name,
            language=language,
            publish_url=publish_url,
            mock_records=mock_record_target,
            modules=modules,
            tables=tables,
        )

        try:
            completion = self._service.complete(prompt, timeout=self._timeout)
        except Exception as exc:
            self._fail(project_id, f"Generation service call failed: {exc}", exc)

        try:
            data = parse_json_object(completion.text)
            # Facts are extracted locally; the reply is only trusted for chunks.
            data.pop("modules", None)
            data.pop("sqlTables", None)
            manifest = Manifest.from_dict(data)
            validate_dependencies(manifest)
        except ManifestParseError as exc:
            self._fail(project_id, f"Could not parse manifest: {exc}", exc)

        manifest.modules = modules
        manifest.sql_tables = tables
        manifest.project_name = manifest.project_name or project_name
        manifest.target_language = manifest.target_language or language
        manifest.publish_url = manifest.publish_url or publish_url
        if not manifest.generation_order:
            manifest.generation_order = [c.chunk_id for c in manifest.ordered_chunks()]

        records = [
            ChunkRecord(
                project_id=project_id,
                chunk_id=c.chunk_id,
                chunk_type=c.chunk_type,
                description=c.description,
                generation_order=c.generation_order,
                dependencies=list(c.dependencies),
                declaration_index=index,
            )
            for index, c in enumerate(manifest.chunks)
        ]
        self._repo.replace_plan(project_id, json.dumps(manifest.to_dict()), records)
        logger.info("Project %s planned with %d chunks", project_id, len(records))
        return manifest

    def _fail(self, project_id: int, message: str, cause: Exception) -> NoReturn:
        logger.error("Planning failed for project %s: %s", project_id, message)
        self._repo.set_project_status(project_id, PROJECT_FAILED)
        raise PlanningFailure(message) from cause


def validate_dependencies(manifest: Manifest) -> None:
    """Reject unknown or cyclic dependencies; warn about order inversions.

    Raises:
        ManifestParseError: A dependency names a chunk not in the manifest,
            a chunk depends on itself, or the dependency graph has a cycle.
    """
    by_id = {c.chunk_id: c for c in manifest.chunks}

    for chunk in manifest.chunks:
        for dep in chunk.dependencies:
            if dep == chunk.chunk_id:
                raise ManifestParseError(f"chunk '{dep}' depends on itself")
            if dep not in by_id:
                raise ManifestParseError(
                    f"chunk '{chunk.chunk_id}' depends on unknown chunk '{dep}'"
                )
            if by_id[dep].generation_order >= chunk.generation_order:
                logger.warning(
                    "Chunk '%s' (order %d) is ordered before its dependency '%s' (order %d)",
                    chunk.chunk_id, chunk.generation_order, dep, by_id[dep].generation_order,
                )

    cycle = _find_cycle(manifest)
    if cycle:
        raise ManifestParseError(f"dependency cycle: {' -> '.join(cycle)}")


def _find_cycle(manifest: Manifest) -> list[str] | None:
    """Return one dependency cycle as a list of chunk ids, or None."""
    graph = {c.chunk_id: list(c.dependencies) for c in manifest.chunks}
    visiting: list[str] = []
    done: set[str] = set()

    def visit(node: str) -> list[str] | None:
        if node in done:
            return None
        if node in visiting:
            return visiting[visiting.index(node):] + [node]
        visiting.append(node)
        for dep in graph.get(node, []):
            found = visit(dep)
            if found:
                return found
        visiting.pop()
        done.add(node)
        return None

    for chunk_id in graph:
        found = visit(chunk_id)
        if found:
            return found
    return None
