"""Fixtures for pipeline tests: planned projects with a given chunk graph."""

from __future__ import annotations

import json

import pytest

from chunksmith.pipeline.planner import ManifestPlanner


def manifest_json(chunks: list[dict]) -> str:
    return json.dumps(
        {
            "projectName": "shop",
            "programmingLanguage": "Python",
            "chunks": chunks,
            "generationOrder": [c["chunkId"] for c in chunks],
        }
    )


def chunk(chunk_id: str, order: int, deps: list[str] | None = None, kind: str = "backend-module") -> dict:
    return {
        "chunkId": chunk_id,
        "chunkType": kind,
        "description": f"{chunk_id} chunk",
        "generationOrder": order,
        "dependencies": deps or [],
        "files": [{"path": f"src/{chunk_id}.py", "type": "service", "description": "", "priority": 1}],
    }


@pytest.fixture
def plan_with(repo, project_id, fake_service):
    """Plan the shared project with the given chunk dicts; return the Manifest."""

    def _plan(chunks: list[dict]):
        service = fake_service(default=manifest_json(chunks))
        return ManifestPlanner(repo, service).plan_project(project_id)

    return _plan


@pytest.fixture
def linear_plan(plan_with):
    """infra → db → api, all independent of anything else."""
    return plan_with(
        [
            chunk("infra", 1, kind="infrastructure"),
            chunk("db", 2, ["infra"], kind="database"),
            chunk("api", 3, ["db"]),
        ]
    )


@pytest.fixture
def make_chunk():
    return chunk


@pytest.fixture
def make_manifest_json():
    return manifest_json
