"""Fixtures for CLI tests: an isolated, initialized workspace."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from chunksmith.cli.main import app
from chunksmith.db.connection import Database
from chunksmith.db.repository import Repository

runner = CliRunner()

DESIGN = """\
## Module 1: Catalog
Browse products.
Inputs: query
Outputs: product list

## Module 2: Accounts
Sign up and log in.
"""

MANIFEST = json.dumps(
    {
        "projectName": "shop",
        "programmingLanguage": "Python",
        "chunks": [
            {"chunkId": "infra", "chunkType": "infrastructure", "generationOrder": 1,
             "files": [{"path": "pyproject.toml", "type": "config"}]},
            {"chunkId": "schema", "chunkType": "database", "generationOrder": 2,
             "dependencies": ["infra"]},
            {"chunkId": "auth", "chunkType": "backend-module", "generationOrder": 3,
             "dependencies": ["schema"]},
        ],
    }
)

_ENV_VARS = (
    "CHUNKSMITH_GENERATION_MODEL",
    "CHUNKSMITH_PLANNING_MODEL",
    "CHUNKSMITH_PACING_DELAY",
    "CHUNKSMITH_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolated(tmp_path: Path, monkeypatch):
    """Run every CLI test from tmp_path with a private global config."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("chunksmith.config._GLOBAL_CONFIG_PATH", tmp_path / "home" / "config.yaml")
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    result = runner.invoke(
        app, ["init", str(tmp_path), "--global-config", str(tmp_path / "home" / "config.yaml")]
    )
    assert result.exit_code == 0, result.output
    (tmp_path / "design.md").write_text(DESIGN, encoding="utf-8")
    return tmp_path


@pytest.fixture
def project_id(workspace: Path) -> int:
    result = runner.invoke(
        app, ["project", "add", "--name", "shop", "--design", "design.md", "--language", "Python"]
    )
    assert result.exit_code == 0, result.output
    return 1


@pytest.fixture
def planned(project_id: int, fake_service) -> int:
    """Project 1 planned as infra → schema → auth."""
    with patch("chunksmith.cli.plan.planning_service", return_value=fake_service(default=MANIFEST)):
        result = runner.invoke(app, ["plan", str(project_id)])
    assert result.exit_code == 0, result.output
    return project_id


@pytest.fixture
def open_repo(workspace: Path):
    """Open the workspace database; connections are closed after the test."""
    conns = []

    def _open() -> Repository:
        conn = Database(workspace / ".chunksmith.db").connect()
        conns.append(conn)
        return Repository(conn)

    yield _open
    for conn in conns:
        conn.close()
