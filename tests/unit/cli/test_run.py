"""Tests for chunksmith execute and run commands."""

from __future__ import annotations

from unittest.mock import patch

from typer.testing import CliRunner

from chunksmith.cli.main import app
from chunksmith.db.models import COMPLETED, FAILED, PENDING, PROJECT_COMPLETED, PROJECT_PARTIAL
from chunksmith.errors import GenerationTimeout

runner = CliRunner()


def _invoke(service, *args: str):
    with patch("chunksmith.cli.run.generation_service", return_value=service):
        return runner.invoke(app, list(args))


def _statuses(open_repo, project_id):
    return {c.chunk_id: c.status for c in open_repo().list_chunks(project_id)}


# ---------------------------------------------------------------------------
# execute
# ---------------------------------------------------------------------------


def test_execute_chunk(planned, fake_service, open_repo) -> None:
    result = _invoke(fake_service(), "execute", str(planned), "infra")
    assert result.exit_code == 0, result.output
    assert "1 files" in result.output
    assert _statuses(open_repo, planned)["infra"] == COMPLETED


def test_execute_completed_chunk_is_skipped(planned, fake_service) -> None:
    service = fake_service()
    _invoke(service, "execute", str(planned), "infra")
    result = _invoke(service, "execute", str(planned), "infra")
    assert result.exit_code == 0
    assert "already completed" in result.output
    assert service.calls == 1


def test_execute_unmet_dependency(planned, fake_service, open_repo) -> None:
    service = fake_service()
    _invoke(service, "execute", str(planned), "infra")
    result = _invoke(service, "execute", str(planned), "auth")

    assert result.exit_code == 1
    assert "not completed" in result.output
    assert "schema" in result.output
    assert service.calls == 1
    assert _statuses(open_repo, planned)["auth"] == PENDING


def test_execute_failure(planned, fake_service, open_repo) -> None:
    result = _invoke(fake_service(replies={"infra": "not json"}), "execute", str(planned), "infra")
    assert result.exit_code == 1
    assert "failed" in result.output
    assert _statuses(open_repo, planned)["infra"] == FAILED


def test_execute_unknown_chunk(planned, fake_service) -> None:
    result = _invoke(fake_service(), "execute", str(planned), "ghost")
    assert result.exit_code == 1
    assert "'ghost' not found" in result.output


def test_execute_unknown_project(workspace, fake_service) -> None:
    result = _invoke(fake_service(), "execute", "7", "infra")
    assert result.exit_code == 1
    assert "Project 7 not found" in result.output


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


def test_run_all(planned, fake_service, open_repo) -> None:
    service = fake_service()
    result = _invoke(service, "run", str(planned), "--pacing", "0")

    assert result.exit_code == 0, result.output
    assert "3/3 completed" in result.output
    assert service.chunk_calls == ["infra", "schema", "auth"]
    assert open_repo().get_project(planned).generation_status == PROJECT_COMPLETED


def test_run_with_timeout_reports_partial(planned, fake_service, open_repo) -> None:
    service = fake_service(replies={"schema": GenerationTimeout("slow")})
    result = _invoke(service, "run", str(planned), "--pacing", "0")

    assert result.exit_code == 1
    assert "1/3 completed, 2 failed" in result.output
    assert "Timeout" in result.output
    assert _statuses(open_repo, planned) == {"infra": COMPLETED, "schema": FAILED, "auth": PENDING}
    assert open_repo().get_project(planned).generation_status == PROJECT_PARTIAL


def test_run_resumes_after_failure(planned, fake_service) -> None:
    service = fake_service(replies={"schema": RuntimeError("quota exceeded")})
    _invoke(service, "run", str(planned), "--pacing", "0")

    del service.replies["schema"]
    result = _invoke(service, "run", str(planned), "--pacing", "0")

    assert result.exit_code == 0, result.output
    assert service.chunk_calls == ["infra", "schema", "schema", "auth"]


def test_run_max_chunks(planned, fake_service, open_repo) -> None:
    service = fake_service()
    result = _invoke(service, "run", str(planned), "--pacing", "0", "--max-chunks", "1")

    assert result.exit_code == 0, result.output
    assert "Re-run to continue" in result.output
    assert service.calls == 1
    assert _statuses(open_repo, planned)["schema"] == PENDING


def test_run_unplanned_project(project_id, fake_service) -> None:
    result = _invoke(fake_service(), "run", str(project_id))
    assert result.exit_code == 1
    assert "no manifest yet" in result.output


def test_run_unknown_project(workspace, fake_service) -> None:
    result = _invoke(fake_service(), "run", "3")
    assert result.exit_code == 1
    assert "Project 3 not found" in result.output
