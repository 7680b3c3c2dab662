"""Tests for chunksmith project add / list commands."""

from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from chunksmith.cli.main import app

runner = CliRunner()


def test_project_add(workspace: Path, open_repo) -> None:
    result = runner.invoke(
        app,
        [
            "project", "add",
            "--name", "shop",
            "--design", "design.md",
            "--language", "TypeScript",
            "--publish-url", "https://shop.example.org",
            "--mock-records", "25",
        ],
    )
    assert result.exit_code == 0, result.output
    assert "created with id" in result.output

    project = open_repo().get_project(1)
    assert project.name == "shop"
    assert project.language == "TypeScript"
    assert project.publish_url == "https://shop.example.org"
    assert project.mock_records_count == 25
    assert "## Module 1: Catalog" in project.design_document
    assert project.schema_sql is None


def test_project_add_with_schema(workspace: Path, open_repo) -> None:
    (workspace / "schema.sql").write_text("CREATE TABLE t (id INT);", encoding="utf-8")
    result = runner.invoke(
        app,
        ["project", "add", "-n", "crm", "-d", "design.md", "-l", "Go", "--schema", "schema.sql"],
    )
    assert result.exit_code == 0, result.output
    assert open_repo().get_project(1).schema_sql == "CREATE TABLE t (id INT);"


def test_project_add_mock_records_default_from_config(workspace: Path, open_repo) -> None:
    (workspace / "chunksmith.yaml").write_text(
        "pipeline:\n  default_mock_records: 40\n", encoding="utf-8"
    )
    result = runner.invoke(app, ["project", "add", "-n", "x", "-d", "design.md", "-l", "Go"])
    assert result.exit_code == 0, result.output
    assert open_repo().get_project(1).mock_records_count == 40


def test_project_add_missing_design(workspace: Path) -> None:
    result = runner.invoke(app, ["project", "add", "-n", "x", "-d", "nope.md", "-l", "Go"])
    assert result.exit_code == 1
    assert "File not found" in result.output


def test_project_add_without_database(tmp_path: Path) -> None:
    (tmp_path / "design.md").write_text("## A\nB", encoding="utf-8")
    result = runner.invoke(app, ["project", "add", "-n", "x", "-d", "design.md", "-l", "Go"])
    assert result.exit_code == 1
    assert "No database found" in result.output
    assert "chunksmith init" in result.output


def test_project_list(project_id: int) -> None:
    result = runner.invoke(app, ["project", "list"])
    assert result.exit_code == 0, result.output
    assert "shop" in result.output
    assert "not_started" in result.output
    assert "0/0" in result.output


def test_project_list_empty(workspace: Path) -> None:
    result = runner.invoke(app, ["project", "list"])
    assert result.exit_code == 0
    assert "No projects yet" in result.output
