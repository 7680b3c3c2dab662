"""chunksmith project CLI commands.

Commands:
  chunksmith project add    — register a project and its design document
  chunksmith project list   — show all projects with generation status
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from chunksmith.cli.common import DEFAULT_DB, console, load_cfg, open_db
from chunksmith.db.models import Project
from chunksmith.db.repository import Repository

project_app = typer.Typer(
    name="project",
    help="Manage projects (add, list).",
    add_completion=False,
)


@project_app.command("add")
def project_add_cmd(
    name: Annotated[str, typer.Option("--name", "-n", help="Project name.")],
    design: Annotated[
        Path,
        typer.Option("--design", "-d", help="System design document (Markdown or text)."),
    ],
    language: Annotated[
        str,
        typer.Option("--language", "-l", help="Target programming language / stack."),
    ],
    publish_url: Annotated[
        str,
        typer.Option("--publish-url", help="Where the generated app will be published."),
    ] = "",
    schema: Annotated[
        Path | None,
        typer.Option("--schema", help="Optional SQL file with CREATE TABLE statements."),
    ] = None,
    mock_records: Annotated[
        int | None,
        typer.Option("--mock-records", min=0, help="Seed records per table."),
    ] = None,
    db: Annotated[Path, typer.Option("--db", help="Path to .chunksmith.db.")] = DEFAULT_DB,
) -> None:
    """Register a project for codebase generation."""
    for path in (design, schema):
        if path is not None and not path.is_file():
            console.print(f"[red]Error:[/] File not found: '{path}'")
            raise typer.Exit(1)

    cfg = load_cfg()
    project = Project(
        name=name,
        design_document=design.read_text(encoding="utf-8"),
        schema_sql=schema.read_text(encoding="utf-8") if schema else None,
        language=language,
        publish_url=publish_url,
        mock_records_count=(
            mock_records if mock_records is not None else cfg.pipeline.default_mock_records
        ),
    )

    conn = open_db(db)
    try:
        project_id = Repository(conn).add_project(project)
    finally:
        conn.close()

    console.print(f"[green]✓[/] Project [bold]{name}[/] created with id [bold]{project_id}[/]")
    console.print(f"  Next:  chunksmith plan {project_id}")


@project_app.command("list")
def project_list_cmd(
    db: Annotated[Path, typer.Option("--db", help="Path to .chunksmith.db.")] = DEFAULT_DB,
) -> None:
    """List all projects and their generation status."""
    conn = open_db(db)
    try:
        projects = Repository(conn).list_projects()
    finally:
        conn.close()

    if not projects:
        console.print("[yellow]No projects yet.[/]  Run:  chunksmith project add ...")
        raise typer.Exit(0)

    table = Table(title="Projects", show_header=True, header_style="bold")
    table.add_column("ID", justify="right")
    table.add_column("Name", style="bold")
    table.add_column("Language")
    table.add_column("Status")
    table.add_column("Chunks", justify="right")

    for p in projects:
        table.add_row(
            str(p.id),
            p.name,
            p.language,
            p.generation_status,
            f"{p.completed_chunks}/{p.total_chunks}",
        )
    console.print(table)
