"""chunksmith plan — ask the generation service for a chunk manifest.

Usage:
  chunksmith plan PROJECT_ID [--dry-run]

Re-planning discards every chunk record of the previous plan. A failed
plan keeps the previous manifest and records and marks the project failed.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from chunksmith.cli.common import DEFAULT_DB, console, load_cfg, open_db, planning_service
from chunksmith.cli.errors import err_persistence, err_planning_failed, err_project_not_found
from chunksmith.db.repository import Repository
from chunksmith.errors import PersistenceFailure, PlanningFailure
from chunksmith.llm.client import count_tokens
from chunksmith.pipeline.extract import extract_modules, extract_tables
from chunksmith.pipeline.planner import ManifestPlanner
from chunksmith.pipeline.prompts import build_planning_prompt


def plan_cmd(
    project_id: Annotated[int, typer.Argument(help="Project id (see: chunksmith project list).")],
    db: Annotated[Path, typer.Option("--db", help="Path to .chunksmith.db.")] = DEFAULT_DB,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show extracted facts and prompt size without calling the service."),
    ] = False,
) -> None:
    """Plan a project: split its codebase into dependent chunks."""
    cfg = load_cfg()
    conn = open_db(db)
    repo = Repository(conn)
    try:
        project = repo.get_project(project_id)
        if project is None:
            console.print(err_project_not_found(project_id))
            raise typer.Exit(1)

        if dry_run:
            modules = extract_modules(project.design_document)
            tables = extract_tables(project.schema_sql or project.design_document)
            prompt = build_planning_prompt(
                project.name,
                project.language,
                project.publish_url,
                project.mock_records_count,
                modules,
                tables,
            )
            console.print("[bold]Dry run — planning inputs:[/]")
            console.print(f"  Modules: {len(modules)}")
            for m in modules:
                console.print(f"    - {m.title}")
            console.print(f"  Tables:  {len(tables)}")
            for t in tables:
                console.print(f"    - {t.table_name} ({len(t.columns)} columns)")
            console.print(
                f"  Prompt:  {count_tokens(cfg.planning.model, prompt):,} tokens"
            )
            console.print("\n[dim]No generation call performed.[/]")
            return

        planner = ManifestPlanner(
            repo, planning_service(cfg), timeout=cfg.planning.timeout_seconds
        )
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            console=console,
        ) as prog:
            prog.add_task(f"Planning with {cfg.planning.model}…", total=None)
            try:
                manifest = planner.plan_project(project_id)
            except PlanningFailure as exc:
                console.print(err_planning_failed(project_id, str(exc)))
                raise typer.Exit(1)
            except PersistenceFailure as exc:
                console.print(err_persistence(str(exc)))
                raise typer.Exit(1)

        table = Table(title=f"Manifest — {manifest.project_name}", header_style="bold")
        table.add_column("Order", justify="right")
        table.add_column("Chunk", style="bold")
        table.add_column("Type")
        table.add_column("Depends on", style="dim")
        table.add_column("Files", justify="right")
        for chunk in manifest.ordered_chunks():
            table.add_row(
                str(chunk.generation_order),
                chunk.chunk_id,
                chunk.chunk_type,
                ", ".join(chunk.dependencies),
                str(len(chunk.files)),
            )
        console.print(table)
        console.print(
            f"\n  [green]✓[/] {len(manifest.chunks)} chunks planned. "
            f"Next:  chunksmith run {project_id}"
        )
    finally:
        conn.close()
