"""chunksmith execute / run — drive chunk generation.

Commands:
  chunksmith execute PROJECT_ID CHUNK_ID   — generate one chunk
  chunksmith run PROJECT_ID [--max-chunks N] — generate every remaining chunk

Both are safe to repeat: completed chunks are never regenerated.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.progress import Progress, SpinnerColumn, TextColumn

from chunksmith.cli.common import DEFAULT_DB, console, generation_service, load_cfg, open_db
from chunksmith.cli.errors import (
    err_chunk_failed,
    err_chunk_not_found,
    err_dependencies_unmet,
    err_not_planned,
    err_persistence,
    err_project_not_found,
)
from chunksmith.db.models import ChunkRecord
from chunksmith.db.repository import Repository
from chunksmith.errors import (
    ChunkNotFound,
    DependencyNotSatisfied,
    PersistenceFailure,
    PlanningFailure,
)
from chunksmith.pipeline.executor import ChunkExecutor, ChunkResult
from chunksmith.pipeline.runner import PipelineRunner


def execute_cmd(
    project_id: Annotated[int, typer.Argument(help="Project id.")],
    chunk_id: Annotated[str, typer.Argument(help="Chunk id from the manifest.")],
    db: Annotated[Path, typer.Option("--db", help="Path to .chunksmith.db.")] = DEFAULT_DB,
) -> None:
    """Generate the files of a single chunk."""
    cfg = load_cfg()
    conn = open_db(db)
    repo = Repository(conn)
    try:
        if repo.get_project(project_id) is None:
            console.print(err_project_not_found(project_id))
            raise typer.Exit(1)

        executor = ChunkExecutor(
            repo, generation_service(cfg), timeout=cfg.generation.timeout_seconds
        )
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            console=console,
        ) as prog:
            prog.add_task(f"Generating {chunk_id} with {cfg.generation.model}…", total=None)
            try:
                result = executor.execute(project_id, chunk_id)
            except ChunkNotFound:
                console.print(err_chunk_not_found(project_id, chunk_id))
                raise typer.Exit(1)
            except DependencyNotSatisfied as exc:
                console.print(err_dependencies_unmet(project_id, chunk_id, exc.unmet))
                raise typer.Exit(1)
            except PlanningFailure:
                console.print(err_not_planned(project_id))
                raise typer.Exit(1)
            except PersistenceFailure as exc:
                console.print(err_persistence(str(exc)))
                raise typer.Exit(1)

        if result.skipped:
            console.print(f"  [dim]✓ {chunk_id} already completed ({result.files_generated} files)[/]")
        elif result.ok:
            console.print(
                f"  [green]✓[/] {chunk_id} — {result.files_generated} files, "
                f"{_tokens(result.tokens_used)}, {result.duration_ms / 1000:.1f}s"
            )
        else:
            console.print(err_chunk_failed(project_id, chunk_id, result.error or "unknown error"))
            raise typer.Exit(1)
    finally:
        conn.close()


def run_cmd(
    project_id: Annotated[int, typer.Argument(help="Project id.")],
    max_chunks: Annotated[
        int | None,
        typer.Option("--max-chunks", min=1, help="Stop scheduling after N generation calls."),
    ] = None,
    pacing: Annotated[
        float | None,
        typer.Option("--pacing", min=0.0, help="Seconds between chunk calls (overrides config)."),
    ] = None,
    db: Annotated[Path, typer.Option("--db", help="Path to .chunksmith.db.")] = DEFAULT_DB,
) -> None:
    """Generate every chunk that is not completed yet, in order."""
    cfg = load_cfg()
    conn = open_db(db)
    repo = Repository(conn)
    try:
        project = repo.get_project(project_id)
        if project is None:
            console.print(err_project_not_found(project_id))
            raise typer.Exit(1)
        if repo.get_manifest_json(project_id) is None:
            console.print(err_not_planned(project_id))
            raise typer.Exit(1)

        executor = ChunkExecutor(
            repo, generation_service(cfg), timeout=cfg.generation.timeout_seconds
        )
        runner = PipelineRunner(
            repo,
            executor,
            pacing_delay=pacing if pacing is not None else cfg.pipeline.pacing_delay_seconds,
        )

        calls = 0

        def _should_stop() -> bool:
            return max_chunks is not None and calls >= max_chunks

        def _on_chunk(record: ChunkRecord, result: ChunkResult | None, error: str | None) -> None:
            nonlocal calls
            if result is not None:
                calls += 1
            if result is not None and result.ok:
                console.print(
                    f"  [green]✓[/] {record.chunk_id} — {result.files_generated} files, "
                    f"{_tokens(result.tokens_used)}"
                )
            else:
                console.print(f"  [red]✗[/] {record.chunk_id} — {error}")

        console.print(f"[bold]Running project {project.name}[/] ({cfg.generation.model})")
        try:
            report = runner.run_all(project_id, should_stop=_should_stop, on_chunk=_on_chunk)
        except PersistenceFailure as exc:
            console.print(err_persistence(str(exc)))
            raise typer.Exit(1)

        colour = "green" if report.failed == 0 and not report.stopped else "yellow"
        console.print(
            f"\n  [{colour}]{report.completed}/{report.total_chunks} completed, "
            f"{report.failed} failed[/]"
        )
        if report.stopped:
            console.print(f"  [dim]Stopped after {calls} calls. Re-run to continue.[/]")
        if report.errors:
            console.print(f"  [dim]Retry failed chunks:  chunksmith run {project_id}[/]")
            raise typer.Exit(1)
    finally:
        conn.close()


def _tokens(tokens: int | None) -> str:
    return f"{tokens:,} tokens" if tokens is not None else "tokens n/a"
