"""chunksmith status — progress of a project's chunk generation.

Shows the overall status, per-status counts, total tokens and time, and one
row per chunk with its error (if any). Safe to run while `chunksmith run`
is in progress in another terminal.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.panel import Panel
from rich.table import Table

from chunksmith.cli.common import DEFAULT_DB, console, open_db
from chunksmith.cli.errors import err_project_not_found
from chunksmith.db.models import COMPLETED, FAILED, GENERATING, PENDING
from chunksmith.db.repository import Repository
from chunksmith.errors import ProjectNotFound
from chunksmith.pipeline.progress import ProgressReporter, ProjectStatus

_STATUS_STYLE = {
    COMPLETED: "[green]✓ completed[/]",
    FAILED: "[red]✗ failed[/]",
    GENERATING: "[yellow]⏳ generating[/]",
    PENDING: "[dim]· pending[/]",
}


def status_cmd(
    project_id: Annotated[int, typer.Argument(help="Project id.")],
    db: Annotated[Path, typer.Option("--db", help="Path to .chunksmith.db.")] = DEFAULT_DB,
) -> None:
    """Show generation progress for a project."""
    conn = open_db(db)
    try:
        try:
            status = ProgressReporter(Repository(conn)).status(project_id)
        except ProjectNotFound:
            console.print(err_project_not_found(project_id))
            raise typer.Exit(1)
    finally:
        conn.close()

    _show_summary_panel(status)
    if status.chunks:
        _show_chunk_table(status)
    else:
        console.print(f"[dim]No chunks planned yet.[/]  Run:  chunksmith plan {project_id}")


def _show_summary_panel(status: ProjectStatus) -> None:
    counts = status.per_status_counts
    lines = [
        f"Status:    [bold]{status.overall_status}[/]",
        f"Progress:  [bold]{status.completed_chunks}/{status.total_chunks}[/] chunks "
        f"({status.percent_complete:.0f}%)",
        f"Chunks:    {counts.get(PENDING, 0)} pending  |  {counts.get(GENERATING, 0)} generating  |  "
        f"{counts.get(COMPLETED, 0)} completed  |  {counts.get(FAILED, 0)} failed",
        f"Tokens:    {status.total_tokens:,}",
        f"Time:      {status.total_time_ms / 1000:.1f}s",
    ]
    console.print(
        Panel("\n".join(lines), title=f"[bold]Project {status.project_id}[/]", expand=False)
    )


def _show_chunk_table(status: ProjectStatus) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Order", justify="right")
    table.add_column("Chunk", style="bold")
    table.add_column("Type", style="dim")
    table.add_column("Status")
    table.add_column("Files", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Error", style="red", overflow="fold")

    for c in status.chunks:
        table.add_row(
            str(c.generation_order),
            c.chunk_id,
            c.chunk_type,
            _STATUS_STYLE.get(c.status, c.status),
            str(c.files_count) if c.status == COMPLETED else "",
            f"{c.tokens_used:,}" if c.tokens_used is not None else "",
            c.error_message if c.status == FAILED and c.error_message else "",
        )
    console.print(table)
