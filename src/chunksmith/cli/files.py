"""chunksmith files — list or export the generated codebase.

Usage:
  chunksmith files PROJECT_ID                     — table of generated files
  chunksmith files PROJECT_ID --export out/ [-y]  — write them under out/

Only completed chunks contribute files. Generated paths are untrusted and
confined to the export directory.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from chunksmith.cli.common import DEFAULT_DB, console, open_db
from chunksmith.cli.errors import err_output_path_unsafe, err_project_not_found
from chunksmith.db.repository import Repository
from chunksmith.errors import ProjectNotFound
from chunksmith.export.writer import (
    check_overwrite,
    resolve_generated_path,
    validate_output_dir,
    write_output,
)
from chunksmith.pipeline.progress import ChunkFile, ProgressReporter


def files_cmd(
    project_id: Annotated[int, typer.Argument(help="Project id.")],
    export: Annotated[
        str | None,
        typer.Option("--export", "-e", help="Write the files under this directory."),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Overwrite existing files without asking."),
    ] = False,
    db: Annotated[Path, typer.Option("--db", help="Path to .chunksmith.db.")] = DEFAULT_DB,
) -> None:
    """List (or export) the files generated for a project."""
    conn = open_db(db)
    try:
        try:
            files = ProgressReporter(Repository(conn)).list_files(project_id)
        except ProjectNotFound:
            console.print(err_project_not_found(project_id))
            raise typer.Exit(1)
    finally:
        conn.close()

    if not files:
        console.print(f"[yellow]No generated files yet.[/]  Run:  chunksmith run {project_id}")
        raise typer.Exit(0)

    if export is None:
        _show_files_table(files)
        return

    try:
        out_dir = validate_output_dir(export)
    except ValueError:
        console.print(err_output_path_unsafe(export))
        raise typer.Exit(1)

    written = 0
    rejected = 0
    for item in files:
        try:
            target = resolve_generated_path(out_dir, item.file.path)
        except ValueError as exc:
            console.print(f"  [red]✗[/] {item.chunk_id}: {exc}")
            rejected += 1
            continue
        if not check_overwrite(target, yes=yes):
            console.print(f"  [dim]Skipped {item.file.path}[/]")
            continue
        write_output(target, item.file.content)
        written += 1

    console.print(f"\n  [green]✓[/] {written} files written to [bold]{out_dir}[/]")
    if rejected:
        console.print(f"  [yellow]⚠ {rejected} files rejected (unsafe paths)[/]")
        raise typer.Exit(1)


def _show_files_table(files: list[ChunkFile]) -> None:
    table = Table(title="Generated files", show_header=True, header_style="bold")
    table.add_column("Chunk", style="dim")
    table.add_column("Path", style="bold")
    table.add_column("Type")
    table.add_column("Lines", justify="right")
    table.add_column("Description", overflow="fold")
    for item in files:
        table.add_row(
            item.chunk_id,
            item.file.path,
            item.file.type,
            str(item.file.content.count("\n") + 1 if item.file.content else 0),
            item.file.description,
        )
    console.print(table)
    console.print(f"\n  {len(files)} files")
