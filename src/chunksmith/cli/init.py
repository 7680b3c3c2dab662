"""chunksmith init — create the workspace database and config.

Creates:
  .chunksmith.db               — empty database with schema
  chunksmith.yaml              — per-workspace config (models, timeouts, pacing)
  ~/.chunksmith/config.yaml    — global model config (created once, mode 0o600)
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from chunksmith.config import PROJECT_CONFIG_NAME, ensure_global_config
from chunksmith.db.connection import Database
from chunksmith.db.schema import initialize

console = Console()

_DB_NAME = ".chunksmith.db"

_PROJECT_YAML = """\
# chunksmith workspace configuration.
# API keys are read from environment variables, never from this file.

generation:
  model: openai/gpt-4o
  max_tokens: 16000
  timeout_seconds: 900

planning:
  model: openai/gpt-4o
  timeout_seconds: 300

pipeline:
  pacing_delay_seconds: 2.0
  default_mock_records: 10

logging:
  level: WARNING
"""


def init_cmd(
    workspace: Annotated[
        Path,
        typer.Argument(help="Directory to initialize. Defaults to current directory."),
    ] = Path("."),
    global_config: Annotated[
        Path | None,
        typer.Option("--global-config", hidden=True, help="Override global config path (for testing)."),
    ] = None,
) -> None:
    """Create the chunksmith database and configuration files."""
    workspace = workspace.resolve()
    workspace.mkdir(parents=True, exist_ok=True)

    db_path = workspace / _DB_NAME
    if db_path.exists():
        console.print(f"[yellow]⚠[/]  {db_path} already exists — schema upgraded, data preserved.")

    conn = Database(db_path).connect()
    try:
        initialize(conn)
    finally:
        conn.close()
    console.print(f"  [green]✓[/] {db_path}")

    cfg_path = workspace / PROJECT_CONFIG_NAME
    if not cfg_path.exists():
        cfg_path.write_text(_PROJECT_YAML, encoding="utf-8")
        console.print(f"  [green]✓[/] {cfg_path}")

    global_path = ensure_global_config(global_config)
    console.print(f"  [green]✓[/] {global_path} (global config)")

    console.print("\nNext steps:")
    console.print("  1. chunksmith project add --name <name> --design design.md --language <lang>")
    console.print("  2. chunksmith plan <project-id>")
    console.print("  3. chunksmith run <project-id>")
    console.print("  4. chunksmith files <project-id> --export out/")
