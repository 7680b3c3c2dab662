"""chunksmith CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from chunksmith.cli.common import configure_logging, load_cfg
from chunksmith.cli.files import files_cmd
from chunksmith.cli.init import init_cmd
from chunksmith.cli.plan import plan_cmd
from chunksmith.cli.project import project_app
from chunksmith.cli.run import execute_cmd, run_cmd
from chunksmith.cli.status import status_cmd


def _installed_version() -> str:
    try:
        return importlib.metadata.version("chunksmith")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"chunksmith {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="chunksmith",
    help=(
        "chunksmith — chunked codebase generation.\n\n"
        "  chunksmith plan     Split a design into dependent chunks.\n"
        "  chunksmith run      Generate every remaining chunk, in order.\n"
        "  chunksmith status   Show progress (safe during a run)."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging."),
    ] = False,
) -> None:
    """chunksmith — chunked codebase generation."""
    configure_logging("DEBUG" if verbose else load_cfg().logging.level)


app.command("init")(init_cmd)
app.add_typer(project_app, name="project")
app.command("plan")(plan_cmd)
app.command("execute")(execute_cmd)
app.command("run")(run_cmd)
app.command("status")(status_cmd)
app.command("files")(files_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed chunksmith version."""
    typer.echo(f"chunksmith {_installed_version()}")


if __name__ == "__main__":
    app()
