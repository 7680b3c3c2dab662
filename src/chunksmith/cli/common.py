"""Helpers shared by chunksmith CLI commands."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from chunksmith.cli.errors import err_config, err_no_api_key, err_no_db
from chunksmith.config import ChunksmithConfig, ConfigError, load_config
from chunksmith.db.connection import Database
from chunksmith.db.schema import initialize
from chunksmith.llm.client import LiteLLMService, validate_api_key

console = Console()

DEFAULT_DB = Path(".chunksmith.db")


def configure_logging(level: str) -> None:
    """Route library logging through rich at *level*."""
    root = logging.getLogger("chunksmith")
    root.setLevel(level)
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        root.addHandler(RichHandler(console=console, show_path=False, rich_tracebacks=False))


def load_cfg() -> ChunksmithConfig:
    try:
        return load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)


def open_db(db_path: Path) -> sqlite3.Connection:
    """Open an existing project database and run migrations; exit 1 if missing."""
    if not db_path.exists():
        console.print(err_no_db(str(db_path)))
        raise typer.Exit(1)
    conn = Database(db_path).connect()
    initialize(conn)
    return conn


def require_api_key(model: str) -> None:
    try:
        validate_api_key(model)
    except EnvironmentError:
        console.print(err_no_api_key(model))
        raise typer.Exit(1)


def planning_service(cfg: ChunksmithConfig) -> LiteLLMService:
    require_api_key(cfg.planning.model)
    return LiteLLMService(
        model=cfg.planning.model,
        max_tokens=cfg.planning.max_tokens,
        num_retries=0,
    )


def generation_service(cfg: ChunksmithConfig) -> LiteLLMService:
    require_api_key(cfg.generation.model)
    return LiteLLMService(
        model=cfg.generation.model,
        max_tokens=cfg.generation.max_tokens,
        temperature=cfg.generation.temperature,
        num_retries=cfg.generation.num_retries,
    )
