"""chunksmith database layer."""

from chunksmith.db.connection import Database
from chunksmith.db.migrations import MIGRATIONS, run_migrations
from chunksmith.db.repository import Repository
from chunksmith.db.schema import initialize

__all__ = [
    "Database",
    "Repository",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
]
