"""Shared pytest fixtures."""

from __future__ import annotations

import json

import pytest

from chunksmith.db.connection import Database
from chunksmith.db.models import Project
from chunksmith.db.repository import Repository
from chunksmith.db.schema import initialize
from chunksmith.llm.client import Completion

DESIGN = """\
# Shop

## Module 1: Catalog
Browse and search products.
Inputs: search query
Outputs: product list

## Module 2: Orders
Place and track orders.
Inputs: cart
Outputs: order confirmation

## Database Schema
CREATE TABLE products (id INTEGER PRIMARY KEY, name TEXT NOT NULL);
"""


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".chunksmith.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def repo(tmp_db):
    return Repository(tmp_db)


@pytest.fixture
def project_id(repo):
    """Id of a stored, not yet planned project."""
    return repo.add_project(
        Project(
            name="shop",
            design_document=DESIGN,
            language="Python",
            publish_url="https://shop.example.org",
        )
    )


class FakeService:
    """In-memory GenerationService.

    Chunk prompts are answered from *replies*, keyed by the chunk id named on
    the prompt's first line. A reply may be a str, a Completion, an exception
    instance (raised) or a callable taking the chunk id. Chunks without an
    entry get one generated file. Any other prompt gets *default*.
    """

    def __init__(self, replies: dict | None = None, default=None) -> None:
        self.replies = dict(replies or {})
        self.default = default
        self.prompts: list[str] = []
        self.timeouts: list[float | None] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    @property
    def chunk_calls(self) -> list[str]:
        return [c for c in (_chunk_id_of(p) for p in self.prompts) if c]

    def complete(self, prompt: str, *, timeout: float | None = None) -> Completion:
        self.prompts.append(prompt)
        self.timeouts.append(timeout)
        chunk_id = _chunk_id_of(prompt)
        if chunk_id is None:
            reply = self.default
        else:
            reply = self.replies.get(chunk_id, _one_file)
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            reply = reply(chunk_id)
        if isinstance(reply, Completion):
            return reply
        return Completion(text=reply or "", tokens_used=100)


def _chunk_id_of(prompt: str) -> str | None:
    first_line = prompt.split("\n", 1)[0]
    if not first_line.startswith("Generate the '"):
        return None
    return first_line.split("'")[1]


def _one_file(chunk_id: str) -> str:
    return json.dumps(
        {
            "chunkId": chunk_id,
            "files": [
                {
                    "path": f"src/{chunk_id}/main.py",
                    "type": "service",
                    "content": f"# {chunk_id}\n",
                    "description": f"{chunk_id} entry point",
                }
            ],
        }
    )


@pytest.fixture
def fake_service():
    """Factory: fake_service(replies=None, default=None) -> FakeService."""
    return FakeService
