"""Data shapes for manifests and generated files.

The generation service answers in JSON with camelCase keys. Parsing is strict
about the fields the pipeline depends on: a missing chunkId, chunkType or
generationOrder (or a file without path/content) raises ManifestParseError
instead of being defaulted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from chunksmith.errors import ManifestParseError


def _require(data: dict[str, Any], key: str, kind: type | tuple[type, ...], where: str) -> Any:
    if key not in data or data[key] is None:
        raise ManifestParseError(f"{where}: missing required field '{key}'")
    value = data[key]
    # bool is an int subclass; never accept it where a number is expected
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ManifestParseError(
            f"{where}: field '{key}' has type {type(value).__name__}"
        )
    return value


def _optional_int(data: dict[str, Any], key: str, default: int, where: str) -> int:
    if data.get(key) is None:
        return default
    return _require(data, key, int, where)


def _str_list(data: dict[str, Any], key: str, where: str) -> list[str]:
    value = data.get(key) or []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ManifestParseError(f"{where}: field '{key}' must be a list of strings")
    return list(value)


def _object_list(data: dict[str, Any], key: str, where: str) -> list[dict[str, Any]]:
    value = data.get(key) or []
    if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
        raise ManifestParseError(f"{where}: field '{key}' must be a list of objects")
    return value


@dataclass(frozen=True)
class PlannedFile:
    """A file the plan expects a chunk to produce (not its content)."""

    path: str
    type: str = ""
    description: str = ""
    priority: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlannedFile:
        path = _require(data, "path", str, "planned file")
        return cls(
            path=path,
            type=str(data.get("type", "")),
            description=str(data.get("description", "")),
            priority=_optional_int(data, "priority", 0, f"planned file '{path}'"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "type": self.type,
            "description": self.description,
            "priority": self.priority,
        }


@dataclass(frozen=True)
class ChunkDefinition:
    chunk_id: str
    chunk_type: str
    generation_order: int
    description: str = ""
    dependencies: tuple[str, ...] = ()
    files: tuple[PlannedFile, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChunkDefinition:
        chunk_id = _require(data, "chunkId", str, "chunk")
        where = f"chunk '{chunk_id}'"
        return cls(
            chunk_id=chunk_id,
            chunk_type=_require(data, "chunkType", str, where),
            generation_order=_require(data, "generationOrder", int, where),
            description=str(data.get("description", "")),
            dependencies=tuple(_str_list(data, "dependencies", where)),
            files=tuple(
                PlannedFile.from_dict(f) for f in _object_list(data, "files", where)
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "chunkId": self.chunk_id,
            "chunkType": self.chunk_type,
            "description": self.description,
            "generationOrder": self.generation_order,
            "dependencies": list(self.dependencies),
            "files": [f.to_dict() for f in self.files],
        }


@dataclass
class SqlColumn:
    name: str
    type: str = ""
    is_primary_key: bool = False
    is_nullable: bool = True
    is_unique: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SqlColumn:
        return cls(
            name=_require(data, "name", str, "column"),
            type=str(data.get("type", "")),
            is_primary_key=bool(data.get("isPrimaryKey", False)),
            is_nullable=bool(data.get("isNullable", True)),
            is_unique=bool(data.get("isUnique", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "isPrimaryKey": self.is_primary_key,
            "isNullable": self.is_nullable,
            "isUnique": self.is_unique,
        }


@dataclass
class SqlTable:
    table_name: str
    columns: list[SqlColumn] = field(default_factory=list)
    entity_name: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SqlTable:
        name = _require(data, "tableName", str, "table")
        return cls(
            table_name=name,
            entity_name=str(data.get("entityName", "")),
            columns=[
                SqlColumn.from_dict(c)
                for c in _object_list(data, "columns", f"table '{name}'")
            ],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "tableName": self.table_name,
            "entityName": self.entity_name,
            "columns": [c.to_dict() for c in self.columns],
        }


@dataclass
class ModuleFact:
    """A functional module extracted from the design document."""

    title: str
    description: str = ""
    inputs: str = ""
    outputs: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ModuleFact:
        return cls(
            title=_require(data, "title", str, "module"),
            description=str(data.get("description", "")),
            inputs=str(data.get("inputs", "")),
            outputs=str(data.get("outputs", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "inputs": self.inputs,
            "outputs": self.outputs,
        }


@dataclass
class Manifest:
    project_name: str
    target_language: str
    chunks: list[ChunkDefinition]
    publish_url: str = ""
    generation_order: list[str] = field(default_factory=list)
    sql_tables: list[SqlTable] = field(default_factory=list)
    modules: list[ModuleFact] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Manifest:
        """Build a Manifest from a decoded reply or a persisted blob.

        Raises:
            ManifestParseError: If the chunk list is missing or empty, or any
                chunk lacks a required field.
        """
        raw_chunks = _object_list(data, "chunks", "manifest")
        if not raw_chunks:
            raise ManifestParseError("manifest: 'chunks' is missing or empty")
        chunks = [ChunkDefinition.from_dict(c) for c in raw_chunks]

        seen: set[str] = set()
        for chunk in chunks:
            if chunk.chunk_id in seen:
                raise ManifestParseError(f"manifest: duplicate chunkId '{chunk.chunk_id}'")
            seen.add(chunk.chunk_id)

        return cls(
            project_name=str(data.get("projectName", "")),
            target_language=str(data.get("programmingLanguage", data.get("targetLanguage", ""))),
            publish_url=str(data.get("publishUrl", "")),
            chunks=chunks,
            generation_order=_str_list(data, "generationOrder", "manifest"),
            sql_tables=[SqlTable.from_dict(t) for t in _object_list(data, "sqlTables", "manifest")],
            modules=[ModuleFact.from_dict(m) for m in _object_list(data, "modules", "manifest")],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "projectName": self.project_name,
            "programmingLanguage": self.target_language,
            "publishUrl": self.publish_url,
            "totalChunks": len(self.chunks),
            "chunks": [c.to_dict() for c in self.chunks],
            "generationOrder": list(self.generation_order),
            "sqlTables": [t.to_dict() for t in self.sql_tables],
            "modules": [m.to_dict() for m in self.modules],
        }

    def chunk(self, chunk_id: str) -> ChunkDefinition | None:
        for c in self.chunks:
            if c.chunk_id == chunk_id:
                return c
        return None

    def ordered_chunks(self) -> list[ChunkDefinition]:
        """Chunks sorted by generation order; ties keep declaration order."""
        return sorted(self.chunks, key=lambda c: c.generation_order)


@dataclass
class GeneratedFile:
    path: str
    content: str
    type: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GeneratedFile:
        path = _require(data, "path", str, "file")
        if not path.strip():
            raise ManifestParseError("file: 'path' is empty")
        return cls(
            path=path,
            content=_require(data, "content", str, f"file '{path}'"),
            type=str(data.get("type", "")),
            description=str(data.get("description", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "type": self.type,
            "content": self.content,
            "description": self.description,
        }


def parse_generated_files(data: dict[str, Any]) -> list[GeneratedFile]:
    """Extract the file list from a decoded chunk reply.

    Raises:
        ManifestParseError: If 'files' is absent or malformed.
    """
    if "files" not in data:
        raise ManifestParseError("chunk reply: missing required field 'files'")
    return [GeneratedFile.from_dict(f) for f in _object_list(data, "files", "chunk reply")]
