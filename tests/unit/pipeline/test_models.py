"""Tests for manifest and generated-file data shapes."""

from __future__ import annotations

import pytest

from chunksmith.errors import ManifestParseError
from chunksmith.pipeline.models import (
    ChunkDefinition,
    GeneratedFile,
    Manifest,
    SqlTable,
    parse_generated_files,
)


def _chunk(chunk_id="infra", order=1, **extra):
    data = {"chunkId": chunk_id, "chunkType": "infrastructure", "generationOrder": order}
    data.update(extra)
    return data


# ------------------------------------------------------------------
# ChunkDefinition
# ------------------------------------------------------------------

def test_chunk_definition_from_dict_defaults():
    c = ChunkDefinition.from_dict(_chunk())
    assert c.chunk_id == "infra"
    assert c.chunk_type == "infrastructure"
    assert c.generation_order == 1
    assert c.dependencies == ()
    assert c.files == ()


def test_chunk_definition_reads_files_and_dependencies():
    c = ChunkDefinition.from_dict(
        _chunk(
            "api",
            3,
            dependencies=["db"],
            files=[{"path": "src/api.py", "type": "controller", "priority": 2}],
        )
    )
    assert c.dependencies == ("db",)
    assert c.files[0].path == "src/api.py"
    assert c.files[0].priority == 2


@pytest.mark.parametrize("missing", ["chunkId", "chunkType", "generationOrder"])
def test_chunk_definition_missing_required_field(missing):
    data = _chunk()
    del data[missing]
    with pytest.raises(ManifestParseError, match=missing):
        ChunkDefinition.from_dict(data)


def test_chunk_definition_rejects_string_order():
    with pytest.raises(ManifestParseError):
        ChunkDefinition.from_dict(_chunk(order="1"))


def test_chunk_definition_rejects_bool_order():
    with pytest.raises(ManifestParseError):
        ChunkDefinition.from_dict(_chunk(order=True))


@pytest.mark.parametrize("priority", ["high", "1.5", [1], 1.5, True])
def test_planned_file_rejects_non_integer_priority(priority):
    with pytest.raises(ManifestParseError, match="priority"):
        ChunkDefinition.from_dict(_chunk(files=[{"path": "a.py", "priority": priority}]))


def test_planned_file_priority_defaults_to_zero():
    c = ChunkDefinition.from_dict(_chunk(files=[{"path": "a.py", "priority": None}]))
    assert c.files[0].priority == 0


def test_chunk_definition_rejects_non_string_dependencies():
    with pytest.raises(ManifestParseError, match="dependencies"):
        ChunkDefinition.from_dict(_chunk(dependencies=[1, 2]))


# ------------------------------------------------------------------
# Manifest
# ------------------------------------------------------------------

def test_manifest_from_dict():
    m = Manifest.from_dict(
        {
            "projectName": "shop",
            "programmingLanguage": "Go",
            "chunks": [_chunk("infra", 1), _chunk("db", 2, dependencies=["infra"])],
        }
    )
    assert m.project_name == "shop"
    assert m.target_language == "Go"
    assert [c.chunk_id for c in m.chunks] == ["infra", "db"]


def test_manifest_accepts_target_language_key():
    m = Manifest.from_dict({"targetLanguage": "Rust", "chunks": [_chunk()]})
    assert m.target_language == "Rust"


def test_manifest_requires_chunks():
    with pytest.raises(ManifestParseError, match="chunks"):
        Manifest.from_dict({"projectName": "shop"})


def test_manifest_rejects_empty_chunks():
    with pytest.raises(ManifestParseError, match="chunks"):
        Manifest.from_dict({"chunks": []})


def test_manifest_rejects_duplicate_chunk_ids():
    with pytest.raises(ManifestParseError, match="duplicate"):
        Manifest.from_dict({"chunks": [_chunk("a", 1), _chunk("a", 2)]})


def test_manifest_to_dict_round_trip_keeps_chunks_and_facts():
    original = Manifest.from_dict(
        {
            "projectName": "shop",
            "programmingLanguage": "Python",
            "chunks": [_chunk("infra", 1)],
            "sqlTables": [{"tableName": "users", "columns": [{"name": "id", "isPrimaryKey": True}]}],
            "modules": [{"title": "Auth", "inputs": "credentials"}],
        }
    )
    data = original.to_dict()
    assert data["totalChunks"] == 1
    restored = Manifest.from_dict(data)
    assert restored == original


def test_manifest_chunk_lookup():
    m = Manifest.from_dict({"chunks": [_chunk("a", 1), _chunk("b", 2)]})
    assert m.chunk("b").generation_order == 2
    assert m.chunk("zzz") is None


def test_ordered_chunks_is_stable_for_ties():
    m = Manifest.from_dict(
        {"chunks": [_chunk("c", 2), _chunk("a", 1), _chunk("b", 2), _chunk("d", 1)]}
    )
    assert [c.chunk_id for c in m.ordered_chunks()] == ["a", "d", "c", "b"]


def test_sql_table_requires_name():
    with pytest.raises(ManifestParseError, match="tableName"):
        SqlTable.from_dict({"columns": []})


# ------------------------------------------------------------------
# Generated files
# ------------------------------------------------------------------

def test_parse_generated_files():
    files = parse_generated_files(
        {"files": [{"path": "a.py", "content": "x = 1\n", "type": "service"}]}
    )
    assert files == [GeneratedFile(path="a.py", content="x = 1\n", type="service")]


def test_parse_generated_files_allows_empty_list():
    assert parse_generated_files({"files": []}) == []


def test_parse_generated_files_requires_files_key():
    with pytest.raises(ManifestParseError, match="files"):
        parse_generated_files({"chunkId": "x"})


def test_generated_file_requires_content():
    with pytest.raises(ManifestParseError, match="content"):
        GeneratedFile.from_dict({"path": "a.py"})


def test_generated_file_rejects_blank_path():
    with pytest.raises(ManifestParseError, match="path"):
        GeneratedFile.from_dict({"path": "  ", "content": ""})


def test_generated_file_allows_empty_content():
    assert GeneratedFile.from_dict({"path": "empty.txt", "content": ""}).content == ""
