"""Tests for reply sanitization and JSON object decoding."""

from __future__ import annotations

import pytest

from chunksmith.errors import ManifestParseError
from chunksmith.pipeline.sanitizer import parse_json_object, sanitize


@pytest.mark.parametrize(
    "raw",
    [
        '{"a": 1}',
        '  {"a": 1}\n',
        '```json\n{"a": 1}\n```',
        '```\n{"a": 1}\n```',
        '```\njson\n{"a": 1}\n```',
        'Here is the manifest:\n```json\n{"a": 1}\n```\nHope this helps!',
        'Sure! {"a": 1} Anything else?',
        '```json\n```json\n{"a": 1}\n```\n```',
        '```json {"a": 1}```',
        '```{"a": 1}```',
        '```json{"a": 1}\n```',
    ],
)
def test_sanitize_unwraps_to_object(raw):
    assert sanitize(raw) == '{"a": 1}'


def test_sanitize_keeps_nested_braces():
    raw = 'prefix {"a": {"b": [1, {"c": 2}]}} suffix'
    assert sanitize(raw) == '{"a": {"b": [1, {"c": 2}]}}'


def test_sanitize_without_braces_returns_trimmed_text():
    assert sanitize("```\nno json here\n```") == "no json here"


def test_sanitize_empty_input():
    assert sanitize("") == ""
    assert sanitize(None) == ""


@pytest.mark.parametrize(
    "raw",
    [
        '```json\n{"a": "x"}\n```',
        "plain words",
        'lead {"k": "}"} trail',
        "```python\nprint('hi')\n```",
        '```json {"a": "x"}```',
        "",
    ],
)
def test_sanitize_is_idempotent(raw):
    once = sanitize(raw)
    assert sanitize(once) == once


def test_parse_json_object_from_fenced_reply():
    assert parse_json_object('```json\n{"chunks": []}\n```') == {"chunks": []}


def test_parse_json_object_from_single_line_fence():
    assert parse_json_object('```json {"files": []}```') == {"files": []}


def test_parse_json_object_invalid_json():
    with pytest.raises(ManifestParseError, match="not valid JSON"):
        parse_json_object("I could not produce a manifest.")


def test_parse_json_object_truncated_reply():
    with pytest.raises(ManifestParseError):
        parse_json_object('{"chunks": [{"chunkId": "a"')


def test_parse_json_object_rejects_array():
    with pytest.raises(ManifestParseError, match="JSON object"):
        parse_json_object("[1, 2, 3]")
