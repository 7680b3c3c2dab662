"""Tests for exporting generated files to disk."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from chunksmith.export.writer import (
    check_overwrite,
    resolve_generated_path,
    validate_output_dir,
    write_output,
)


# ------------------------------------------------------------------
# validate_output_dir
# ------------------------------------------------------------------


def test_validate_output_dir_relative(tmp_path):
    assert validate_output_dir("out", allowed_base=tmp_path) == (tmp_path / "out").resolve()


def test_validate_output_dir_traversal_blocked(tmp_path):
    with pytest.raises(ValueError, match="traversal"):
        validate_output_dir("../../elsewhere", allowed_base=tmp_path)


def test_validate_output_dir_absolute_accepted(tmp_path):
    target = str(tmp_path / "abs-out")
    assert validate_output_dir(target, allowed_base=tmp_path / "sub") == Path(target).resolve()


def test_validate_output_dir_defaults_to_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert validate_output_dir("generated") == (tmp_path / "generated").resolve()


# ------------------------------------------------------------------
# resolve_generated_path
# ------------------------------------------------------------------


@pytest.mark.parametrize(
    "relative, expected",
    [
        ("src/app.py", "src/app.py"),
        ("./README.md", "README.md"),
        ("src\\models\\user.py", "src/models/user.py"),
        ("src/../setup.cfg", "setup.cfg"),
    ],
)
def test_resolve_generated_path_inside_root(tmp_path, relative, expected):
    assert resolve_generated_path(tmp_path, relative) == (tmp_path / expected).resolve()


@pytest.mark.parametrize(
    "relative",
    ["../../etc/passwd", "/etc/passwd", "C:/Windows/system.ini", "", "   ", ".", "src/.."],
)
def test_resolve_generated_path_rejects_unsafe(tmp_path, relative):
    with pytest.raises(ValueError):
        resolve_generated_path(tmp_path, relative)


# ------------------------------------------------------------------
# check_overwrite
# ------------------------------------------------------------------


def test_check_overwrite_file_not_exists(tmp_path):
    assert check_overwrite(tmp_path / "new.py", yes=False) is True


def test_check_overwrite_yes_flag_skips_prompt(tmp_path):
    existing = tmp_path / "app.py"
    existing.write_text("old")
    with patch("chunksmith.export.writer.typer.confirm") as mock_confirm:
        assert check_overwrite(existing, yes=True) is True
    mock_confirm.assert_not_called()


def test_check_overwrite_user_confirms(tmp_path):
    existing = tmp_path / "app.py"
    existing.write_text("old")
    with patch("chunksmith.export.writer.typer.confirm", return_value=True):
        assert check_overwrite(existing, yes=False) is True


def test_check_overwrite_user_declines(tmp_path):
    existing = tmp_path / "app.py"
    existing.write_text("old")
    with patch("chunksmith.export.writer.typer.confirm", return_value=False):
        assert check_overwrite(existing, yes=False) is False


# ------------------------------------------------------------------
# write_output
# ------------------------------------------------------------------


def test_write_output_creates_parent_dirs(tmp_path):
    target = tmp_path / "src" / "pkg" / "module.py"
    write_output(target, "print('hi')\n")
    assert target.read_text(encoding="utf-8") == "print('hi')\n"


def test_write_output_preserves_line_endings(tmp_path):
    target = tmp_path / "win.bat"
    write_output(target, "@echo off\r\nexit\r\n")
    assert target.read_bytes() == b"@echo off\r\nexit\r\n"


def test_write_output_overwrites_existing(tmp_path):
    target = tmp_path / "app.py"
    target.write_text("old")
    write_output(target, "new")
    assert target.read_text() == "new"


def test_write_output_no_temp_files_left(tmp_path):
    write_output(tmp_path / "a.txt", "x")
    assert [p.name for p in tmp_path.iterdir()] == ["a.txt"]


def test_write_output_cleans_up_on_failure(tmp_path):
    target = tmp_path / "a.txt"
    with patch("chunksmith.export.writer.os.replace", side_effect=OSError("denied")):
        with pytest.raises(OSError):
            write_output(target, "x")
    assert list(tmp_path.iterdir()) == []
    assert not os.path.exists(target)
