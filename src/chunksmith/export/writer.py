"""Write generated files to disk, with security guards.

Responsibilities:
  1. Resolve the export directory (relative paths confined to CWD).
  2. Confine every generated file path to the export directory.
     Traversal (../../etc/passwd) or absolute paths in model output → hard fail.
  3. Overwrite protection: if a file exists, prompt the user (--yes skips).
  4. Write each file atomically (temp file → rename).
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path, PurePosixPath

import typer


# ------------------------------------------------------------------
# Path validation (security — path traversal prevention)
# ------------------------------------------------------------------


def validate_output_dir(output: str, allowed_base: Path | None = None) -> Path:
    """Normalize and validate the export directory.

    Absolute paths are accepted as-is (user explicitly chose the location).
    Relative paths are confined to *allowed_base* (default: CWD).

    Raises:
        ValueError: If a relative path escapes the allowed base directory.
    """
    path = Path(output)

    if path.is_absolute():
        return path.resolve()

    if allowed_base is None:
        allowed_base = Path.cwd()

    allowed_base = allowed_base.resolve()
    resolved = (allowed_base / path).resolve()

    try:
        resolved.relative_to(allowed_base)
    except ValueError:
        raise ValueError(
            f"Output path '{output}' resolves outside the allowed directory "
            f"('{allowed_base}'). Path traversal is not permitted."
        )

    return resolved


def resolve_generated_path(root: Path, relative: str) -> Path:
    """Return where a generated file with project-relative *relative* path goes.

    Model output is untrusted: absolute paths, drive letters and any path that
    resolves outside *root* are rejected.

    Raises:
        ValueError: If *relative* is not a safe project-relative path.
    """
    normalized = relative.replace("\\", "/").strip()
    pure = PurePosixPath(normalized)
    if not normalized or pure.is_absolute() or (pure.parts and ":" in pure.parts[0]):
        raise ValueError(f"Generated path '{relative}' is not project-relative.")

    root = root.resolve()
    target = (root / pure).resolve()
    try:
        target.relative_to(root)
    except ValueError:
        raise ValueError(
            f"Generated path '{relative}' escapes the export directory. "
            "Path traversal is not permitted."
        )
    if target == root:
        raise ValueError(f"Generated path '{relative}' does not name a file.")
    return target


# ------------------------------------------------------------------
# Overwrite guard
# ------------------------------------------------------------------


def check_overwrite(path: Path, yes: bool) -> bool:
    """Return True if we should proceed with writing, False if user declines."""
    if yes or not path.exists():
        return True

    return typer.confirm(f"  File exists: {path}\n  Overwrite?", default=False)


# ------------------------------------------------------------------
# Atomic write
# ------------------------------------------------------------------


def write_output(path: Path, content: str) -> None:
    """Write *content* to *path* atomically (temp → rename).

    Creates parent directories if needed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        os.replace(tmp_path, path)
    except Exception:
        # Clean up temp file on error
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
