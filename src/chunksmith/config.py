"""chunksmith configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (CHUNKSMITH_GENERATION_MODEL, CHUNKSMITH_PLANNING_MODEL,
                             CHUNKSMITH_PACING_DELAY, CHUNKSMITH_LOG_LEVEL)
  3. Per-project chunksmith.yaml  (next to .chunksmith.db)
  4. Global ~/.chunksmith/config.yaml  (model defaults only — no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".chunksmith"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
PROJECT_CONFIG_NAME: str = "chunksmith.yaml"

# Fields that suggest an API key — forbidden in global config.
# Does NOT match legitimate config keys like max_tokens.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"  # api_key, api-key, api_secret, apikey
    r"|_token$"                  # github_token, access_token (suffix)
    r"|^token$"                  # exactly "token" (standalone)
    r"|_secret$"                 # client_secret (suffix)
    r"|^secret$"                 # exactly "secret" (standalone)
    r"|passw(?:ord|d)"           # password, passwd
    r"|credential",              # credential, credentials
    re.IGNORECASE,
)

# Known top-level sections — unknown keys produce a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(["generation", "planning", "pipeline", "logging"])

_LOG_LEVELS: frozenset[str] = frozenset(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class GenerationCfg:
    """Per-chunk file generation (chunksmith.yaml: generation:)."""

    model: str = "openai/gpt-4o"
    max_tokens: int = 16_000
    temperature: float = 0.0
    timeout_seconds: float = 900.0
    num_retries: int = 0


@dataclass
class PlanningCfg:
    """Manifest planning call (chunksmith.yaml: planning:)."""

    model: str = "openai/gpt-4o"
    max_tokens: int = 8_000
    timeout_seconds: float = 300.0


@dataclass
class PipelineCfg:
    """Run-level behaviour (chunksmith.yaml: pipeline:).

    Attributes:
        pacing_delay_seconds: Fixed pause between consecutive chunk calls,
            to stay under the generation service's rate limit.
        default_mock_records: Seed-data target used when a project sets none.
    """

    pacing_delay_seconds: float = 2.0
    default_mock_records: int = 10


@dataclass
class LoggingCfg:
    level: str = "WARNING"


@dataclass
class ChunksmithConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    generation: GenerationCfg = field(default_factory=GenerationCfg)
    planning: PlanningCfg = field(default_factory=PlanningCfg)
    pipeline: PipelineCfg = field(default_factory=PipelineCfg)
    logging: LoggingCfg = field(default_factory=LoggingCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _validate_level(level: str) -> str:
    upper = level.upper()
    if upper not in _LOG_LEVELS:
        raise ConfigError(
            f"logging.level must be one of {', '.join(sorted(_LOG_LEVELS))}, got '{level}'"
        )
    return upper


def _non_negative(value: Any, key: str) -> float:
    number = float(value)
    if number < 0:
        raise ConfigError(f"{key} must not be negative, got {value}")
    return number


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> ChunksmithConfig:
    """Build a *ChunksmithConfig* from a merged raw YAML dict."""
    cfg = ChunksmithConfig()

    if "generation" in data:
        g = data["generation"] or {}
        cfg.generation = GenerationCfg(
            model=str(g.get("model", cfg.generation.model)),
            max_tokens=int(g.get("max_tokens", cfg.generation.max_tokens)),
            temperature=float(g.get("temperature", cfg.generation.temperature)),
            timeout_seconds=_non_negative(
                g.get("timeout_seconds", cfg.generation.timeout_seconds),
                "generation.timeout_seconds",
            ),
            num_retries=int(g.get("num_retries", cfg.generation.num_retries)),
        )

    if "planning" in data:
        p = data["planning"] or {}
        cfg.planning = PlanningCfg(
            model=str(p.get("model", cfg.planning.model)),
            max_tokens=int(p.get("max_tokens", cfg.planning.max_tokens)),
            timeout_seconds=_non_negative(
                p.get("timeout_seconds", cfg.planning.timeout_seconds),
                "planning.timeout_seconds",
            ),
        )

    if "pipeline" in data:
        pl = data["pipeline"] or {}
        cfg.pipeline = PipelineCfg(
            pacing_delay_seconds=_non_negative(
                pl.get("pacing_delay_seconds", cfg.pipeline.pacing_delay_seconds),
                "pipeline.pacing_delay_seconds",
            ),
            default_mock_records=int(
                pl.get("default_mock_records", cfg.pipeline.default_mock_records)
            ),
        )

    if "logging" in data:
        lg = data["logging"] or {}
        cfg.logging = LoggingCfg(level=_validate_level(str(lg.get("level", cfg.logging.level))))

    return cfg


def _apply_env_overrides(cfg: ChunksmithConfig) -> ChunksmithConfig:
    """Apply CHUNKSMITH_* environment variable overrides."""
    if model := os.environ.get("CHUNKSMITH_GENERATION_MODEL"):
        cfg.generation.model = model
    if model := os.environ.get("CHUNKSMITH_PLANNING_MODEL"):
        cfg.planning.model = model
    if delay := os.environ.get("CHUNKSMITH_PACING_DELAY"):
        cfg.pipeline.pacing_delay_seconds = _non_negative(delay, "CHUNKSMITH_PACING_DELAY")
    if level := os.environ.get("CHUNKSMITH_LOG_LEVEL"):
        cfg.logging.level = _validate_level(level)
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> ChunksmithConfig:
    """Load and return a merged *ChunksmithConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *chunksmith.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If global config contains API-key-like fields, or a
            value is out of range.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    return _apply_env_overrides(cfg)


def ensure_global_config(
    global_config_path: Path | None = None,
) -> Path:
    """Create ``~/.chunksmith/config.yaml`` with defaults if it does not exist.

    Creates parent directory with mode 0o700 and the config file with
    mode 0o600 (owner-readable only).
    """
    target = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    if not target.exists():
        content = (
            "# chunksmith global configuration — model defaults only.\n"
            "# NEVER store API keys here — use environment variables:\n"
            "#   export OPENAI_API_KEY=sk-...\n"
            "#   export ANTHROPIC_API_KEY=sk-ant-...\n"
            "\n"
            "generation:\n"
            "  model: openai/gpt-4o\n"
            "\n"
            "planning:\n"
            "  model: openai/gpt-4o\n"
        )
        target.write_text(content, encoding="utf-8")
        target.chmod(0o600)

    return target
