"""
Project file names and optional per-project settings.

Settings live in ``.checkpoint/config.toml`` under a ``[checkpoint]`` table:

    [checkpoint]
    history_limit = 10
    next_limit = 50
    decision_cap = 5
    max_summary_length = 80
    stage = "all"          # or "changelog"

Every key is optional. A missing file yields the defaults.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

CHANGELOG_FILE = ".checkpoint-changelog.yaml"
CONTEXT_FILE = ".checkpoint-context.yaml"
INPUT_FILE = ".checkpoint-input"
DIFF_FILE = ".checkpoint-diff"
LOCK_FILE = ".checkpoint-lock"
STATUS_FILE = ".checkpoint-status.yaml"

# Ephemeral artifacts of an in-progress checkpoint; never committed.
SESSION_FILES = (INPUT_FILE, DIFF_FILE, LOCK_FILE)

CHECKPOINT_DIR = ".checkpoint"
CONFIG_FILE = "config.toml"
AUDIT_LOG_FILE = "audit.log"

SCHEMA_VERSION = "1"

_STAGE_MODES = ("all", "changelog")


@dataclass(frozen=True)
class Settings:
    """Tunable limits for history scans and draft validation."""

    history_limit: int = 10
    next_limit: int = 50
    decision_cap: int = 5
    max_summary_length: int = 80
    stage: str = "all"


def _coerce_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _positive_int(table: dict[str, Any], key: str, default: int) -> int:
    if key not in table:
        return default
    value = table[key]
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{key} must be a positive integer (got {value!r})")
    return value


def config_path(project_path: Path) -> Path:
    return project_path / CHECKPOINT_DIR / CONFIG_FILE


def load_settings(project_path: Path) -> Settings:
    """
    Load settings for a project.

    Args:
        project_path: Project root (the directory holding the changelog)

    Returns:
        Settings with file values layered over the defaults

    Raises:
        ValueError: If the TOML is malformed or a value is out of range
    """
    path = config_path(project_path)
    if not path.exists():
        return Settings()

    import tomllib

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Failed to parse {path}: {e}") from e

    table = _coerce_dict(data.get("checkpoint"))
    defaults = Settings()

    stage = str(table.get("stage", defaults.stage)).strip() or defaults.stage
    if stage not in _STAGE_MODES:
        raise ValueError(f"stage must be one of {', '.join(_STAGE_MODES)} (got {stage!r})")

    return Settings(
        history_limit=_positive_int(table, "history_limit", defaults.history_limit),
        next_limit=_positive_int(table, "next_limit", defaults.next_limit),
        decision_cap=_positive_int(table, "decision_cap", defaults.decision_cap),
        max_summary_length=_positive_int(table, "max_summary_length", defaults.max_summary_length),
        stage=stage,
    )
