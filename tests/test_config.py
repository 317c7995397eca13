"""Tests for project settings loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from checkpoint.config import Settings, config_path, load_settings


def _write_config(project_dir: Path, body: str) -> None:
    path = config_path(project_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body, encoding="utf-8")


def test_missing_file_yields_defaults(project_dir: Path) -> None:
    assert load_settings(project_dir) == Settings()


def test_values_layer_over_defaults(project_dir: Path) -> None:
    _write_config(project_dir, '[checkpoint]\nhistory_limit = 3\nstage = "changelog"\n')

    settings = load_settings(project_dir)

    assert settings.history_limit == 3
    assert settings.stage == "changelog"
    assert settings.next_limit == Settings().next_limit
    assert settings.decision_cap == 5


def test_other_tables_are_ignored(project_dir: Path) -> None:
    _write_config(project_dir, "[tool.other]\nhistory_limit = 1\n")
    assert load_settings(project_dir) == Settings()


def test_malformed_toml_raises(project_dir: Path) -> None:
    _write_config(project_dir, "[checkpoint\nhistory_limit = 3\n")
    with pytest.raises(ValueError, match="Failed to parse"):
        load_settings(project_dir)


@pytest.mark.parametrize("value", ["0", "-2", '"ten"', "true", "1.5"])
def test_non_positive_or_non_int_limit_raises(project_dir: Path, value: str) -> None:
    _write_config(project_dir, f"[checkpoint]\nhistory_limit = {value}\n")
    with pytest.raises(ValueError, match="history_limit"):
        load_settings(project_dir)


def test_unknown_stage_mode_raises(project_dir: Path) -> None:
    _write_config(project_dir, '[checkpoint]\nstage = "everything"\n')
    with pytest.raises(ValueError, match="stage"):
        load_settings(project_dir)
