"""Tests for the single-in-flight session guard."""

from __future__ import annotations

from pathlib import Path

import pytest

from checkpoint.config import DIFF_FILE, INPUT_FILE, LOCK_FILE
from checkpoint.errors import AlreadyInProgressError
from checkpoint.session import SessionGuard


def test_fresh_project_is_not_in_progress(project_dir: Path) -> None:
    guard = SessionGuard(project_dir)
    assert not guard.is_in_progress()
    guard.assert_not_in_progress()


@pytest.mark.parametrize("artifact", [INPUT_FILE, LOCK_FILE])
def test_draft_or_lock_means_in_progress(project_dir: Path, artifact: str) -> None:
    (project_dir / artifact).write_text("x", encoding="utf-8")
    guard = SessionGuard(project_dir)

    assert guard.is_in_progress()
    with pytest.raises(AlreadyInProgressError) as exc_info:
        guard.assert_not_in_progress()
    assert exc_info.value.path.name == artifact
    assert exc_info.value.hint


def test_diff_alone_is_not_in_progress(project_dir: Path) -> None:
    (project_dir / DIFF_FILE).write_text("diff", encoding="utf-8")
    assert not SessionGuard(project_dir).is_in_progress()


def test_begin_writes_lock_with_pid(project_dir: Path) -> None:
    guard = SessionGuard(project_dir)

    lock = guard.begin()

    content = lock.read_text(encoding="utf-8")
    assert content.startswith("pid=")
    assert "timestamp=" in content
    with pytest.raises(AlreadyInProgressError):
        guard.begin()


def test_write_and_read_draft(project_dir: Path) -> None:
    guard = SessionGuard(project_dir)
    guard.write_draft("schema_version: '1'\n", "diff text")

    assert guard.has_draft()
    assert guard.read_draft() == "schema_version: '1'\n"
    assert (project_dir / DIFF_FILE).read_text(encoding="utf-8") == "diff text"


def test_clear_removes_artifacts_and_tolerates_missing(project_dir: Path) -> None:
    guard = SessionGuard(project_dir)
    guard.begin()
    guard.write_draft("draft", "diff")

    removed = guard.clear()

    assert sorted(p.name for p in removed) == sorted([INPUT_FILE, DIFF_FILE, LOCK_FILE])
    assert not guard.is_in_progress()
    assert guard.clear() == []
