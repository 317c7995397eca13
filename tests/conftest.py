"""Pytest configuration and fixtures."""

from __future__ import annotations

import hashlib
from pathlib import Path

import pytest

from checkpoint.config import CHANGELOG_FILE, CONTEXT_FILE, INPUT_FILE
from checkpoint.errors import StoreIOError
from checkpoint.store import DocumentStore, MemoryBackend


VALID_DRAFT = """\
# CHECKPOINT DRAFT
# instructions are ignored
schema_version: "1"
timestamp: "2025-01-02T10:00:00+00:00"
commit_hash: ""
git_status: |2
   M upload.py
diff_file: ".checkpoint-diff"
changes:
  - summary: "Add retry budget to upload client"
    details: "Uploads gave up after one timeout"
    change_type: "feature"
    scope: "upload"
context:
  problem_statement: "Uploads failed on slow links"
  decisions_made:
    - decision: "Use exponential backoff"
      rationale: "Keeps server load bounded"
  failed_approaches:
    - approach: "Fixed one second sleep"
      why_failed: "Too slow on good links"
  established_patterns:
    - pattern: "[OPTIONAL: New convention established]"
      rationale: "[OPTIONAL: Why this pattern works]"
next_steps:
  - summary: "Expose retry budget in config"
    priority: "high"
    scope: "upload"
  - summary: "Document retry behaviour"
    priority: "low"
"""


class FakeVersionControl:
    """In-memory stand-in for GitRepository."""

    def __init__(self, *, repository: bool = True, status: str = " M upload.py\n"):
        self.repository = repository
        self.status_text = status
        self.diff_text = "diff --git a/upload.py b/upload.py\n+retry = 3\n"
        self.numstat_text = "3\t1\tupload.py\n"
        self.staged: list[str] = []
        self.excluded: tuple[str, ...] = ()
        self.commits: list[tuple[str, str]] = []
        self.fail_commit = False

    def is_repository(self) -> bool:
        return self.repository

    def status(self) -> str:
        return self.status_text

    def diff(self) -> str:
        return self.diff_text

    def numstat(self) -> str:
        return self.numstat_text

    def stage_all(self, exclude: tuple[str, ...] = ()) -> None:
        self.staged.append("-A")
        self.excluded = tuple(exclude)

    def stage(self, relpath: str) -> None:
        self.staged.append(relpath)

    def commit(self, message: str) -> str:
        if self.fail_commit:
            raise StoreIOError("git commit -m failed: nothing to commit")
        commit_hash = hashlib.sha1(f"{len(self.commits)}:{message}".encode()).hexdigest()
        self.commits.append((commit_hash, message))
        return commit_hash

    def head(self) -> tuple[str, str] | None:
        return self.commits[-1] if self.commits else None


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """An empty project root."""
    path = tmp_path / "project"
    path.mkdir()
    return path


@pytest.fixture
def fake_vcs() -> FakeVersionControl:
    return FakeVersionControl()


@pytest.fixture
def valid_draft() -> str:
    return VALID_DRAFT


@pytest.fixture
def draft_in_progress(project_dir: Path, valid_draft: str) -> Path:
    """Project with a filled-in draft written (as if 'check' ran and the user edited it)."""
    (project_dir / INPUT_FILE).write_text(valid_draft, encoding="utf-8")
    return project_dir


@pytest.fixture
def memory_stores() -> tuple[DocumentStore, DocumentStore]:
    """(changelog, context) stores backed by memory."""
    return (
        DocumentStore(MemoryBackend(), name=CHANGELOG_FILE),
        DocumentStore(MemoryBackend(), name=CONTEXT_FILE),
    )
