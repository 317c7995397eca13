"""
Single-in-flight checkpoint guard.

A checkpoint is "in progress" while its draft (or lock) file exists in the
project root. The check is advisory: two processes racing through
assert_not_in_progress() can both pass before either writes its lock. There
is no staleness window; a leftover draft stays until the user commits or
cleans it.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from .config import DIFF_FILE, INPUT_FILE, LOCK_FILE
from .errors import AlreadyInProgressError, StoreIOError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionPaths:
    draft: Path
    diff: Path
    lock: Path

    @classmethod
    def for_project(cls, project_path: Path) -> "SessionPaths":
        return cls(
            draft=project_path / INPUT_FILE,
            diff=project_path / DIFF_FILE,
            lock=project_path / LOCK_FILE,
        )

    def all(self) -> tuple[Path, Path, Path]:
        return (self.draft, self.diff, self.lock)


class SessionGuard:
    """Presence checks and cleanup for the ephemeral draft artifacts."""

    def __init__(self, project_path: Path):
        self.project_path = project_path
        self.paths = SessionPaths.for_project(project_path)

    def is_in_progress(self) -> bool:
        return self.paths.draft.exists() or self.paths.lock.exists()

    def has_draft(self) -> bool:
        return self.paths.draft.exists()

    def assert_not_in_progress(self) -> None:
        """Raise AlreadyInProgressError if a draft or lock exists."""
        for path in (self.paths.lock, self.paths.draft):
            if path.exists():
                raise AlreadyInProgressError(
                    path,
                    hint="run 'checkpoint commit' to finish it or 'checkpoint clean' to abort",
                )

    def begin(self) -> Path:
        """Write the lock file (pid + timestamp) and return its path."""
        self.assert_not_in_progress()
        stamp = datetime.now().astimezone().isoformat(timespec="seconds")
        try:
            self.paths.lock.write_text(f"pid={os.getpid()}\ntimestamp={stamp}\n", encoding="utf-8")
        except OSError as e:
            raise StoreIOError(f"create lock file: {e}") from e
        logger.debug("lock written at %s", self.paths.lock)
        return self.paths.lock

    def write_draft(self, draft_text: str, diff_text: str) -> None:
        """Write draft and diff artifacts; on failure remove whatever was written."""
        try:
            self.paths.diff.write_text(diff_text, encoding="utf-8")
            self.paths.draft.write_text(draft_text, encoding="utf-8")
        except OSError as e:
            self.clear()
            raise StoreIOError(f"write draft: {e}") from e

    def read_draft(self) -> str:
        try:
            return self.paths.draft.read_text(encoding="utf-8")
        except OSError as e:
            raise StoreIOError(f"read draft: {e}") from e

    def clear(self) -> list[Path]:
        """
        Remove draft, diff and lock files.

        Missing files are not an error. Any other removal failure is raised
        after attempting the remaining files.

        Returns:
            Paths that were actually removed
        """
        removed: list[Path] = []
        failures: list[str] = []
        for path in self.paths.all():
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                failures.append(f"{path.name}: {e}")
                continue
            removed.append(path)

        if removed:
            logger.info("cleared session artifacts: %s", ", ".join(p.name for p in removed))
        if failures:
            raise StoreIOError(f"failed to remove {'; '.join(failures)}")
        return removed
