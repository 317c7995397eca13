"""
Version control collaborator.

The core only needs status, diff, stage and commit. GitRepository shells out
to the ``git`` binary; tests substitute any object with the same methods.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Protocol

from .errors import StoreIOError
from .model.entry import FileChange

logger = logging.getLogger(__name__)

_NO_HEAD_MARKERS = (
    "unknown revision or path not in the working tree",
    "ambiguous argument 'HEAD'",
    "does not have any commits yet",
)


class VersionControl(Protocol):
    """What the checkpoint commands need from a VCS."""

    def is_repository(self) -> bool: ...

    def status(self) -> str: ...

    def diff(self) -> str: ...

    def numstat(self) -> str: ...

    def stage_all(self, exclude: tuple[str, ...] = ()) -> None:
        """Stage every change except the given project-relative paths."""
        ...

    def stage(self, relpath: str) -> None: ...

    def commit(self, message: str) -> str:
        """Commit staged changes and return the new commit id."""
        ...

    def head(self) -> tuple[str, str] | None:
        """(commit id, subject) of HEAD, or None before the first commit."""
        ...


class GitRepository:
    """VersionControl backed by the git CLI."""

    def __init__(self, path: Path, *, timeout: float = 60.0):
        self.path = path
        self.timeout = timeout

    def _run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
        cmd = ["git", *args]
        logger.debug("running %s in %s", " ".join(cmd), self.path)
        try:
            result = subprocess.run(
                cmd,
                cwd=self.path,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise StoreIOError(f"git {args[0]}: {e}", hint="ensure git is installed and on PATH") from e
        if check and result.returncode != 0:
            output = (result.stderr or result.stdout).strip()
            raise StoreIOError(f"git {' '.join(args)} failed: {output}")
        return result

    def is_repository(self) -> bool:
        try:
            result = self._run("rev-parse", "--is-inside-work-tree", check=False)
        except StoreIOError:
            return False
        return result.returncode == 0 and result.stdout.strip() == "true"

    def status(self) -> str:
        return self._run("status", "--porcelain=v1").stdout

    def diff(self) -> str:
        """Unstaged and staged diffs under headings; tolerant of a repository without HEAD."""
        sections = []
        unstaged = self._run("diff", check=False)
        if unstaged.stdout.strip():
            sections.append("## Unstaged changes (git diff)\n" + unstaged.stdout)
        staged = self._run("diff", "--staged", check=False)
        if staged.stdout.strip():
            sections.append("## Staged changes (git diff --staged)\n" + staged.stdout)
        return "\n".join(sections)

    def numstat(self) -> str:
        result = self._run("diff", "--numstat", "HEAD", check=False)
        if result.returncode != 0:
            if any(marker in result.stderr for marker in _NO_HEAD_MARKERS):
                return self._run("diff", "--numstat", "--staged", check=False).stdout
            raise StoreIOError(f"git diff --numstat failed: {result.stderr.strip()}")
        return result.stdout

    def stage_all(self, exclude: tuple[str, ...] = ()) -> None:
        self._run("add", "-A", "--", ".", *(f":(exclude){path}" for path in exclude))

    def stage(self, relpath: str) -> None:
        self._run("add", "--", relpath)

    def commit(self, message: str) -> str:
        self._run("commit", "-m", message)
        return self._run("rev-parse", "HEAD").stdout.strip()

    def head(self) -> tuple[str, str] | None:
        result = self._run("log", "-1", "--format=%H%n%s", check=False)
        if result.returncode != 0:
            return None
        lines = result.stdout.strip().split("\n", 1)
        if not lines[0]:
            return None
        return lines[0], lines[1] if len(lines) > 1 else ""


def parse_numstat(numstat: str) -> list[FileChange]:
    """Parse ``git diff --numstat`` output. Binary files ("-") count as 0."""
    files = []
    for line in numstat.strip().split("\n"):
        parts = line.split("\t") if "\t" in line else line.split()
        if len(parts) < 3:
            continue
        additions = int(parts[0]) if parts[0].isdigit() else 0
        deletions = int(parts[1]) if parts[1].isdigit() else 0
        path = "\t".join(parts[2:]) if "\t" in line else " ".join(parts[2:])
        files.append(FileChange(path=path, additions=additions, deletions=deletions))
    return files
