"""
Storage backends for document stores.

DocumentStore never touches the filesystem directly; it talks to a backend.
FileBackend is used by the CLI, MemoryBackend by tests and dry runs.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Protocol

from ..errors import StoreIOError

logger = logging.getLogger(__name__)


class StoreBackend(Protocol):
    """Protocol for the raw text behind a document store."""

    def exists(self) -> bool:
        """True if the store has been created."""
        ...

    def read(self) -> str:
        """Return the full store text ("" when it does not exist)."""
        ...

    def append(self, text: str) -> None:
        """Append text at the end of the store, creating it if absent."""
        ...

    def write(self, text: str) -> None:
        """Replace the full store text."""
        ...


class FileBackend:
    """
    UTF-8 file on disk.

    Appends verify that the file did not grow between the size check and
    the write, then fsync. Full rewrites go through a temp file and rename.
    """

    def __init__(self, path: Path):
        self.path = path

    def __repr__(self) -> str:
        return f"FileBackend({str(self.path)!r})"

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> str:
        if not self.path.exists():
            return ""
        try:
            return self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StoreIOError(f"read {self.path.name}: {e}") from e

    def append(self, text: str) -> None:
        data = text.encode("utf-8")
        try:
            original_size = self.path.stat().st_size if self.path.exists() else 0
            with self.path.open("ab") as f:
                pos = f.seek(0, os.SEEK_END)
                if pos != original_size:
                    raise StoreIOError(
                        f"{self.path.name} changed during append (expected {original_size} bytes, got {pos})"
                    )
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            raise StoreIOError(
                f"append {self.path.name}: {e}",
                hint=f"check write permissions for {self.path}",
            ) from e
        logger.debug("appended %d bytes to %s", len(data), self.path)

    def write(self, text: str) -> None:
        temp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            temp_path.write_text(text, encoding="utf-8")
            temp_path.replace(self.path)
        except OSError as e:
            raise StoreIOError(f"rewrite {self.path.name}: {e}") from e
        logger.debug("rewrote %s (%d chars)", self.path, len(text))


class MemoryBackend:
    """In-memory buffer implementing the same contract as FileBackend."""

    def __init__(self, initial: str | None = None):
        self._text = initial
        self.writes = 0

    def exists(self) -> bool:
        return self._text is not None

    def read(self) -> str:
        return self._text or ""

    def append(self, text: str) -> None:
        self._text = (self._text or "") + text

    def write(self, text: str) -> None:
        self._text = text
        self.writes += 1
