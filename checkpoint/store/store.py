"""
Document store over a pluggable backend.

Storage format: UTF-8 YAML, documents separated by ``---`` lines.
The store knows nothing about checkpoint semantics: callers pass decoders
that turn one document body into a typed value (or report it invalid).
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Generic, TypeVar

from ..errors import NotFoundError
from .backend import FileBackend, StoreBackend
from .documents import _DELIMITER_LINE, frame_document, split_documents

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class DecodeResult(Generic[T]):
    """Decoded documents plus the number that failed to decode."""

    items: list[T] = field(default_factory=list)
    skipped: int = 0


class DocumentStore:
    """Append-only sequence of independently parsable YAML documents."""

    def __init__(self, backend: StoreBackend, name: str = "store"):
        self.backend = backend
        self.name = name

    @classmethod
    def at(cls, path: Path) -> "DocumentStore":
        """Store backed by a file on disk."""
        return cls(FileBackend(path), name=path.name)

    def __repr__(self) -> str:
        return f"DocumentStore({self.name!r})"

    def exists(self) -> bool:
        return self.backend.exists()

    def read(self) -> str:
        return self.backend.read()

    def documents(self) -> list[str]:
        """All document bodies, oldest first."""
        return split_documents(self.backend.read())

    def count(self) -> int:
        return len(self.documents())

    def last_document(self) -> str | None:
        docs = self.documents()
        return docs[-1] if docs else None

    def decode(
        self,
        decoder: Callable[[str], tuple[T | None, bool]],
        *,
        limit: int | None = None,
        newest_first: bool = False,
        ignore: Callable[[str], bool] | None = None,
    ) -> DecodeResult[T]:
        """
        Decode documents one at a time.

        Args:
            decoder: Returns (value, ok) for one document body
            limit: Stop after this many valid documents
            newest_first: Scan from the end of the store backwards
            ignore: Predicate for documents to pass over silently (not counted as skipped)

        Returns:
            DecodeResult with valid items in scan order and a skipped count
        """
        docs = self.documents()
        if newest_first:
            docs.reverse()

        result: DecodeResult[T] = DecodeResult()
        for doc in docs:
            if limit is not None and len(result.items) >= limit:
                break
            if ignore is not None and ignore(doc):
                continue
            value, ok = decoder(doc)
            if ok and value is not None:
                result.items.append(value)
            else:
                result.skipped += 1

        if result.skipped:
            logger.debug("%s: skipped %d undecodable document(s)", self.name, result.skipped)
        return result

    def append(self, rendered: str) -> int:
        """
        Append one rendered document.

        Earlier bytes are never touched. A newline is written first when the
        store does not already end with one, so the delimiter always starts
        its own line.

        Returns:
            Number of characters appended
        """
        if not rendered.strip():
            raise ValueError("empty document")

        text = frame_document(rendered)
        existing = self.backend.read()
        if existing and not existing.endswith("\n"):
            text = "\n" + text

        self.backend.append(text)
        logger.info("%s: appended document (%d chars)", self.name, len(text))
        return len(text)

    def backfill_last_field(self, field_name: str, value: str) -> int:
        """
        Set a top-level scalar field in the final document only.

        The field line is replaced in place, or added at the end of the final
        document when absent. Every byte before the final document is kept.

        Returns:
            Length of the rewritten tail segment

        Raises:
            NotFoundError: If the store holds no documents
        """
        content = self.backend.read()
        span = _tail_span(content)
        if span is None:
            raise NotFoundError(f"{self.name} has no documents")

        start, end = span
        segment = content[start:end]
        patched = _set_top_level_field(segment, field_name, value)
        self.backend.write(content[:start] + patched + content[end:])
        logger.info("%s: set %s on last document", self.name, field_name)
        return len(patched)


def _tail_span(content: str) -> tuple[int, int] | None:
    """(start, end) offsets of the last non-empty document body."""
    matches = list(_DELIMITER_LINE.finditer(content))
    bounds = []
    prev = 0
    for m in matches:
        bounds.append((prev, m.start()))
        prev = m.end()
    bounds.append((prev, len(content)))

    for start, end in reversed(bounds):
        if content[start:end].strip():
            return start, end
    return None


def _top_level_indent(segment: str) -> str:
    for line in segment.split("\n"):
        stripped = line.strip()
        if stripped and not stripped.startswith("#"):
            return line[: len(line) - len(line.lstrip(" "))]
    return ""


def _set_top_level_field(segment: str, field_name: str, value: str) -> str:
    indent = _top_level_indent(segment)
    line = f"{indent}{field_name}: {json.dumps(value)}"
    pattern = re.compile(rf"^{re.escape(indent)}{re.escape(field_name)}:[^\n]*$", re.MULTILINE)
    patched, n = pattern.subn(lambda _: line, segment, count=1)
    if n:
        return patched

    body_len = len(segment.rstrip())
    return segment[:body_len] + "\n" + line + segment[body_len:]
