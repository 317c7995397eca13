"""
Typed errors raised by the checkpoint core.

Component operations raise these; only the command layer formats them for
the user and picks an exit code. Per-document decode failures in a store are
not errors at all: they are counted and skipped.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .model.validation import ValidationIssue


class CheckpointError(Exception):
    """Base class for all checkpoint errors."""

    def __init__(self, message: str, *, hint: str | None = None):
        super().__init__(message)
        self.hint = hint


class ValidationError(CheckpointError):
    """A draft is missing required fields or carries out-of-enum values.

    Always recoverable by editing the draft; never mutates a store.
    """

    def __init__(self, issues: list[ValidationIssue], *, hint: str | None = None):
        self.issues = list(issues)
        lines = "; ".join(str(issue) for issue in self.issues) or "invalid draft"
        super().__init__(f"validation failed: {lines}", hint=hint)


class AlreadyInProgressError(CheckpointError):
    """A draft or lock artifact already exists for this project."""

    def __init__(self, path: Path, *, hint: str | None = None):
        self.path = path
        super().__init__(f"checkpoint already in progress ({path.name} exists)", hint=hint)


class NotFoundError(CheckpointError):
    """An expected store, draft or tail document does not exist."""


class StoreIOError(CheckpointError):
    """A filesystem or external-process call failed.

    The underlying exception is chained as ``__cause__``.
    """
