"""
Changelog writer: the append-then-backfill lifecycle of one checkpoint.

Cycle: draft prepared -> validated (finalize) -> appended -> commit hash
backfilled. Appending and backfilling are separate filesystem operations
with the git commit in between, so a crash can leave an appended entry with
an empty commit_hash. recover() classifies that state from what is on disk;
nothing here repairs it automatically.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from .config import Settings
from .draft import parse_draft, render_status
from .errors import NotFoundError, StoreIOError, ValidationError
from .model.entry import (
    CheckpointEntry,
    ContextEntry,
    MetaDocument,
    decode_changelog_entry,
    decode_context_entry,
    decode_meta_document,
    is_meta_document,
    render_changelog_document,
    render_context_document,
    render_meta_document,
)
from .model.validation import is_placeholder, validate_draft
from .store import DocumentStore, FileBackend, frame_document
from .util import new_ulid, path_hash

logger = logging.getLogger(__name__)


class RecoveryAction(str, Enum):
    """What the next invocation should do about leftover state.

    - CLEAN: no draft, nothing pending
    - COMMIT: a draft exists and has not been appended yet
    - BACKFILL: the draft's entry is already appended but has no commit hash
    - ORPHANED: an appended entry lacks a commit hash and no draft explains it
    - CLEANUP: the draft's entry is appended and hashed; only the draft is left
    """
    CLEAN = "clean"
    COMMIT = "commit"
    BACKFILL = "backfill"
    ORPHANED = "orphaned"
    CLEANUP = "cleanup"


@dataclass
class RecoveryState:
    action: RecoveryAction
    pending: CheckpointEntry | None = None

    @property
    def needs_backfill(self) -> bool:
        return self.action in (RecoveryAction.BACKFILL, RecoveryAction.ORPHANED)


class ChangelogWriter:
    """Sole writer of the changelog and context stores."""

    def __init__(
        self,
        changelog: DocumentStore,
        context: DocumentStore | None = None,
        *,
        settings: Settings | None = None,
    ):
        self.changelog = changelog
        self.context = context
        self.settings = settings or Settings()

    # --- Meta document ---

    def initialize(self, project_path: Path, tool_version: str) -> MetaDocument | None:
        """
        Ensure the changelog starts with a meta document.

        Creates the store with only a meta document when absent, prepends one
        to an existing store that has none, and does nothing otherwise.

        Returns:
            The meta document written, or None if one already existed
        """
        docs = self.changelog.documents()
        if docs and is_meta_document(docs[0]):
            return None

        meta = MetaDocument(
            project_id=new_ulid(),
            path_hash=path_hash(project_path),
            created_at=datetime.now().astimezone().isoformat(timespec="seconds"),
            tool_version=tool_version,
        )
        rendered = render_meta_document(meta)
        if not docs:
            self.changelog.append(rendered)
        else:
            existing = self.changelog.read()
            self.changelog.backend.write(rendered + frame_document(existing))
            logger.warning("%s had no meta document; prepended one", self.changelog.name)
        return meta

    def read_meta(self) -> MetaDocument | None:
        docs = self.changelog.documents()
        return decode_meta_document(docs[0]) if docs else None

    # --- Lifecycle ---

    def finalize(self, draft_text: str, *, now: datetime | None = None) -> CheckpointEntry:
        """
        Turn draft text into an entry ready to append.

        Raises:
            ValidationError: Naming every missing or invalid field
        """
        entry = parse_draft(draft_text)
        issues = validate_draft(entry, max_summary_length=self.settings.max_summary_length)
        if issues:
            raise ValidationError(issues, hint="edit the draft to fix the issues above, then retry")

        if not entry.timestamp.strip():
            entry.timestamp = (now or datetime.now().astimezone()).isoformat(timespec="seconds")
        entry.commit_hash = ""

        for item in [*entry.changes, *entry.next_steps]:
            if is_placeholder(item.details):
                item.details = ""
            if is_placeholder(item.scope):
                item.scope = ""
        entry.context = entry.context.without_placeholders()
        return entry

    def append(self, entry: CheckpointEntry) -> int:
        """Append the entry's changelog document. Returns characters written."""
        try:
            return self.changelog.append(render_changelog_document(entry))
        except OSError as e:
            raise StoreIOError(f"append to {self.changelog.name}: {e}") from e

    def append_context(self, entry: CheckpointEntry) -> ContextEntry | None:
        """Append the entry's context document (no-op without a context store)."""
        if self.context is None:
            return None
        ctx_entry = ContextEntry(timestamp=entry.timestamp, context=entry.context, commit_hash=entry.commit_hash)
        try:
            self.context.append(render_context_document(ctx_entry))
        except OSError as e:
            raise StoreIOError(f"append to {self.context.name}: {e}") from e
        return ctx_entry

    def backfill_commit_hash(self, commit_hash: str) -> CheckpointEntry:
        """
        Record the commit id on the most recent changelog entry.

        The matching context document (same timestamp, empty hash) is patched
        too. Earlier documents are never touched.

        Raises:
            NotFoundError: If the changelog is empty or its last document is
                not a checkpoint entry
        """
        last = self.changelog.last_document()
        if last is None:
            raise NotFoundError(f"{self.changelog.name} has no entries to backfill")
        entry, ok = decode_changelog_entry(last)
        if not ok or entry is None:
            raise NotFoundError(
                f"last document in {self.changelog.name} is not a checkpoint entry",
                hint="refusing to modify an unrelated document",
            )

        self.changelog.backfill_last_field("commit_hash", commit_hash)
        entry.commit_hash = commit_hash

        if self.context is not None:
            last_ctx = self.context.last_document()
            if last_ctx is not None:
                ctx_entry, ctx_ok = decode_context_entry(last_ctx)
                same_entry = ctx_ok and ctx_entry is not None and ctx_entry.timestamp == entry.timestamp
                if same_entry and not ctx_entry.commit_hash:
                    self.context.backfill_last_field("commit_hash", commit_hash)

        logger.info("backfilled commit %s into entry %s", commit_hash, entry.timestamp)
        return entry

    # --- Recovery ---

    def last_entry(self) -> CheckpointEntry | None:
        """The tail checkpoint entry, or None if the tail is missing, meta or unreadable."""
        last = self.changelog.last_document()
        if last is None:
            return None
        entry, ok = decode_changelog_entry(last)
        return entry if ok else None

    def pending_backfill(self) -> CheckpointEntry | None:
        """The tail entry if it was appended but never received a commit hash."""
        entry = self.last_entry()
        if entry is not None and not entry.commit_hash.strip():
            return entry
        return None

    def recover(self, draft_text: str | None) -> RecoveryState:
        """Classify leftover state from a previous, possibly interrupted, cycle.

        ``pending`` carries the tail entry for every action except CLEAN and
        COMMIT.
        """
        tail = self.last_entry()
        unhashed = tail is not None and not tail.commit_hash.strip()

        if draft_text is None:
            if unhashed:
                return RecoveryState(RecoveryAction.ORPHANED, tail)
            return RecoveryState(RecoveryAction.CLEAN)

        try:
            draft = parse_draft(draft_text)
        except ValidationError:
            draft = None
        same_entry = bool(tail and draft and draft.timestamp and draft.timestamp == tail.timestamp)

        if unhashed:
            if same_entry:
                return RecoveryState(RecoveryAction.BACKFILL, tail)
            return RecoveryState(RecoveryAction.ORPHANED, tail)
        if same_entry:
            return RecoveryState(RecoveryAction.CLEANUP, tail)
        return RecoveryState(RecoveryAction.COMMIT)


def write_status(
    path: Path,
    entry: CheckpointEntry,
    commit_message: str,
    meta: MetaDocument | None = None,
) -> None:
    """Overwrite the status file with the outcome of the last commit."""
    content = render_status(
        entry,
        commit_message,
        project_id=meta.project_id if meta else "",
        path_hash=meta.path_hash if meta else "",
    )
    FileBackend(path).write(content)
