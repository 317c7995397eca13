"""
Tests for the changelog writer lifecycle.

Draft -> finalize -> append -> backfill, plus the crash windows between
append and backfill that recover() has to classify.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from checkpoint.changelog import ChangelogWriter, RecoveryAction, write_status
from checkpoint.config import Settings
from checkpoint.draft import read_status_next_steps
from checkpoint.errors import NotFoundError, ValidationError
from checkpoint.model import decode_changelog_entry, decode_context_entry, is_meta_document
from checkpoint.store import DocumentStore, MemoryBackend


@pytest.fixture
def writer(memory_stores) -> ChangelogWriter:
    changelog, context = memory_stores
    return ChangelogWriter(changelog, context)


def _commit(writer: ChangelogWriter, draft: str, commit_hash: str = "c0ffee00c0ffee00"):
    entry = writer.finalize(draft)
    writer.append(entry)
    writer.append_context(entry)
    return writer.backfill_commit_hash(commit_hash)


# -----------------------------------------------------------------------------
# Meta document
# -----------------------------------------------------------------------------


def test_initialize_creates_meta_document_once(writer: ChangelogWriter, tmp_path: Path) -> None:
    meta = writer.initialize(tmp_path, "0.4.0")

    assert meta is not None
    assert len(meta.project_id) == 26
    assert len(meta.path_hash) == 16
    assert writer.initialize(tmp_path, "0.4.0") is None
    assert writer.changelog.count() == 1
    assert writer.read_meta() == meta


def test_initialize_prepends_meta_to_legacy_store(tmp_path: Path) -> None:
    legacy = "---\nschema_version: '1'\ntimestamp: t1\ncommit_hash: abc\nchanges: []\n"
    changelog = DocumentStore(MemoryBackend(legacy))
    writer = ChangelogWriter(changelog)

    writer.initialize(tmp_path, "0.4.0")

    docs = changelog.documents()
    assert is_meta_document(docs[0])
    assert changelog.read().endswith(legacy)
    assert len(docs) == 2


def test_initialize_frames_legacy_store_without_leading_delimiter(tmp_path: Path) -> None:
    legacy = "schema_version: '1'\ntimestamp: t1\ncommit_hash: abc\nchanges: []\n"
    changelog = DocumentStore(MemoryBackend(legacy))

    ChangelogWriter(changelog).initialize(tmp_path, "0.4.0")

    docs = changelog.documents()
    assert len(docs) == 2
    assert is_meta_document(docs[0])
    entry, ok = decode_changelog_entry(docs[1])
    assert ok
    assert entry.timestamp == "t1"


# -----------------------------------------------------------------------------
# Finalize / append
# -----------------------------------------------------------------------------


def test_finalize_reports_all_issues(writer: ChangelogWriter) -> None:
    draft = "schema_version: ''\nchanges:\n  - summary: ''\n    change_type: bugfix\n"

    with pytest.raises(ValidationError) as exc_info:
        writer.finalize(draft)

    fields = [i.field for i in exc_info.value.issues]
    assert fields == ["schema_version", "changes[0].summary", "changes[0].change_type"]
    assert exc_info.value.hint


def test_finalize_fills_timestamp_and_strips_placeholders(writer: ChangelogWriter, valid_draft: str) -> None:
    draft = valid_draft.replace('timestamp: "2025-01-02T10:00:00+00:00"', 'timestamp: ""')
    now = datetime(2025, 3, 4, 5, 6, 7, tzinfo=timezone.utc)

    entry = writer.finalize(draft, now=now)

    assert entry.timestamp == "2025-03-04T05:06:07+00:00"
    assert entry.commit_hash == ""
    assert entry.context.established_patterns == []
    assert entry.context.decisions_made[0]["decision"] == "Use exponential backoff"


def test_finalize_respects_configured_summary_length(memory_stores, valid_draft: str) -> None:
    changelog, context = memory_stores
    writer = ChangelogWriter(changelog, context, settings=Settings(max_summary_length=10))

    with pytest.raises(ValidationError) as exc_info:
        writer.finalize(valid_draft)
    assert exc_info.value.issues[0].kind == "too_long"


def test_append_only_growth(writer: ChangelogWriter, valid_draft: str, tmp_path: Path) -> None:
    writer.initialize(tmp_path, "0.4.0")
    snapshots = [writer.changelog.read()]

    for i in range(3):
        draft = valid_draft.replace("2025-01-02T10:00:00", f"2025-01-0{i + 3}T10:00:00")
        _commit(writer, draft, commit_hash=f"{i}" * 16)
        snapshots.append(writer.changelog.read())

    for before, after in zip(snapshots, snapshots[1:]):
        assert after.startswith(before)
    assert writer.changelog.count() == 4


def test_appended_entry_omits_draft_only_fields(writer: ChangelogWriter, valid_draft: str) -> None:
    writer.append(writer.finalize(valid_draft))
    tail = writer.changelog.last_document()
    assert "git_status" not in tail
    assert "problem_statement" not in tail


# -----------------------------------------------------------------------------
# Backfill
# -----------------------------------------------------------------------------


def test_backfill_sets_commit_hash_on_both_stores(writer: ChangelogWriter, valid_draft: str) -> None:
    entry = _commit(writer, valid_draft, "1234567890abcdef")

    assert entry.commit_hash == "1234567890abcdef"
    changelog_entry, _ = decode_changelog_entry(writer.changelog.last_document())
    context_entry, _ = decode_context_entry(writer.context.last_document())
    assert changelog_entry.commit_hash == "1234567890abcdef"
    assert context_entry.commit_hash == "1234567890abcdef"
    assert writer.pending_backfill() is None


def test_backfill_leaves_earlier_entries_untouched(writer: ChangelogWriter, valid_draft: str) -> None:
    _commit(writer, valid_draft, "aaaaaaaaaaaaaaaa")
    first = writer.changelog.read()

    second = valid_draft.replace("2025-01-02", "2025-01-05")
    writer.append(writer.finalize(second))
    writer.backfill_commit_hash("bbbbbbbbbbbbbbbb")

    assert writer.changelog.read().startswith(first)
    hashes = [decode_changelog_entry(d)[0].commit_hash for d in writer.changelog.documents()]
    assert hashes == ["aaaaaaaaaaaaaaaa", "bbbbbbbbbbbbbbbb"]


def test_backfill_skips_context_with_different_timestamp(writer: ChangelogWriter, valid_draft: str) -> None:
    entry = writer.finalize(valid_draft)
    writer.append_context(entry)
    later = writer.finalize(valid_draft.replace("2025-01-02", "2025-02-02"))
    writer.append(later)

    writer.backfill_commit_hash("abcdabcdabcdabcd")

    context_entry, _ = decode_context_entry(writer.context.last_document())
    assert context_entry.commit_hash == ""


def test_backfill_on_empty_store_raises(writer: ChangelogWriter) -> None:
    with pytest.raises(NotFoundError):
        writer.backfill_commit_hash("abc")


def test_backfill_refuses_meta_tail(writer: ChangelogWriter, tmp_path: Path) -> None:
    writer.initialize(tmp_path, "0.4.0")
    before = writer.changelog.read()

    with pytest.raises(NotFoundError):
        writer.backfill_commit_hash("abc")
    assert writer.changelog.read() == before


# -----------------------------------------------------------------------------
# Recovery
# -----------------------------------------------------------------------------


def test_recover_clean_state(writer: ChangelogWriter) -> None:
    assert writer.recover(None).action == RecoveryAction.CLEAN


def test_recover_draft_not_yet_appended(writer: ChangelogWriter, valid_draft: str) -> None:
    state = writer.recover(valid_draft)
    assert state.action == RecoveryAction.COMMIT
    assert not state.needs_backfill


def test_recover_detects_crash_between_append_and_backfill(writer: ChangelogWriter, valid_draft: str) -> None:
    writer.append(writer.finalize(valid_draft))

    state = writer.recover(valid_draft)

    assert state.action == RecoveryAction.BACKFILL
    assert state.pending.timestamp == "2025-01-02T10:00:00+00:00"
    assert state.pending.commit_hash == ""


def test_recover_flags_orphaned_entry(writer: ChangelogWriter, valid_draft: str) -> None:
    writer.append(writer.finalize(valid_draft))

    assert writer.recover(None).action == RecoveryAction.ORPHANED
    other_draft = valid_draft.replace("2025-01-02", "2025-06-06")
    assert writer.recover(other_draft).action == RecoveryAction.ORPHANED


def test_recover_detects_crash_after_backfill(writer: ChangelogWriter, valid_draft: str) -> None:
    _commit(writer, valid_draft, "a" * 40)

    state = writer.recover(valid_draft)

    assert state.action == RecoveryAction.CLEANUP
    assert state.pending.commit_hash == "a" * 40
    assert not state.needs_backfill
    later_draft = valid_draft.replace("2025-01-02", "2025-02-02")
    assert writer.recover(later_draft).action == RecoveryAction.COMMIT


def test_write_status_overwrites(tmp_path: Path, writer: ChangelogWriter, valid_draft: str) -> None:
    entry = _commit(writer, valid_draft)
    status_path = tmp_path / "status.yaml"
    status_path.write_text("stale: true\n", encoding="utf-8")

    write_status(status_path, entry, "Checkpoint: feature (upload) - Add retry budget to upload client")

    content = status_path.read_text(encoding="utf-8")
    assert "stale" not in content
    assert [s.summary for s in read_status_next_steps(content)] == [
        "Expose retry budget in config",
        "Document retry behaviour",
    ]
