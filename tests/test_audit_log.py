"""Tests for the JSON-lines operation log."""

from __future__ import annotations

import json
from pathlib import Path

from checkpoint.audit_log import (
    AuditEntry,
    format_audit_entry,
    get_audit_log_path,
    log_operation,
    read_audit_log,
)


def test_log_operation_appends_json_lines(project_dir: Path) -> None:
    log_operation(project_dir, "checkpoint-append", files=[".checkpoint-changelog.yaml"], bytes_written=120)
    log_operation(project_dir, "session-clear")

    lines = get_audit_log_path(project_dir).read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert first["operation"] == "checkpoint-append"
    assert first["files"] == [".checkpoint-changelog.yaml"]
    assert first["bytes_written"] == 120


def test_read_missing_log_is_empty(project_dir: Path) -> None:
    assert read_audit_log(project_dir) == []


def test_read_skips_malformed_lines_and_honours_last_n(project_dir: Path) -> None:
    for op in ("a", "b", "c"):
        log_operation(project_dir, op)
    with get_audit_log_path(project_dir).open("a", encoding="utf-8") as f:
        f.write("not json\n")
        f.write('{"timestamp": "t"}\n')
        f.write("\n")

    assert [e.operation for e in read_audit_log(project_dir)] == ["a", "b", "c"]
    assert [e.operation for e in read_audit_log(project_dir, last_n=2)] == ["b", "c"]


def test_format_audit_entry() -> None:
    entry = AuditEntry(
        timestamp="2025-01-02T10:00:00+00:00",
        operation="commit-hash-backfill",
        files=[".checkpoint-changelog.yaml"],
        bytes_written=40,
        metadata={"commit_hash": "abc123"},
    )

    assert format_audit_entry(entry) == (
        "[2025-01-02T10:00:00+00:00] commit-hash-backfill\n"
        "  Files: .checkpoint-changelog.yaml\n"
        "  Bytes: 40\n"
        "  commit_hash: abc123"
    )
    assert AuditEntry.from_dict(entry.to_dict()) == entry
