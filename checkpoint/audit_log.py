"""
Operation log for state-changing checkpoint commands.

Each changelog append, commit-hash backfill and session cleanup adds one JSON
object per line to ``.checkpoint/audit.log``. Nothing reads the log to decide
what to do next; a missing or partly corrupted log never blocks a command.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .config import AUDIT_LOG_FILE, CHECKPOINT_DIR


@dataclass
class AuditEntry:
    timestamp: str
    operation: str
    files: list[str] = field(default_factory=list)
    bytes_written: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuditEntry:
        """Build from one decoded line; KeyError/TypeError/ValueError on bad shapes."""
        metadata = data.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise TypeError("metadata must be a mapping")
        return cls(
            timestamp=str(data["timestamp"]),
            operation=str(data["operation"]),
            files=[str(f) for f in data.get("files") or []],
            bytes_written=int(data.get("bytes_written") or 0),
            metadata=metadata,
        )


def get_audit_log_path(project_path: Path) -> Path:
    return project_path / CHECKPOINT_DIR / AUDIT_LOG_FILE


def log_operation(
    project_path: Path,
    operation: str,
    files: list[str] | None = None,
    bytes_written: int = 0,
    metadata: dict[str, Any] | None = None,
) -> AuditEntry:
    """
    Record one operation.

    Args:
        project_path: Project root
        operation: "checkpoint-append", "commit-hash-backfill" or "session-clear"
        files: Project-relative names of the files touched
        bytes_written: Bytes appended or rewritten, if known
        metadata: Commit hash, entry timestamp and similar details

    Returns:
        The entry as written
    """
    entry = AuditEntry(
        timestamp=datetime.now(timezone.utc).isoformat(timespec="seconds"),
        operation=operation,
        files=list(files or []),
        bytes_written=bytes_written,
        metadata=dict(metadata or {}),
    )

    path = get_audit_log_path(project_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(entry.to_dict()) + "\n")
    return entry


def _parse_line(line: str) -> AuditEntry | None:
    try:
        data = json.loads(line)
        if not isinstance(data, dict):
            return None
        return AuditEntry.from_dict(data)
    except (json.JSONDecodeError, KeyError, TypeError, ValueError):
        return None


def read_audit_log(project_path: Path, last_n: int | None = None) -> list[AuditEntry]:
    """Entries oldest first, unreadable lines dropped; ``last_n`` keeps the newest N."""
    path = get_audit_log_path(project_path)
    if not path.exists():
        return []

    text = path.read_text(encoding="utf-8")
    parsed = (_parse_line(raw) for raw in text.splitlines() if raw.strip())
    entries = [entry for entry in parsed if entry is not None]
    return entries[-last_n:] if last_n else entries


def format_audit_entry(entry: AuditEntry) -> str:
    parts = [f"[{entry.timestamp}] {entry.operation}"]
    if entry.files:
        parts.append("  Files: " + ", ".join(entry.files))
    if entry.bytes_written:
        parts.append(f"  Bytes: {entry.bytes_written}")
    parts.extend(f"  {key}: {value}" for key, value in entry.metadata.items())
    return "\n".join(parts)
