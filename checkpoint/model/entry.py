"""
Checkpoint and context document types.

A changelog document records what changed in one commit (changes[],
next_steps[]); a context document records why (decisions, patterns,
failed approaches). Both decode loosely: unknown keys are ignored, missing
keys default to empty, and an empty timestamp marks the document invalid.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

import yaml

from ..config import SCHEMA_VERSION
from .context_items import extract_decision, extract_failed, extract_insight, extract_pattern
from .yamlio import as_list, as_text, dump_document, load_document

_META_MARKER = re.compile(r"^\s*document_type:\s*[\"']?meta[\"']?\s*$", re.MULTILINE)


@dataclass
class Change:
    """One logical change inside a checkpoint."""

    summary: str
    change_type: str = ""
    details: str = ""
    scope: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"summary": self.summary}
        if self.details:
            data["details"] = self.details
        data["change_type"] = self.change_type
        if self.scope:
            data["scope"] = self.scope
        return data

    @classmethod
    def from_raw(cls, raw: Any) -> "Change":
        if isinstance(raw, dict):
            return cls(
                summary=as_text(raw.get("summary")),
                change_type=as_text(raw.get("change_type")),
                details=as_text(raw.get("details")),
                scope=as_text(raw.get("scope")),
            )
        return cls(summary=as_text(raw))


@dataclass
class NextStep:
    """A planned follow-up; priority is low|med|medium|high or empty."""

    summary: str
    details: str = ""
    priority: str = ""
    scope: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"summary": self.summary}
        if self.details:
            data["details"] = self.details
        if self.priority:
            data["priority"] = self.priority
        if self.scope:
            data["scope"] = self.scope
        return data

    @classmethod
    def from_raw(cls, raw: Any) -> "NextStep":
        if isinstance(raw, dict):
            return cls(
                summary=as_text(raw.get("summary")),
                details=as_text(raw.get("details")),
                priority=as_text(raw.get("priority")),
                scope=as_text(raw.get("scope")),
            )
        return cls(summary=as_text(raw))


@dataclass
class FileChange:
    """Per-file line counts from ``git diff --numstat``."""

    path: str
    additions: int = 0
    deletions: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "additions": self.additions, "deletions": self.deletions}

    @classmethod
    def from_raw(cls, raw: Any) -> "FileChange | None":
        if not isinstance(raw, dict) or not as_text(raw.get("path")):
            return None
        return cls(
            path=as_text(raw.get("path")),
            additions=_as_int(raw.get("additions")),
            deletions=_as_int(raw.get("deletions")),
        )


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    try:
        return int(str(value))
    except (TypeError, ValueError):
        return 0


CONTEXT_LIST_FIELDS = (
    "key_insights",
    "decisions_made",
    "established_patterns",
    "failed_approaches",
    "conversation_context",
)

_PRIMARY_EXTRACTORS = {
    "key_insights": extract_insight,
    "decisions_made": extract_decision,
    "established_patterns": extract_pattern,
    "failed_approaches": extract_failed,
}


@dataclass
class CheckpointContext:
    """Reasoning captured alongside a checkpoint.

    List elements are kept as the raw YAML values (str or mapping); read
    them through the extractors in context_items.
    """

    problem_statement: str = ""
    key_insights: list[Any] = field(default_factory=list)
    decisions_made: list[Any] = field(default_factory=list)
    established_patterns: list[Any] = field(default_factory=list)
    failed_approaches: list[Any] = field(default_factory=list)
    conversation_context: list[Any] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"problem_statement": self.problem_statement}
        for name in CONTEXT_LIST_FIELDS:
            items = getattr(self, name)
            if items:
                data[name] = list(items)
        return data

    @classmethod
    def from_raw(cls, raw: Any) -> "CheckpointContext":
        if not isinstance(raw, dict):
            return cls()
        return cls(
            problem_statement=as_text(raw.get("problem_statement")),
            **{name: as_list(raw.get(name)) for name in CONTEXT_LIST_FIELDS},
        )

    def without_placeholders(self) -> "CheckpointContext":
        """Copy with template placeholder text removed."""
        from .validation import is_placeholder

        cleaned: dict[str, list[Any]] = {}
        for name in CONTEXT_LIST_FIELDS:
            extractor = _PRIMARY_EXTRACTORS.get(name)
            kept = []
            for item in getattr(self, name):
                if extractor is not None:
                    primary, _ = extractor(item)
                elif isinstance(item, dict):
                    primary = as_text(item.get("exchange"))
                else:
                    primary = as_text(item)
                if primary.strip() and not is_placeholder(primary):
                    kept.append(_strip_placeholder_values(item))
            cleaned[name] = kept

        statement = "" if is_placeholder(self.problem_statement) else self.problem_statement
        return CheckpointContext(problem_statement=statement, **cleaned)


def _strip_placeholder_values(item: Any) -> Any:
    from .validation import is_placeholder

    if not isinstance(item, dict):
        return item
    result = {}
    for key, value in item.items():
        if isinstance(value, str) and is_placeholder(value):
            continue
        if isinstance(value, list):
            value = [v for v in value if not (isinstance(v, str) and is_placeholder(v))]
            if not value:
                continue
        result[key] = value
    return result


@dataclass
class CheckpointEntry:
    """One changelog document (also the parsed form of a draft)."""

    schema_version: str = SCHEMA_VERSION
    timestamp: str = ""
    commit_hash: str = ""
    changes: list[Change] = field(default_factory=list)
    next_steps: list[NextStep] = field(default_factory=list)
    files_changed: list[FileChange] = field(default_factory=list)
    context: CheckpointContext = field(default_factory=CheckpointContext)
    # Draft-only fields; never persisted to the changelog
    git_status: str = ""
    diff_file: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CheckpointEntry":
        return cls(
            schema_version=as_text(data.get("schema_version")),
            timestamp=as_text(data.get("timestamp")),
            commit_hash=as_text(data.get("commit_hash")),
            changes=[Change.from_raw(c) for c in as_list(data.get("changes"))],
            next_steps=[NextStep.from_raw(n) for n in as_list(data.get("next_steps"))],
            files_changed=[
                fc for fc in (FileChange.from_raw(f) for f in as_list(data.get("files_changed"))) if fc
            ],
            context=CheckpointContext.from_raw(data.get("context")),
            git_status=as_text(data.get("git_status")),
            diff_file=as_text(data.get("diff_file")),
        )

    def to_changelog_dict(self) -> dict[str, Any]:
        """Persisted fields only (git_status/diff_file/context are dropped)."""
        data: dict[str, Any] = {
            "schema_version": self.schema_version,
            "timestamp": self.timestamp,
            "commit_hash": self.commit_hash,
        }
        if self.files_changed:
            data["files_changed"] = [f.to_dict() for f in self.files_changed]
        data["changes"] = [c.to_dict() for c in self.changes]
        data["next_steps"] = [n.to_dict() for n in self.next_steps]
        return data


@dataclass
class ContextEntry:
    """One document of the context store."""

    timestamp: str
    context: CheckpointContext = field(default_factory=CheckpointContext)
    commit_hash: str = ""
    schema_version: str = SCHEMA_VERSION

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ContextEntry":
        # Nested under "context:" as written by the tool; flat keys are accepted too.
        raw_context = data.get("context")
        if not isinstance(raw_context, dict):
            raw_context = data
        return cls(
            schema_version=as_text(data.get("schema_version")),
            timestamp=as_text(data.get("timestamp")),
            commit_hash=as_text(data.get("commit_hash")),
            context=CheckpointContext.from_raw(raw_context),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "timestamp": self.timestamp,
            "commit_hash": self.commit_hash,
            "context": self.context.to_dict(),
        }


@dataclass
class MetaDocument:
    """First document of the changelog: store-level identity."""

    project_id: str
    path_hash: str
    created_at: str
    tool_version: str
    schema_version: str = SCHEMA_VERSION
    document_type: str = "meta"

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "document_type": self.document_type,
            "project_id": self.project_id,
            "path_hash": self.path_hash,
            "created_at": self.created_at,
            "tool_version": self.tool_version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MetaDocument":
        return cls(
            project_id=as_text(data.get("project_id")),
            path_hash=as_text(data.get("path_hash")),
            created_at=as_text(data.get("created_at")),
            tool_version=as_text(data.get("tool_version")),
            schema_version=as_text(data.get("schema_version")) or SCHEMA_VERSION,
        )


# --- Decoding ---


def _load_mapping(text: str) -> dict[str, Any] | None:
    try:
        data = load_document(text)
    except yaml.YAMLError:
        return None
    return data if isinstance(data, dict) else None


def is_meta_document(text: str) -> bool:
    """True for the store-level meta document."""
    return bool(_META_MARKER.search(text))


def decode_changelog_entry(text: str) -> tuple[CheckpointEntry | None, bool]:
    """Decode one changelog document; ok is False for invalid YAML, meta docs, or an empty timestamp."""
    data = _load_mapping(text)
    if data is None or data.get("document_type") == "meta":
        return None, False
    entry = CheckpointEntry.from_dict(data)
    if not entry.timestamp.strip():
        return None, False
    return entry, True


def decode_context_entry(text: str) -> tuple[ContextEntry | None, bool]:
    """Decode one context document; same contract as decode_changelog_entry."""
    data = _load_mapping(text)
    if data is None:
        return None, False
    entry = ContextEntry.from_dict(data)
    if not entry.timestamp.strip():
        return None, False
    return entry, True


def decode_meta_document(text: str) -> MetaDocument | None:
    data = _load_mapping(text)
    if data is None or data.get("document_type") != "meta":
        return None
    return MetaDocument.from_dict(data)


# --- Rendering ---


def render_changelog_document(entry: CheckpointEntry) -> str:
    return dump_document(entry.to_changelog_dict())


def render_context_document(entry: ContextEntry) -> str:
    return dump_document(entry.to_dict())


def render_meta_document(meta: MetaDocument) -> str:
    return dump_document(meta.to_dict())
