"""
Draft validation, advisory lint, and commit message rendering.

validate_draft() reports every problem in one pass so the user can fix a
draft in a single edit; lint_entry() returns suggestions that never block a
commit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from .entry import CheckpointEntry

CHANGE_TYPES = ("feature", "fix", "refactor", "docs", "perf", "other")
NEXT_STEP_PRIORITIES = ("low", "med", "medium", "high")
MAX_SUMMARY_LENGTH = 80

_PLACEHOLDER_MARKERS = ("[fill in", "[optional", "[required")
_VAGUE_WORDS = ("improve", "update", "enhance", "optimize", "various", "misc", "stuff")

IssueKind = Literal["missing", "invalid", "placeholder", "too_long"]


@dataclass(frozen=True)
class ValidationIssue:
    """One problem found in a draft.

    field: dotted path such as "changes[0].change_type"
    kind: "missing" | "invalid" | "placeholder" | "too_long"
    """

    field: str
    kind: IssueKind
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


def is_placeholder(text: str) -> bool:
    """Detect unfilled template text such as "[FILL IN: ...]"."""
    lowered = text.strip().lower()
    return any(marker in lowered for marker in _PLACEHOLDER_MARKERS)


def validate_draft(entry: CheckpointEntry, *, max_summary_length: int = MAX_SUMMARY_LENGTH) -> list[ValidationIssue]:
    """
    Check a parsed draft for required fields and enum values.

    An empty timestamp is not reported: it is filled in at finalize time.

    Returns:
        Every issue found, in document order (empty list means valid)
    """
    issues: list[ValidationIssue] = []

    if not entry.schema_version.strip():
        issues.append(ValidationIssue("schema_version", "missing", "required field is missing"))

    if not entry.changes:
        issues.append(ValidationIssue("changes", "missing", "at least one change is required"))

    for i, change in enumerate(entry.changes):
        prefix = f"changes[{i}]"
        summary = change.summary.strip()
        if not summary:
            issues.append(ValidationIssue(f"{prefix}.summary", "missing", "summary is required"))
        elif is_placeholder(summary):
            issues.append(ValidationIssue(f"{prefix}.summary", "placeholder", "summary contains placeholder text"))
        elif len(summary) > max_summary_length:
            issues.append(
                ValidationIssue(
                    f"{prefix}.summary",
                    "too_long",
                    f"summary too long ({len(summary)} > {max_summary_length} chars)",
                )
            )

        change_type = change.change_type.strip()
        if not change_type:
            issues.append(ValidationIssue(f"{prefix}.change_type", "missing", "change_type is required"))
        elif is_placeholder(change_type):
            issues.append(
                ValidationIssue(f"{prefix}.change_type", "placeholder", "change_type contains placeholder text")
            )
        elif change_type not in CHANGE_TYPES:
            issues.append(
                ValidationIssue(
                    f"{prefix}.change_type",
                    "invalid",
                    f"invalid change_type '{change_type}' (valid: {', '.join(CHANGE_TYPES)})",
                )
            )

    for i, step in enumerate(entry.next_steps):
        prefix = f"next_steps[{i}]"
        summary = step.summary.strip()
        if not summary:
            issues.append(ValidationIssue(f"{prefix}.summary", "missing", "summary is required"))
        elif is_placeholder(summary):
            issues.append(ValidationIssue(f"{prefix}.summary", "placeholder", "summary contains placeholder text"))
        if step.priority and step.priority.strip().lower() not in NEXT_STEP_PRIORITIES:
            issues.append(
                ValidationIssue(
                    f"{prefix}.priority",
                    "invalid",
                    f"priority must be low|med|high (got: {step.priority})",
                )
            )

    return issues


def lint_entry(entry: CheckpointEntry) -> list[str]:
    """Advisory checks for obvious mistakes; never blocks a commit."""
    issues: list[str] = []

    for i, change in enumerate(entry.changes):
        for name in ("summary", "details", "change_type", "scope"):
            if is_placeholder(getattr(change, name)):
                issues.append(f"change[{i}]: {name} contains placeholder text")

        summary = change.summary.lower()
        for vague in _VAGUE_WORDS:
            if vague in summary and len(change.summary.split()) < 5:
                issues.append(f"change[{i}]: summary may be too vague (contains '{vague}')")
                break

        if change.summary.count(" and ") > 1:
            issues.append(f"change[{i}]: summary contains multiple 'and' - consider splitting into separate changes")

    for i, step in enumerate(entry.next_steps):
        if is_placeholder(step.summary):
            issues.append(f"next_steps[{i}]: summary contains placeholder text")

    return issues


def render_commit_message(entry: CheckpointEntry) -> str:
    """
    One-line git commit message for a checkpoint.

    A single change renders as "Checkpoint: <type> (<scope>) - <summary>".
    Several changes render as a count with types and scopes in first-seen
    order, e.g. "Checkpoint: 3 changes - feature(2), fix [api, cli]".
    """
    if not entry.changes:
        return "Checkpoint"

    if len(entry.changes) == 1:
        c = entry.changes[0]
        if c.scope:
            return f"Checkpoint: {c.change_type} ({c.scope}) - {c.summary}"
        return f"Checkpoint: {c.change_type} - {c.summary}"

    type_counts: dict[str, int] = {}
    scopes: list[str] = []
    for c in entry.changes:
        type_counts[c.change_type] = type_counts.get(c.change_type, 0) + 1
        if c.scope and c.scope not in scopes:
            scopes.append(c.scope)

    types = [t if n == 1 else f"{t}({n})" for t, n in type_counts.items()]
    msg = f"Checkpoint: {len(entry.changes)} changes - {', '.join(types)}"
    if scopes:
        msg += f" [{', '.join(scopes)}]"
    return msg
