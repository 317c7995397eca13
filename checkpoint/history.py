"""
Read-side aggregation over the changelog and context stores.

Both stores are scanned newest-first and independently, each up to the same
limit of valid entries. Undecodable documents are counted, never fatal: a
hand-edited store with one broken document still yields history.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable

from .model.context_items import extract_decision, extract_failed, extract_pattern
from .model.entry import (
    CheckpointEntry,
    ContextEntry,
    NextStep,
    decode_changelog_entry,
    decode_context_entry,
    is_meta_document,
)
from .store import DocumentStore
from .util import short_hash

DEFAULT_HISTORY_LIMIT = 10
DECISION_CAP = 5

_PRIORITY_RANKS = {"high": 3, "med": 2, "medium": 2, "low": 1}


@dataclass
class NextStepWithSource:
    step: NextStep
    from_timestamp: str
    from_commit: str = ""

    @property
    def summary(self) -> str:
        return self.step.summary

    @property
    def priority(self) -> str:
        return self.step.priority


@dataclass
class PatternWithSource:
    content: str
    rationale: str = ""
    from_timestamp: str = ""


@dataclass
class DecisionWithSource:
    content: str
    rationale: str = ""
    from_timestamp: str = ""


@dataclass
class FailedWithSource:
    approach: str
    why_failed: str = ""
    from_timestamp: str = ""


@dataclass
class HistoryData:
    """Aggregated view of recent checkpoints (newest first)."""

    recent_checkpoints: list[CheckpointEntry] = field(default_factory=list)
    all_next_steps: list[NextStepWithSource] = field(default_factory=list)
    recent_patterns: list[PatternWithSource] = field(default_factory=list)
    recent_decisions: list[DecisionWithSource] = field(default_factory=list)
    recent_failed: list[FailedWithSource] = field(default_factory=list)
    skipped_documents: int = 0


@dataclass
class PriorityGroups:
    high: list[NextStepWithSource] = field(default_factory=list)
    med: list[NextStepWithSource] = field(default_factory=list)
    low: list[NextStepWithSource] = field(default_factory=list)
    other: list[NextStepWithSource] = field(default_factory=list)


def _dedupe(items: Iterable, key: Callable, cap: int | None = None) -> list:
    """First occurrence wins; order is preserved."""
    seen: set[str] = set()
    kept = []
    for item in items:
        k = key(item)
        if k in seen:
            continue
        if cap is not None and len(kept) >= cap:
            break
        seen.add(k)
        kept.append(item)
    return kept


def load_history(
    changelog: DocumentStore,
    context: DocumentStore | None = None,
    limit: int = DEFAULT_HISTORY_LIMIT,
    *,
    decision_cap: int = DECISION_CAP,
) -> HistoryData:
    """
    Load the most recent checkpoints and their context.

    Args:
        changelog: Changelog store (meta document is passed over)
        context: Context store, optional
        limit: Maximum valid entries read from each store (<= 0 means default)
        decision_cap: Maximum distinct decisions kept

    Returns:
        HistoryData; empty when the stores are missing or empty
    """
    if limit <= 0:
        limit = DEFAULT_HISTORY_LIMIT

    data = HistoryData()

    entries = changelog.decode(decode_changelog_entry, limit=limit, newest_first=True, ignore=is_meta_document)
    data.recent_checkpoints = entries.items
    data.skipped_documents += entries.skipped

    for entry in data.recent_checkpoints:
        for step in entry.next_steps:
            data.all_next_steps.append(
                NextStepWithSource(step=step, from_timestamp=entry.timestamp, from_commit=entry.commit_hash)
            )

    if context is None:
        return data

    contexts = context.decode(decode_context_entry, limit=limit, newest_first=True)
    data.skipped_documents += contexts.skipped

    patterns: list[PatternWithSource] = []
    decisions: list[DecisionWithSource] = []
    failed: list[FailedWithSource] = []
    for ctx in contexts.items:
        _collect_context(ctx, patterns, decisions, failed)

    data.recent_patterns = _dedupe(patterns, key=lambda p: p.content)
    data.recent_decisions = _dedupe(decisions, key=lambda d: d.content, cap=decision_cap)
    data.recent_failed = _dedupe(failed, key=lambda f: f.approach)
    return data


def _collect_context(
    ctx: ContextEntry,
    patterns: list[PatternWithSource],
    decisions: list[DecisionWithSource],
    failed: list[FailedWithSource],
) -> None:
    for item in ctx.context.established_patterns:
        content, rationale = extract_pattern(item)
        if content:
            patterns.append(PatternWithSource(content, rationale, ctx.timestamp))
    for item in ctx.context.decisions_made:
        content, rationale = extract_decision(item)
        if content:
            decisions.append(DecisionWithSource(content, rationale, ctx.timestamp))
    for item in ctx.context.failed_approaches:
        approach, why = extract_failed(item)
        if approach:
            failed.append(FailedWithSource(approach, why, ctx.timestamp))


# --- Next step ordering ---


def priority_rank(priority: str) -> int:
    """high 3, med/medium 2, low 1, anything else 0 (case-insensitive)."""
    return _PRIORITY_RANKS.get(priority.strip().lower(), 0)


def rank_next_steps(steps: list[NextStepWithSource]) -> list[NextStepWithSource]:
    """Highest priority first; equal ranks keep their input order."""
    return sorted(steps, key=lambda s: priority_rank(s.priority), reverse=True)


def group_by_priority(steps: list[NextStepWithSource]) -> PriorityGroups:
    groups = PriorityGroups()
    buckets = {3: groups.high, 2: groups.med, 1: groups.low, 0: groups.other}
    for step in steps:
        buckets[priority_rank(step.priority)].append(step)
    return groups


# --- Rendering ---


def render_history(data: HistoryData) -> str:
    """Markdown summary of recent checkpoints, next steps and context."""
    lines = ["# Recent History", "", "## Recent Checkpoints", ""]

    if not data.recent_checkpoints:
        lines += ["No checkpoints yet.", ""]
    for cp in data.recent_checkpoints:
        commit = f" [{short_hash(cp.commit_hash)}]" if cp.commit_hash else ""
        lines.append(f"### {cp.timestamp}{commit}")
        lines.append("")
        for change in cp.changes:
            kind = f" ({change.change_type})" if change.change_type else ""
            lines.append(f"- {change.summary}{kind}")
        lines.append("")

    lines += ["## Outstanding Next Steps", ""]
    if not data.all_next_steps:
        lines += ["No outstanding next steps.", ""]
    else:
        for step in rank_next_steps(data.all_next_steps):
            priority = f" [{step.priority}]" if step.priority else ""
            scope = f" ({step.step.scope})" if step.step.scope else ""
            lines.append(f"- {step.summary}{priority}{scope}")
        lines.append("")

    if data.recent_patterns:
        lines += ["## Recently Established Patterns", ""]
        for p in data.recent_patterns:
            lines.append(f"- {p.content}")
            if p.rationale:
                lines.append(f"  *{p.rationale}*")
        lines.append("")

    if data.recent_decisions:
        lines += ["## Recent Decisions", ""]
        for d in data.recent_decisions:
            lines.append(f"- {d.content}")
            if d.rationale:
                lines.append(f"  *{d.rationale}*")
        lines.append("")

    if data.recent_failed:
        lines += ["## Failed Approaches (Don't Repeat)", ""]
        for f in data.recent_failed:
            lines.append(f"- {f.approach}")
            if f.why_failed:
                lines.append(f"  *Why: {f.why_failed}*")
        lines.append("")

    if data.skipped_documents:
        lines += [f"_{data.skipped_documents} unreadable document(s) skipped._", ""]

    return "\n".join(lines)


def render_next(data: HistoryData) -> str:
    """Outstanding next steps grouped by priority."""
    lines = ["# Outstanding Next Steps", ""]
    if not data.all_next_steps:
        lines += ["No outstanding next steps.", "", "hint: next steps are captured during checkpoint commit."]
        return "\n".join(lines) + "\n"

    groups = group_by_priority(data.all_next_steps)
    for title, steps in (
        ("High Priority", groups.high),
        ("Medium Priority", groups.med),
        ("Low Priority", groups.low),
        ("Other", groups.other),
    ):
        if not steps:
            continue
        lines += [f"## {title}", ""]
        for step in steps:
            scope = f" [{step.step.scope}]" if step.step.scope else ""
            lines.append(f"- {step.summary}{scope}")
            if step.step.details:
                lines.append(f"  {step.step.details}")
            if step.from_commit:
                lines.append(f"  *(from {short_hash(step.from_commit)})*")
        lines.append("")

    return "\n".join(lines)
