"""
Substring search over checkpoint history.

Matches are case-insensitive and reported oldest first. Without a category
flag both stores are searched; --failed/--pattern/--decision restrict the
search to that context category (and then an empty query lists it whole).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Callable

from .model.context_items import extract_decision, extract_failed, extract_insight, extract_pattern, item_scope
from .model.entry import decode_changelog_entry, decode_context_entry, is_meta_document
from .store import DocumentStore


@dataclass
class SearchOptions:
    query: str = ""
    failed: bool = False
    pattern: bool = False
    decision: bool = False
    scope: str = ""
    recent: int = 0

    @property
    def categories(self) -> tuple[str, ...]:
        """Context fields restricted to by flags (empty tuple means all)."""
        selected = []
        if self.failed:
            selected.append("failed_approaches")
        if self.pattern:
            selected.append("established_patterns")
        if self.decision:
            selected.append("decisions_made")
        return tuple(selected)


@dataclass
class SearchResult:
    source: str  # "changelog" | "context"
    timestamp: str
    commit_hash: str
    section: str  # "changes" | "next_steps" | "context"
    field: str
    content: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


_CONTEXT_EXTRACTORS: dict[str, tuple[str, Callable[[Any], tuple[str, str]], str]] = {
    "failed_approaches": ("Failed", extract_failed, "Why"),
    "established_patterns": ("Pattern", extract_pattern, "Rationale"),
    "decisions_made": ("Decision", extract_decision, "Rationale"),
    "key_insights": ("Insight", extract_insight, "Impact"),
}


def _matches(query: str, *texts: str) -> bool:
    if not query:
        return True
    q = query.lower()
    return any(q in t.lower() for t in texts if t)


def _scope_ok(wanted: str, scope: str) -> bool:
    return not wanted or wanted.lower() == scope.strip().lower()


def search(
    changelog: DocumentStore,
    context: DocumentStore | None,
    options: SearchOptions,
) -> list[SearchResult]:
    """
    Search both stores.

    Raises:
        ValueError: If neither a query nor a category flag is given
    """
    if not options.query and not options.categories:
        raise ValueError("search query required")

    results: list[SearchResult] = []
    if not options.categories:
        results += _search_changelog(changelog, options)
    if context is not None:
        results += _search_context(context, options)
    return results


def _search_changelog(store: DocumentStore, options: SearchOptions) -> list[SearchResult]:
    decoded = store.decode(
        decode_changelog_entry,
        limit=options.recent or None,
        newest_first=True,
        ignore=is_meta_document,
    )
    results = []
    for entry in reversed(decoded.items):
        for change in entry.changes:
            if not _scope_ok(options.scope, change.scope):
                continue
            if _matches(options.query, change.summary, change.details, change.change_type, change.scope):
                content = f"[{change.change_type}] {change.summary}" if change.change_type else change.summary
                if change.details:
                    content += f"\n  {change.details}"
                results.append(
                    SearchResult("changelog", entry.timestamp, entry.commit_hash, "changes", "summary", content)
                )
        for step in entry.next_steps:
            if not _scope_ok(options.scope, step.scope):
                continue
            if _matches(options.query, step.summary, step.details, step.scope):
                content = f"[{step.priority}] {step.summary}" if step.priority else step.summary
                results.append(
                    SearchResult("changelog", entry.timestamp, entry.commit_hash, "next_steps", "summary", content)
                )
    return results


def _search_context(store: DocumentStore, options: SearchOptions) -> list[SearchResult]:
    decoded = store.decode(decode_context_entry, limit=options.recent or None, newest_first=True)
    fields = options.categories or tuple(_CONTEXT_EXTRACTORS)

    results = []
    for entry in reversed(decoded.items):
        for name in fields:
            label, extract, detail_label = _CONTEXT_EXTRACTORS[name]
            for item in getattr(entry.context, name):
                if not _scope_ok(options.scope, item_scope(item)):
                    continue
                primary, detail = extract(item)
                if not primary or not _matches(options.query, primary, detail):
                    continue
                content = f"{label}: {primary}"
                if detail:
                    content += f"\n{detail_label}: {detail}"
                results.append(SearchResult("context", entry.timestamp, entry.commit_hash, "context", name, content))
    return results
