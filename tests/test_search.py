"""Tests for substring search over changelog and context."""

from __future__ import annotations

import pytest

from checkpoint.search import SearchOptions, search
from checkpoint.store import DocumentStore, MemoryBackend

CHANGELOG = """\
---
schema_version: '1'
document_type: meta
project_id: 01ABC
---
schema_version: '1'
timestamp: '2025-01-01'
commit_hash: 'aaaaaaaaaaaa'
changes:
- summary: Add retry budget
  change_type: feature
  scope: upload
next_steps:
- summary: Tune retry limits
  priority: high
  scope: upload
---
schema_version: '1'
timestamp: '2025-01-02'
commit_hash: ''
changes:
- summary: Fix cache eviction
  details: Retry storms evicted hot keys
  change_type: fix
  scope: cache
"""

CONTEXT = """\
---
schema_version: '1'
timestamp: '2025-01-01'
commit_hash: 'aaaaaaaaaaaa'
context:
  problem_statement: Uploads stall
  failed_approaches:
  - approach: Retry forever
    why_failed: Hammered the server
    scope: upload
  established_patterns:
  - Wrap IO in retry helpers
---
schema_version: '1'
timestamp: '2025-01-02'
commit_hash: ''
context:
  decisions_made:
  - decision: Use LRU for the cache
    rationale: Predictable memory
    scope: cache
  key_insights:
  - insight: Retry storms amplify cache misses
    impact: Add jitter
"""


@pytest.fixture
def stores() -> tuple[DocumentStore, DocumentStore]:
    return DocumentStore(MemoryBackend(CHANGELOG)), DocumentStore(MemoryBackend(CONTEXT))


def test_query_is_case_insensitive_across_both_stores(stores) -> None:
    results = search(*stores, SearchOptions(query="RETRY"))

    sections = [(r.source, r.section, r.field) for r in results]
    assert sections == [
        ("changelog", "changes", "summary"),
        ("changelog", "next_steps", "summary"),
        ("changelog", "changes", "summary"),
        ("context", "context", "failed_approaches"),
        ("context", "context", "established_patterns"),
        ("context", "context", "key_insights"),
    ]
    assert results[0].timestamp == "2025-01-01"
    assert results[0].commit_hash == "aaaaaaaaaaaa"


def test_category_flag_restricts_to_context_and_lists_all(stores) -> None:
    results = search(*stores, SearchOptions(failed=True))

    assert len(results) == 1
    assert results[0].content == "Failed: Retry forever\nWhy: Hammered the server"


def test_multiple_category_flags(stores) -> None:
    results = search(*stores, SearchOptions(pattern=True, decision=True))
    assert [r.field for r in results] == ["established_patterns", "decisions_made"]


def test_scope_filter(stores) -> None:
    results = search(*stores, SearchOptions(query="retry", scope="upload"))

    assert [r.content.splitlines()[0] for r in results] == [
        "[feature] Add retry budget",
        "[high] Tune retry limits",
        "Failed: Retry forever",
    ]


def test_recent_limits_to_newest_entries(stores) -> None:
    results = search(*stores, SearchOptions(query="retry", recent=1))
    assert {r.timestamp for r in results} == {"2025-01-02"}


def test_no_match_returns_empty(stores) -> None:
    assert search(*stores, SearchOptions(query="kubernetes")) == []


def test_query_or_category_required(stores) -> None:
    with pytest.raises(ValueError):
        search(*stores, SearchOptions())


def test_result_to_dict_is_json_ready(stores) -> None:
    result = search(*stores, SearchOptions(decision=True))[0]
    assert result.to_dict() == {
        "source": "context",
        "timestamp": "2025-01-02",
        "commit_hash": "",
        "section": "context",
        "field": "decisions_made",
        "content": "Decision: Use LRU for the cache\nRationale: Predictable memory",
    }
