"""
Loose-typed context items.

Context lists (decisions_made, established_patterns, failed_approaches,
key_insights) accept either a bare string or a mapping. Older entries and
hand-edited files use both shapes, so extraction classifies each raw item
once at the decode boundary and never raises.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence, Union


@dataclass(frozen=True)
class PlainText:
    """A context item written as a bare string."""

    text: str


@dataclass(frozen=True)
class Structured:
    """A context item written as a mapping."""

    primary: str
    rationale: str = ""


ContextItem = Union[PlainText, Structured, None]


def _first_str(mapping: dict, keys: Sequence[str]) -> str:
    for key in keys:
        value = mapping.get(key)
        if isinstance(value, str):
            return value
    return ""


def classify_item(
    item: Any,
    primary_keys: Sequence[str],
    rationale_keys: Sequence[str] = (),
) -> ContextItem:
    """Classify a raw YAML value as PlainText, Structured, or None (unknown shape)."""
    if isinstance(item, str):
        return PlainText(item)
    if isinstance(item, dict):
        return Structured(
            primary=_first_str(item, primary_keys),
            rationale=_first_str(item, rationale_keys),
        )
    return None


def item_fields(item: ContextItem) -> tuple[str, str]:
    """(primary, rationale) for any classified item; unknown shapes give empty strings."""
    if isinstance(item, PlainText):
        return item.text, ""
    if isinstance(item, Structured):
        return item.primary, item.rationale
    return "", ""


def extract_pattern(item: Any) -> tuple[str, str]:
    """(pattern, rationale)"""
    return item_fields(classify_item(item, ("pattern",), ("rationale",)))


def extract_decision(item: Any) -> tuple[str, str]:
    """(decision, rationale); ``description`` stands in for a missing ``decision``."""
    return item_fields(classify_item(item, ("decision", "description"), ("rationale",)))


def extract_failed(item: Any) -> tuple[str, str]:
    """(approach, why_failed)"""
    return item_fields(classify_item(item, ("approach",), ("why_failed",)))


def extract_insight(item: Any) -> tuple[str, str]:
    """(insight, impact)"""
    return item_fields(classify_item(item, ("insight",), ("impact",)))


def item_scope(item: Any) -> str:
    """Scope label of a structured item ("" for bare strings)."""
    if isinstance(item, dict):
        scope = item.get("scope")
        return scope if isinstance(scope, str) else ""
    return ""
