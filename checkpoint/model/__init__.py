"""
Typed checkpoint documents.

Components:
- entry: CheckpointEntry / ContextEntry / MetaDocument and their YAML codecs
- context_items: string-or-mapping extraction for context lists
- validation: draft validation, lint suggestions, commit message rendering
"""

from .context_items import (
    ContextItem,
    PlainText,
    Structured,
    classify_item,
    extract_decision,
    extract_failed,
    extract_insight,
    extract_pattern,
)
from .entry import (
    Change,
    CheckpointContext,
    CheckpointEntry,
    ContextEntry,
    FileChange,
    MetaDocument,
    NextStep,
    decode_changelog_entry,
    decode_context_entry,
    decode_meta_document,
    is_meta_document,
    render_changelog_document,
    render_context_document,
    render_meta_document,
)
from .validation import (
    CHANGE_TYPES,
    ValidationIssue,
    is_placeholder,
    lint_entry,
    render_commit_message,
    validate_draft,
)

__all__ = [
    "CHANGE_TYPES",
    "Change",
    "CheckpointContext",
    "CheckpointEntry",
    "ContextEntry",
    "ContextItem",
    "FileChange",
    "MetaDocument",
    "NextStep",
    "PlainText",
    "Structured",
    "ValidationIssue",
    "classify_item",
    "decode_changelog_entry",
    "decode_context_entry",
    "decode_meta_document",
    "extract_decision",
    "extract_failed",
    "extract_insight",
    "extract_pattern",
    "is_meta_document",
    "is_placeholder",
    "lint_entry",
    "render_changelog_document",
    "render_commit_message",
    "render_context_document",
    "render_meta_document",
    "validate_draft",
]
