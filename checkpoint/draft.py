"""
Draft (input file) rendering and parsing, plus the status file.

The draft is a fill-in-the-blanks YAML document preceded by a comment block
of instructions for whoever (human or LLM) edits it. Rendering is a pure
function of its inputs; writing it to disk is the caller's job.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

import yaml

from .config import SCHEMA_VERSION
from .errors import ValidationError
from .model.entry import CheckpointEntry, FileChange, NextStep
from .model.validation import CHANGE_TYPES, ValidationIssue
from .model.yamlio import as_list, load_document

_TYPE_LIST = ", ".join(CHANGE_TYPES)
_TYPE_CHOICES = "|".join(CHANGE_TYPES)

DRAFT_INSTRUCTIONS = f"""\
# CHECKPOINT DRAFT
# 1. Fill the changes list with every logical change in this checkpoint.
# 2. Run 'checkpoint lint' to catch obvious mistakes.
# 3. Review, then run 'checkpoint commit'.
#
# Each change has: summary (required, < 80 chars, present tense),
# change_type (required: {_TYPE_LIST}), details and scope (optional).
# Group related file changes into one change; use consistent scope names.
# Carried-over next_steps: delete finished ones, keep the rest, add new ones.
# Do not edit schema_version or timestamp; leave commit_hash empty.
#
# Example:
# - summary: "Add retry budget to upload client"
#   details: "Uploads gave up after one timeout on slow links"
#   change_type: "feature"
#   scope: "upload"
"""

CONTEXT_TEMPLATE = """\
# Why this checkpoint exists. Items marked scope: project are project-wide
# lessons; everything else applies to this checkpoint only.
context:
  problem_statement: "[REQUIRED: What problem is this checkpoint solving?]"
  key_insights:
    - insight: "[OPTIONAL: What did you learn during implementation?]"
      impact: "[OPTIONAL: How does this affect future development?]"
      scope: "checkpoint"
  decisions_made:
    - decision: "[OPTIONAL: Significant implementation choice]"
      rationale: "[OPTIONAL: Why this approach over alternatives?]"
      alternatives_considered:
        - "[OPTIONAL: Other approaches evaluated]"
      scope: "checkpoint"
  failed_approaches:
    - approach: "[OPTIONAL: What was tried but did not work?]"
      why_failed: "[OPTIONAL: Specific reason for failure]"
      scope: "checkpoint"
  established_patterns:
    - pattern: "[OPTIONAL: New convention established]"
      rationale: "[OPTIONAL: Why this pattern works for this codebase]"
      scope: "checkpoint"
  conversation_context:
    - exchange: "[OPTIONAL: Discussion that influenced decisions]"
      outcome: "[OPTIONAL: How it shaped the implementation]"
"""

_NEXT_STEPS_PLACEHOLDER = """\
next_steps: []
#  - summary: "[FILL IN: next action]"
#    details: "[OPTIONAL: context]"
#    priority: "[OPTIONAL: low|med|high]"
#    scope: "[OPTIONAL: affected component]"
"""


def _indent_block(text: str) -> str:
    return "\n".join(f"  {line}" if line else "" for line in text.rstrip("\n").split("\n"))


def _dump_block(data: dict[str, Any]) -> str:
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False)


def prepare_draft(
    git_status: str,
    diff_file: str,
    prev_next_steps: list[NextStep] | None = None,
    files_changed: list[FileChange] | None = None,
    *,
    now: datetime | None = None,
) -> str:
    """
    Render a fresh draft.

    Args:
        git_status: ``git status --porcelain`` snapshot
        diff_file: Project-relative path of the diff artifact
        prev_next_steps: Next steps carried over from the last checkpoint
        files_changed: Per-file line counts
        now: Timestamp to embed (defaults to the current local time)

    Returns:
        Draft text (instructions + YAML document)
    """
    ts = (now or datetime.now().astimezone()).isoformat(timespec="seconds")

    # |2 pins the block indentation so porcelain lines keep their leading space
    status_block = "git_status: |2\n" + _indent_block(git_status) + "\n" if git_status.strip() else 'git_status: ""\n'

    files_block = ""
    if files_changed:
        files_block = "\n# File changes (informational):\n" + _dump_block(
            {"files_changed": [f.to_dict() for f in files_changed]}
        )

    if prev_next_steps:
        next_block = _dump_block({"next_steps": [s.to_dict() for s in prev_next_steps]})
    else:
        next_block = _NEXT_STEPS_PLACEHOLDER

    return (
        f"{DRAFT_INSTRUCTIONS}\n"
        f'schema_version: "{SCHEMA_VERSION}"\n'
        f'timestamp: "{ts}"\n'
        'commit_hash: ""\n'
        "\n# Git status (informational):\n"
        f"{status_block}"
        "\n# Full diff for reference:\n"
        f"diff_file: {json.dumps(diff_file)}\n"
        f"{files_block}"
        "\n# Every change in this checkpoint:\n"
        "changes:\n"
        '  - summary: "[FILL IN: what changed]"\n'
        '    details: "[OPTIONAL: longer description]"\n'
        f'    change_type: "[FILL IN: {_TYPE_CHOICES}]"\n'
        '    scope: "[OPTIONAL: affected component]"\n'
        "\n"
        f"{CONTEXT_TEMPLATE}"
        "\n# Planned next steps (optional):\n"
        f"{next_block}"
    )


def strip_instructions(content: str) -> str:
    """Drop everything before the first ``schema_version:`` line."""
    lines = content.split("\n")
    for i, line in enumerate(lines):
        if line.strip().startswith("schema_version:"):
            return "\n".join(lines[i:])
    return content


def parse_draft(content: str) -> CheckpointEntry:
    """
    Parse draft text into an entry without validating it.

    Raises:
        ValidationError: If the YAML itself is unreadable or not a mapping
    """
    try:
        data = load_document(strip_instructions(content))
    except yaml.YAMLError as e:
        issue = ValidationIssue("draft", "invalid", f"invalid YAML: {e}")
        raise ValidationError([issue], hint="check the YAML syntax of the draft") from e
    if not isinstance(data, dict):
        raise ValidationError([ValidationIssue("draft", "invalid", "draft is not a YAML mapping")])
    return CheckpointEntry.from_dict(data)


# --- Status file ---


def render_status(
    entry: CheckpointEntry,
    commit_message: str,
    *,
    project_id: str = "",
    path_hash: str = "",
) -> str:
    """Status file content: last commit metadata plus its next steps."""
    data: dict[str, Any] = {}
    if project_id:
        data["project_id"] = project_id
    if path_hash:
        data["path_hash"] = path_hash
    data.update(
        {
            "last_commit_hash": entry.commit_hash,
            "last_commit_timestamp": entry.timestamp,
            "last_commit_message": commit_message,
            "status": "success",
            "changes_count": len(entry.changes),
        }
    )
    if entry.next_steps:
        data["next_steps"] = [s.to_dict() for s in entry.next_steps]
    return _dump_block(data)


def read_status_next_steps(content: str) -> list[NextStep]:
    """Next steps recorded in a status file; unreadable content yields []."""
    try:
        data = load_document(content)
    except yaml.YAMLError:
        return []
    if not isinstance(data, dict):
        return []
    steps = [NextStep.from_raw(raw) for raw in as_list(data.get("next_steps"))]
    return [s for s in steps if s.summary.strip()]
