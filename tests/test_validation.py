"""Tests for draft validation, lint suggestions and commit message rendering."""

from __future__ import annotations

from checkpoint.model import Change, CheckpointEntry, NextStep, lint_entry, render_commit_message, validate_draft


def _entry(*changes: Change, next_steps: list[NextStep] | None = None, schema_version: str = "1") -> CheckpointEntry:
    return CheckpointEntry(
        schema_version=schema_version,
        timestamp="",
        changes=list(changes),
        next_steps=next_steps or [],
    )


def _kinds(issues) -> list[tuple[str, str]]:
    return [(i.field, i.kind) for i in issues]


def test_valid_entry_has_no_issues() -> None:
    entry = _entry(Change(summary="Add retry budget", change_type="feature"))
    assert validate_draft(entry) == []


def test_missing_timestamp_is_not_reported() -> None:
    entry = _entry(Change(summary="Add retry budget", change_type="fix"))
    assert entry.timestamp == ""
    assert validate_draft(entry) == []


def test_validation_reports_every_issue_in_one_pass() -> None:
    entry = _entry(
        Change(summary="", change_type=""),
        Change(summary="[FILL IN: what changed]", change_type="[FILL IN: feature|fix]"),
        Change(summary="x" * 81, change_type="bugfix"),
        next_steps=[NextStep(summary="", priority="urgent")],
        schema_version="",
    )

    issues = validate_draft(entry)

    assert _kinds(issues) == [
        ("schema_version", "missing"),
        ("changes[0].summary", "missing"),
        ("changes[0].change_type", "missing"),
        ("changes[1].summary", "placeholder"),
        ("changes[1].change_type", "placeholder"),
        ("changes[2].summary", "too_long"),
        ("changes[2].change_type", "invalid"),
        ("next_steps[0].summary", "missing"),
        ("next_steps[0].priority", "invalid"),
    ]


def test_empty_changes_list_is_missing() -> None:
    assert _kinds(validate_draft(_entry())) == [("changes", "missing")]


def test_invalid_change_type_is_distinct_from_missing() -> None:
    issues = validate_draft(_entry(Change(summary="Fix", change_type="bugfix")))
    assert len(issues) == 1
    assert issues[0].kind == "invalid"
    assert "bugfix" in issues[0].message
    assert "feature" in issues[0].message


def test_summary_length_limit_is_configurable() -> None:
    entry = _entry(Change(summary="twelve chars", change_type="docs"))
    assert validate_draft(entry, max_summary_length=12) == []
    assert _kinds(validate_draft(entry, max_summary_length=11)) == [("changes[0].summary", "too_long")]


def test_priority_is_case_insensitive_and_optional() -> None:
    entry = _entry(
        Change(summary="Fix", change_type="fix"),
        next_steps=[NextStep(summary="a", priority="HIGH"), NextStep(summary="b", priority="medium"), NextStep("c")],
    )
    assert validate_draft(entry) == []


def test_issue_str_names_the_field() -> None:
    issue = validate_draft(_entry())[0]
    assert str(issue) == "changes: at least one change is required"


# -----------------------------------------------------------------------------
# Lint
# -----------------------------------------------------------------------------


def test_lint_flags_placeholders_vague_and_compound_summaries() -> None:
    entry = _entry(
        Change(summary="Update stuff", change_type="other"),
        Change(summary="Add a and b and c", change_type="feature", details="[OPTIONAL: longer description]"),
        next_steps=[NextStep(summary="[FILL IN: next action]")],
    )

    suggestions = lint_entry(entry)

    assert any("change[0]" in s and "vague" in s for s in suggestions)
    assert any("change[1]" in s and "multiple 'and'" in s for s in suggestions)
    assert any("change[1]: details contains placeholder" in s for s in suggestions)
    assert any(s.startswith("next_steps[0]") for s in suggestions)


def test_lint_is_quiet_for_a_good_entry() -> None:
    entry = _entry(Change(summary="Add retry budget to upload client", change_type="feature"))
    assert lint_entry(entry) == []


# -----------------------------------------------------------------------------
# Commit message
# -----------------------------------------------------------------------------


def test_commit_message_single_change() -> None:
    with_scope = _entry(Change(summary="Add retry", change_type="feature", scope="upload"))
    without_scope = _entry(Change(summary="Fix typo", change_type="docs"))

    assert render_commit_message(with_scope) == "Checkpoint: feature (upload) - Add retry"
    assert render_commit_message(without_scope) == "Checkpoint: docs - Fix typo"


def test_commit_message_multiple_changes_is_deterministic() -> None:
    entry = _entry(
        Change(summary="a", change_type="fix", scope="cli"),
        Change(summary="b", change_type="feature", scope="api"),
        Change(summary="c", change_type="fix", scope="cli"),
        Change(summary="d", change_type="docs"),
    )

    message = render_commit_message(entry)

    assert message == "Checkpoint: 4 changes - fix(2), feature, docs [cli, api]"
    assert render_commit_message(entry) == message


def test_commit_message_without_changes() -> None:
    assert render_commit_message(_entry()) == "Checkpoint"
