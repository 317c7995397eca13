"""Session commands: check (prepare a draft), start (readiness report), clean."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.markup import escape

from . import record_operation, report_error
from ..changelog import RecoveryAction
from ..config import DIFF_FILE, INPUT_FILE
from ..draft import prepare_draft, read_status_next_steps
from ..errors import CheckpointError, StoreIOError
from ..git import GitRepository, VersionControl, parse_numstat
from ..history import NextStepWithSource, group_by_priority
from ..model.entry import NextStep, decode_changelog_entry, is_meta_document
from ..project import Project
from ..util import short_hash

_RULE = "━" * 60


def _previous_next_steps(project: Project) -> list[NextStep]:
    """Next steps to carry into a new draft: status file first, then the last entry."""
    if project.status_path.exists():
        try:
            status_text = project.status_path.read_text(encoding="utf-8")
        except OSError as e:
            raise StoreIOError(f"read {project.status_path.name}: {e}") from e
        steps = read_status_next_steps(status_text)
        if steps:
            return steps
    last = project.changelog.decode(decode_changelog_entry, limit=1, newest_first=True, ignore=is_meta_document)
    return list(last.items[0].next_steps) if last.items else []


def run_check(project_path: Path, *, vcs: VersionControl | None = None) -> int:
    """Write the draft and diff artifacts for a new checkpoint.

    Returns:
        Exit code (0 = draft written, 1 = not a repo, already in progress, or I/O failure)
    """
    console = Console()
    err = Console(stderr=True)
    try:
        project = Project.open(project_path)
    except ValueError as e:
        return report_error(err, e)
    vcs = vcs or GitRepository(project.path)

    if not vcs.is_repository():
        err.print(f"error: {escape(str(project.path))} is not a git repository", style="bold red")
        err.print("hint: run 'git init' to initialize a repository", style="dim")
        return 1

    try:
        project.session.begin()
    except CheckpointError as e:
        return report_error(err, e)

    try:
        status = vcs.status()
        diff = vcs.diff()
        files = parse_numstat(vcs.numstat())
        draft = prepare_draft(status, DIFF_FILE, _previous_next_steps(project), files)
        project.session.write_draft(draft, diff)
    except CheckpointError as e:
        project.session.clear()
        return report_error(err, e)

    console.print(f"Draft written to {INPUT_FILE} ({len(files)} file(s) changed)", style="green")
    console.print("Edit it, run 'checkpoint lint', then 'checkpoint commit'.", style="dim")
    return 0


def _print_steps(console: Console, steps: list[NextStep]) -> None:
    groups = group_by_priority([NextStepWithSource(step=s, from_timestamp="") for s in steps])
    for label, bucket in (("HIGH", groups.high), ("MED", groups.med), ("LOW", groups.low), ("", groups.other)):
        for step in bucket:
            prefix = f"[{label}] " if label else ""
            scope = f" ({step.step.scope})" if step.step.scope else ""
            console.print(escape(f"  {prefix}{step.summary}{scope}"))


def run_start(project_path: Path, *, vcs: VersionControl | None = None) -> int:
    """Report whether the project is ready for a new checkpoint.

    Returns:
        Exit code (0 = ready, possibly with warnings; 1 = not a git repository or bad config)
    """
    console = Console()
    err = Console(stderr=True)
    try:
        project = Project.open(project_path)
    except ValueError as e:
        return report_error(err, e)
    vcs = vcs or GitRepository(project.path)

    console.print("CHECKPOINT START", style="bold")
    console.print(_RULE)

    if not vcs.is_repository():
        console.print("✗ Not a git repository", style="red")
        console.print("  hint: run 'git init' to initialize a repository", style="dim")
        return 1
    console.print("✓ Git repository detected", style="green")

    entries = project.changelog.decode(decode_changelog_entry, ignore=is_meta_document)
    if entries.items:
        console.print(f"✓ {len(entries.items)} checkpoint(s) in history", style="green")
    else:
        console.print("ℹ No checkpoints yet")
    if entries.skipped:
        console.print(f"⚠ {entries.skipped} unreadable document(s) in history", style="yellow")

    if project.session.is_in_progress():
        console.print("⚠ Checkpoint in progress", style="yellow")
        console.print(f"  continue: edit {INPUT_FILE} and run 'checkpoint commit'", style="dim")
        console.print("  abort: run 'checkpoint clean'", style="dim")
    else:
        console.print("✓ No checkpoint in progress", style="green")

    writer = project.writer()
    try:
        draft_text = project.session.read_draft() if project.session.has_draft() else None
    except CheckpointError as e:
        console.print(f"⚠ Unable to read draft: {escape(str(e))}", style="yellow")
        draft_text = None
    state = writer.recover(draft_text)
    if state.action == RecoveryAction.CLEANUP:
        console.print(
            f"⚠ Draft already committed as {short_hash(state.pending.commit_hash)}; only cleanup is left",
            style="yellow",
        )
        console.print("  run 'checkpoint commit' or 'checkpoint recover' to clear it", style="dim")
    elif state.needs_backfill:
        console.print(f"⚠ Last entry ({escape(state.pending.timestamp)}) has no commit hash", style="yellow")
        console.print("  run 'checkpoint recover' to resolve it", style="dim")

    try:
        status = vcs.status().strip()
    except CheckpointError as e:
        console.print(f"⚠ Unable to check git status: {escape(str(e))}", style="yellow")
    else:
        if status:
            console.print(f"ℹ Working directory has changes ({len(status.splitlines())} file(s))")
        else:
            console.print("✓ Working directory clean", style="green")

    console.print(_RULE)
    try:
        next_steps = _previous_next_steps(project)
    except CheckpointError as e:
        console.print(f"⚠ Unable to read next steps: {escape(str(e))}", style="yellow")
        next_steps = []
    if next_steps:
        console.print("NEXT STEPS (from last checkpoint)", style="bold")
        _print_steps(console, next_steps)
        console.print(_RULE)

    console.print("Make your changes, then run 'checkpoint check'.")
    return 0


def run_clean(project_path: Path) -> int:
    """Remove the draft, diff and lock files to abort an in-progress checkpoint."""
    console = Console()
    err = Console(stderr=True)
    try:
        project = Project.open(project_path)
        removed = project.session.clear()
    except (CheckpointError, ValueError) as e:
        return report_error(err, e)

    if not removed:
        console.print("Nothing to clean.", style="dim")
        return 0

    record_operation(err, project.path, "session-clear", files=[p.name for p in removed])
    for path in removed:
        console.print(f"Removed {path.name}")
    return 0
