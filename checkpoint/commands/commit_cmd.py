"""Commit-side commands: lint, commit, recover."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from . import record_operation, report_error
from .. import __version__
from ..changelog import RecoveryAction, write_status
from ..config import CHANGELOG_FILE, CONTEXT_FILE, INPUT_FILE, SESSION_FILES
from ..draft import parse_draft
from ..errors import CheckpointError, NotFoundError
from ..git import GitRepository, VersionControl
from ..model.entry import CheckpointEntry
from ..model.validation import lint_entry, render_commit_message, validate_draft
from ..project import Project
from ..util import short_hash

logger = logging.getLogger(__name__)


def run_lint(project_path: Path) -> int:
    """Validate the draft and print advisory suggestions.

    Returns:
        Exit code (0 = draft valid, suggestions are advisory; 1 = invalid or missing draft)
    """
    console = Console()
    err = Console(stderr=True)
    try:
        project = Project.open(project_path)
        if not project.session.has_draft():
            raise NotFoundError(f"no draft found ({INPUT_FILE})", hint="run 'checkpoint check' first")
        entry = parse_draft(project.session.read_draft())
    except (CheckpointError, ValueError) as e:
        return report_error(err, e)

    issues = validate_draft(entry, max_summary_length=project.settings.max_summary_length)
    suggestions = lint_entry(entry)

    for issue in issues:
        err.print(f"error: {escape(str(issue))}", style="bold red")
    for suggestion in suggestions:
        console.print(f"warning: {escape(suggestion)}", style="yellow")

    if issues:
        return 1
    if not suggestions:
        console.print("✓ No issues found", style="green")
    return 0


def _stage(vcs: VersionControl, project: Project, changelog_only: bool) -> None:
    if changelog_only or project.settings.stage == "changelog":
        vcs.stage(CHANGELOG_FILE)
        if project.context.exists():
            vcs.stage(CONTEXT_FILE)
    else:
        vcs.stage_all(exclude=SESSION_FILES)


def _complete(
    project: Project,
    console: Console,
    err: Console,
    entry: CheckpointEntry,
    message: str,
) -> int:
    """Write the status file and clear the session for an entry that already has its hash."""
    try:
        write_status(project.status_path, entry, message, project.writer().read_meta())
    except CheckpointError as e:
        err.print(f"warning: failed to write status file: {escape(str(e))}", style="yellow")

    try:
        removed = project.session.clear()
    except CheckpointError as e:
        err.print(f"warning: {escape(str(e))}", style="yellow")
    else:
        record_operation(err, project.path, "session-clear", files=[p.name for p in removed])

    console.print(f"✓ Committed {short_hash(entry.commit_hash)}: {escape(message)}", style="green")
    return 0


def _finish(
    project: Project,
    console: Console,
    err: Console,
    entry: CheckpointEntry,
    message: str,
    commit_hash: str,
) -> int:
    """Backfill, write status, clear the session."""
    try:
        project.writer().backfill_commit_hash(commit_hash)
    except CheckpointError as e:
        report_error(err, e)
        err.print("warning: the commit succeeded but its hash was not recorded", style="yellow")
        err.print(f"hint: run 'checkpoint recover --hash {commit_hash}'", style="dim")
        return 1
    entry.commit_hash = commit_hash
    record_operation(
        err,
        project.path,
        "commit-hash-backfill",
        files=[CHANGELOG_FILE],
        metadata={"commit_hash": commit_hash, "timestamp": entry.timestamp},
    )
    return _complete(project, console, err, entry, message)


def run_commit(
    project_path: Path,
    *,
    dry_run: bool = False,
    changelog_only: bool = False,
    vcs: VersionControl | None = None,
    tool_version: str = __version__,
) -> int:
    """Validate the draft, append it, commit, and backfill the commit hash.

    If a previous run appended this draft's entry but never recorded a
    commit hash, the entry is not appended again: the commit is created (or
    found at HEAD) and backfilled. If the hash was recorded too, only the
    status file and session cleanup remain.

    Returns:
        Exit code (0 = committed or dry run, 1 = any failure)
    """
    console = Console()
    err = Console(stderr=True)
    try:
        project = Project.open(project_path)
    except ValueError as e:
        return report_error(err, e)
    vcs = vcs or GitRepository(project.path)
    writer = project.writer()

    if not vcs.is_repository():
        err.print(f"error: {escape(str(project.path))} is not a git repository", style="bold red")
        err.print("hint: run 'git init' to initialize a repository", style="dim")
        return 1

    try:
        if not project.session.has_draft():
            raise NotFoundError(
                f"draft not found at {project.session.paths.draft}",
                hint="run 'checkpoint check' to generate it, or 'checkpoint clean' to restart",
            )
        draft_text = project.session.read_draft()
        state = writer.recover(draft_text)

        if state.action == RecoveryAction.ORPHANED:
            raise CheckpointError(
                f"last changelog entry ({state.pending.timestamp}) has no commit hash",
                hint="run 'checkpoint recover' before committing a new checkpoint",
            )

        if state.action in (RecoveryAction.BACKFILL, RecoveryAction.CLEANUP):
            entry = state.pending
            resumed = True
        else:
            entry = writer.finalize(draft_text)
            resumed = False
    except CheckpointError as e:
        return report_error(err, e)

    message = render_commit_message(entry)

    if state.action == RecoveryAction.CLEANUP:
        if dry_run:
            console.print(
                f"[dry-run] Entry already committed as {short_hash(entry.commit_hash)}; would only clear the draft",
                markup=False,
            )
            return 0
        logger.info("entry %s already committed; clearing session", entry.timestamp)
        console.print("Entry already committed; clearing the draft", style="yellow")
        return _complete(project, console, err, entry, message)

    if dry_run:
        if resumed:
            console.print(
                "[dry-run] Entry already appended; would only commit and backfill",
                style="dim",
                markup=False,
            )
        console.print(f"[dry-run] Would commit with message:\n{message}", markup=False)
        console.print("\n[dry-run] Files that would be staged:", markup=False)
        if changelog_only or project.settings.stage == "changelog":
            console.print(f"  - {CHANGELOG_FILE}\n  - {CONTEXT_FILE}", markup=False)
        else:
            console.print("  - All modified and untracked files (git add -A, except draft, diff and lock)", markup=False)
        return 0

    if resumed:
        head = vcs.head()
        if head is not None and head[1] == message:
            logger.info("HEAD already carries the checkpoint commit; backfilling only")
            return _finish(project, console, err, entry, message, head[0])
        console.print("Resuming: entry already appended, committing", style="yellow")
    else:
        try:
            writer.initialize(project.path, tool_version)
            written = writer.append(entry)
            writer.append_context(entry)
        except CheckpointError as e:
            return report_error(err, e)
        record_operation(
            err,
            project.path,
            "checkpoint-append",
            files=[CHANGELOG_FILE, CONTEXT_FILE],
            bytes_written=written,
            metadata={"timestamp": entry.timestamp, "changes": len(entry.changes)},
        )

    try:
        _stage(vcs, project, changelog_only)
        commit_hash = vcs.commit(message)
    except CheckpointError as e:
        report_error(err, e)
        err.print("warning: changelog has been appended but not committed", style="yellow")
        err.print("hint: fix the git problem and run 'checkpoint commit' again", style="dim")
        return 1

    return _finish(project, console, err, entry, message, commit_hash)


def run_recover(
    project_path: Path,
    *,
    commit_hash: str | None = None,
    vcs: VersionControl | None = None,
) -> int:
    """Resolve an entry that was appended but never received its commit hash.

    With ``commit_hash`` the given id is backfilled. Otherwise HEAD is used
    when its subject matches the entry's commit message. A draft whose entry
    is already committed and hashed is simply cleared.

    Returns:
        Exit code (0 = nothing to do or resolved, 1 = needs manual action)
    """
    console = Console()
    err = Console(stderr=True)
    try:
        project = Project.open(project_path)
        writer = project.writer()
        draft_text = project.session.read_draft() if project.session.has_draft() else None
        state = writer.recover(draft_text)
    except (CheckpointError, ValueError) as e:
        return report_error(err, e)

    if state.action == RecoveryAction.CLEAN:
        console.print("Nothing to recover.", style="green")
        return 0
    if state.action == RecoveryAction.COMMIT:
        console.print("A draft is waiting; run 'checkpoint commit' to finish it.")
        return 0

    entry = state.pending
    message = render_commit_message(entry)
    if state.action == RecoveryAction.CLEANUP:
        console.print(f"Entry {escape(entry.timestamp)} is already committed; clearing the draft", style="yellow")
        return _complete(project, console, err, entry, message)

    console.print(f"Entry {escape(entry.timestamp)} has no commit hash ({state.action.value})", style="yellow")

    if commit_hash is None:
        vcs = vcs or GitRepository(project.path)
        head = vcs.head()
        if head is None or head[1] != message:
            err.print("error: HEAD does not match the pending entry", style="bold red")
            if state.action == RecoveryAction.BACKFILL:
                err.print("hint: run 'checkpoint commit' to create the commit", style="dim")
            else:
                err.print("hint: pass --hash <commit> to record the right commit", style="dim")
            return 1
        commit_hash = head[0]

    if state.action == RecoveryAction.BACKFILL:
        return _finish(project, console, err, entry, message, commit_hash)

    try:
        writer.backfill_commit_hash(commit_hash)
    except CheckpointError as e:
        return report_error(err, e)
    record_operation(
        err,
        project.path,
        "commit-hash-backfill",
        files=[CHANGELOG_FILE],
        metadata={"commit_hash": commit_hash, "timestamp": entry.timestamp},
    )
    console.print(f"✓ Recorded {short_hash(commit_hash)} on entry {escape(entry.timestamp)}", style="green")
    return 0
