"""CLI entrypoint for checkpoint."""

import logging
import sys
from pathlib import Path

import click

from . import __version__


@click.group()
@click.version_option(__version__, prog_name="checkpoint")
@click.option(
    "--project",
    "-C",
    type=click.Path(exists=False, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Project root (defaults to the current directory)",
)
@click.option("--verbose", is_flag=True, help="Log debug output to stderr")
@click.pass_context
def cli(ctx: click.Context, project: Path | None, verbose: bool) -> None:
    """checkpoint - Append-only, LLM-curated changelog for git projects.

    Typical cycle:

        checkpoint check     # write the draft

        checkpoint lint      # catch obvious mistakes

        checkpoint commit    # append, commit, record the hash
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    if project is None:
        project = Path.cwd()

    if not project.exists() or not project.is_dir():
        raise click.BadParameter(f"Directory '{project}' does not exist.", param_hint="--project / -C")

    ctx.obj["project"] = project.resolve()


@cli.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """Prepare a checkpoint draft from the current git changes."""
    from .commands.session_cmd import run_check

    exit_code = run_check(ctx.obj["project"])
    sys.exit(exit_code)


@cli.command()
@click.option("--dry-run", "-n", is_flag=True, help="Show commit message and staged files without committing")
@click.option("--changelog-only", is_flag=True, help="Stage only the changelog and context instead of all changes")
@click.pass_context
def commit(ctx: click.Context, dry_run: bool, changelog_only: bool) -> None:
    """Validate the draft, append it, git commit, and record the commit hash."""
    from .commands.commit_cmd import run_commit

    exit_code = run_commit(ctx.obj["project"], dry_run=dry_run, changelog_only=changelog_only)
    sys.exit(exit_code)


@cli.command()
@click.pass_context
def lint(ctx: click.Context) -> None:
    """Check the draft for errors and obvious mistakes."""
    from .commands.commit_cmd import run_lint

    exit_code = run_lint(ctx.obj["project"])
    sys.exit(exit_code)


@cli.command()
@click.pass_context
def start(ctx: click.Context) -> None:
    """Check readiness and show next steps from the last checkpoint."""
    from .commands.session_cmd import run_start

    exit_code = run_start(ctx.obj["project"])
    sys.exit(exit_code)


@cli.command()
@click.pass_context
def clean(ctx: click.Context) -> None:
    """Abort an in-progress checkpoint (removes draft, diff and lock)."""
    from .commands.session_cmd import run_clean

    exit_code = run_clean(ctx.obj["project"])
    sys.exit(exit_code)


@cli.command()
@click.argument("topic", type=click.Choice(["history", "next"]), default="history")
@click.option("--limit", type=int, default=None, help="Number of checkpoints to scan")
@click.pass_context
def explain(ctx: click.Context, topic: str, limit: int | None) -> None:
    """Show recent history or outstanding next steps.

    Examples:

        checkpoint explain history

        checkpoint explain next
    """
    from .commands.explain_cmd import run_explain

    exit_code = run_explain(ctx.obj["project"], topic, limit=limit)
    sys.exit(exit_code)


@cli.command()
@click.argument("query", required=False, default="")
@click.option("--failed", is_flag=True, help="Search failed approaches")
@click.option("--pattern", is_flag=True, help="Search established patterns")
@click.option("--decision", is_flag=True, help="Search decisions made")
@click.option("--scope", type=str, default="", help="Filter by scope")
@click.option("--recent", type=int, default=0, help="Limit to the N most recent checkpoints")
@click.option("--json", "output_json", is_flag=True, help="Output results as JSON")
@click.pass_context
def search(
    ctx: click.Context,
    query: str,
    failed: bool,
    pattern: bool,
    decision: bool,
    scope: str,
    recent: int,
    output_json: bool,
) -> None:
    """Search changelog and context history.

    Examples:

        checkpoint search retry

        checkpoint search --failed

        checkpoint search cache --scope api --recent 5
    """
    from .commands.explain_cmd import run_search

    exit_code = run_search(
        ctx.obj["project"],
        query,
        failed=failed,
        pattern=pattern,
        decision=decision,
        scope=scope,
        recent=recent,
        output_json=output_json,
    )
    sys.exit(exit_code)


@cli.command()
@click.option("--hash", "commit_hash", type=str, default=None, help="Commit id to record on the pending entry")
@click.pass_context
def recover(ctx: click.Context, commit_hash: str | None) -> None:
    """Resolve an entry that was appended but never got its commit hash."""
    from .commands.commit_cmd import run_recover

    exit_code = run_recover(ctx.obj["project"], commit_hash=commit_hash)
    sys.exit(exit_code)


@cli.command("audit-log")
@click.option("--last", "last_n", type=int, default=20, show_default=True, help="Number of entries to show")
@click.pass_context
def audit_log(ctx: click.Context, last_n: int) -> None:
    """Show recent state-changing operations."""
    from .audit_log import format_audit_entry, read_audit_log

    entries = read_audit_log(ctx.obj["project"], last_n=last_n)
    if not entries:
        click.echo("No audit log entries.")
    for entry in entries:
        click.echo(format_audit_entry(entry))
    sys.exit(0)


if __name__ == "__main__":
    cli()
