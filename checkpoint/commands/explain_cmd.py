"""Read-only commands: explain (history / next steps) and search."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from . import report_error
from ..errors import CheckpointError
from ..history import load_history, render_history, render_next
from ..project import Project
from ..search import SearchOptions, search
from ..util import short_hash

EXPLAIN_TOPICS = ("history", "next")


def run_explain(project_path: Path, topic: str = "history", *, limit: int | None = None) -> int:
    """Print recent history or outstanding next steps as markdown.

    Args:
        project_path: Project root
        topic: "history" or "next"
        limit: Checkpoints to scan (defaults to the configured limit for the topic)

    Returns:
        Exit code (0 = success, 1 = unknown topic or bad config)
    """
    err = Console(stderr=True)
    if topic not in EXPLAIN_TOPICS:
        err.print(f"Unknown topic: {topic}", style="bold red")
        err.print(f"Available: {', '.join(EXPLAIN_TOPICS)}", style="dim")
        return 1

    try:
        project = Project.open(project_path)
    except ValueError as e:
        return report_error(err, e)

    settings = project.settings
    default_limit = settings.next_limit if topic == "next" else settings.history_limit
    try:
        data = load_history(
            project.changelog,
            project.context,
            limit or default_limit,
            decision_cap=settings.decision_cap,
        )
    except CheckpointError as e:
        return report_error(err, e)
    print(render_next(data) if topic == "next" else render_history(data))
    return 0


def run_search(
    project_path: Path,
    query: str = "",
    *,
    failed: bool = False,
    pattern: bool = False,
    decision: bool = False,
    scope: str = "",
    recent: int = 0,
    output_json: bool = False,
) -> int:
    """Search changelog and context for a substring.

    Returns:
        Exit code (0 = search ran, even with no matches; 1 = no query given or bad config)
    """
    console = Console()
    err = Console(stderr=True)
    options = SearchOptions(
        query=query,
        failed=failed,
        pattern=pattern,
        decision=decision,
        scope=scope,
        recent=recent,
    )
    try:
        project = Project.open(project_path)
        results = search(project.changelog, project.context, options)
    except CheckpointError as e:
        return report_error(err, e)
    except ValueError as e:
        report_error(err, e)
        err.print(
            "usage: checkpoint search <query> [--failed|--pattern|--decision] [--scope S] [--recent N]",
            style="dim",
            markup=False,
        )
        return 1

    if output_json:
        print(json.dumps({"query": query, "results": [r.to_dict() for r in results]}, indent=2))
        return 0

    if not results:
        console.print("No matches found.")
        return 0

    console.print(f"Found {len(results)} match(es):\n")
    for i, r in enumerate(results):
        if i:
            console.print("---", style="dim")
        commit = f" ({short_hash(r.commit_hash)})" if r.commit_hash else ""
        section = f"{r.section} > {r.field}" if r.section == "context" else r.section
        console.print(escape(f"[{r.source}] {r.timestamp}{commit}"), style="cyan")
        console.print(f"Section: {escape(section)}", style="dim")
        console.print(escape(r.content))
        console.print()
    return 0
