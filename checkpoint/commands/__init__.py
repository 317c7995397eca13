"""
Command implementations behind the CLI.

Each ``run_*`` function takes the project path plus options, prints its own
output, and returns a process exit code. They catch CheckpointError (and the
ValueError raised by config loading) and report it on stderr; anything else
propagates.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape

from ..audit_log import log_operation
from ..errors import CheckpointError, ValidationError


def report_error(err: Console, exc: Exception) -> int:
    """Print an error (with issues and hint) to the stderr console. Returns 1."""
    if isinstance(exc, ValidationError):
        err.print("error: validation failed", style="bold red")
        for issue in exc.issues:
            err.print(f"  - {escape(str(issue))}", style="red")
    else:
        err.print(f"error: {escape(str(exc))}", style="bold red")
    hint = getattr(exc, "hint", None) if isinstance(exc, CheckpointError) else None
    if hint:
        err.print(f"hint: {escape(hint)}", style="dim")
    return 1


def record_operation(err: Console, project_path: Path, operation: str, **details: Any) -> None:
    """Write an audit log line; a failure only warns since the log is informational."""
    try:
        log_operation(project_path, operation, **details)
    except OSError as e:
        err.print(f"warning: audit log not updated ({escape(str(e))})", style="yellow")
