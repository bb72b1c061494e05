"""History command - display the audit log of applied generations."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.markup import escape

from ..audit_log import format_audit_entry, read_audit_log
from .generate import echo_json


def run_history(
    project_dir: Path,
    *,
    last_n: int | None = None,
    verbose: bool = False,
    output_json: bool = False,
) -> int:
    """
    Print audit entries, oldest first.

    Returns the number of entries displayed.
    """
    entries = read_audit_log(project_dir, last_n=last_n)

    if output_json:
        echo_json([entry.to_dict() for entry in entries])
        return len(entries)

    console = Console()
    if not entries:
        console.print("[dim]No operations logged yet.[/dim]")
        return 0

    for entry in entries:
        console.print(escape(format_audit_entry(entry, verbose=verbose)))
        console.print()

    return len(entries)
