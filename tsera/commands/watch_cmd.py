"""Dev command - regenerate artifacts whenever entity definitions change."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from ..engine.errors import EngineError
from ..entities import to_project_relative
from ..pipeline import run_cycle
from ..watcher import run_watch_loop
from .generate import format_summary


def run_dev(project_dir: Path) -> None:
    """
    Run an initial cycle, then watch the project and rerun on changes.

    This is a blocking command that runs until interrupted (Ctrl+C). A
    failing cycle is reported and watching continues.
    """
    console = Console(stderr=True)
    cycles = 0

    def regenerate() -> None:
        nonlocal cycles
        timestamp = datetime.now().strftime("%H:%M:%S")
        try:
            cycle = run_cycle(project_dir, operation="dev")
        except (EngineError, ValueError, OSError) as e:
            console.print(f"[dim]{timestamp}[/dim] [red]✗[/red] {escape(str(e))}")
            return

        cycles += 1
        summary = cycle.plan.plan.summary
        if summary.changed:
            console.print(f"[dim]{timestamp}[/dim] {format_summary(cycle.plan.plan)}")
        else:
            console.print(f"[dim]{timestamp}[/dim] [green]✓[/green] Up to date.")

    def on_change(paths: list[Path]) -> None:
        changed = ", ".join(to_project_relative(project_dir, p) for p in paths)
        console.print(f"[dim]changed:[/dim] {escape(changed)}")
        regenerate()

    console.print(f"[bold]Watching[/bold] {escape(str(project_dir))}")
    console.print("[dim]Press Ctrl+C to stop watching[/dim]")
    console.print()

    regenerate()
    run_watch_loop(project_dir, on_change)

    console.print()
    console.print(f"[bold]Stopped.[/bold] Ran {cycles} successful cycles.")
