"""Generate, plan and doctor commands - drive one engine cycle."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..engine.applier import ApplyStepResult
from ..engine.planner import Plan, PlanStep
from ..pipeline import compute_generate_plan, execute_generate_plan


STEP_STYLES = {
    "create": "green",
    "update": "yellow",
    "delete": "red",
    "noop": "dim",
}

STEP_ICONS = {
    "create": "+",
    "update": "~",
    "delete": "-",
    "noop": "=",
}


def echo_json(data: Any) -> None:
    """Print a JSON document to stdout (never wrapped or highlighted)."""
    click.echo(json.dumps(data, indent=2))


def plan_table(plan: Plan, title: str = "Plan") -> Table:
    """Render plan steps as a table."""
    table = Table(title=title)
    table.add_column("", width=1)
    table.add_column("Action")
    table.add_column("Kind")
    table.add_column("Path")

    for step in plan.steps:
        style = STEP_STYLES[step.kind]
        table.add_row(
            STEP_ICONS[step.kind],
            f"[{style}]{step.kind}[/{style}]",
            step.node.kind,
            escape(step.path or step.node.id),
        )
    return table


def format_summary(plan: Plan) -> str:
    s = plan.summary
    return (
        f"[green]+{s.create} created[/green]  "
        f"[yellow]~{s.update} updated[/yellow]  "
        f"[red]-{s.delete} deleted[/red]  "
        f"[dim]={s.noop} unchanged[/dim]"
    )


def format_step(step: PlanStep, result: ApplyStepResult) -> str:
    """One line per applied step."""
    style = STEP_STYLES[step.kind]
    line = f"  [{style}]{STEP_ICONS[step.kind]} {step.kind:<6}[/{style}] {escape(result.path or step.node.id)}"
    if step.kind in ("create", "update") and not result.changed:
        line += " [dim](already on disk)[/dim]"
    elif step.keep_file:
        line += " [dim](file kept, now owned by another node)[/dim]"
    return line


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------


def run_generate(
    project_dir: Path,
    *,
    dry_run: bool = False,
    include_unchanged: bool = False,
    output_json: bool = False,
) -> int:
    """
    Plan and (unless ``dry_run``) apply one generation cycle.

    Returns exit code (0 on success; engine errors propagate).
    """
    console = Console(stderr=True)

    generate_plan = compute_generate_plan(project_dir, include_unchanged=include_unchanged)
    plan = generate_plan.plan

    if dry_run:
        if output_json:
            echo_json({"dryRun": True, **plan.to_dict()})
            return 0
        console.print(generate_plan.summary())
        if plan.steps:
            console.print(plan_table(plan, title="Planned steps"))
        console.print("[dim]Dry run - nothing written.[/dim]")
        return 0

    if not output_json:
        console.print(f"[bold]Generating[/bold] {escape(str(project_dir))}")

    def on_step(step: PlanStep, result: ApplyStepResult) -> None:
        if not output_json and step.kind != "noop":
            console.print(format_step(step, result))

    result = execute_generate_plan(generate_plan, on_step=on_step)

    if output_json:
        echo_json(
            {
                "dryRun": False,
                **plan.to_dict(),
                "written": result.written.to_dict(),
                "erased": result.erased.to_dict(),
                "manifest": str(result.manifest_path) if result.manifest_path else None,
            }
        )
        return 0

    if not plan.summary.changed:
        console.print("[green]✓[/green] Up to date.")
    console.print(format_summary(plan))
    return 0


def run_plan(project_dir: Path, *, include_unchanged: bool = False, output_json: bool = False) -> int:
    """Show what generate would do. Writes nothing."""
    return run_generate(
        project_dir,
        dry_run=True,
        include_unchanged=include_unchanged,
        output_json=output_json,
    )


def run_doctor(
    project_dir: Path,
    *,
    fix: bool = False,
    quick: bool = False,
    output_json: bool = False,
) -> int:
    """
    Check generated artifacts against the current entity definitions.

    Returns exit code:
    - 0 when everything is up to date, when ``fix`` applied the changes,
      or in quick mode
    - 2 when drift is found and ``fix`` is not given
    """
    console = Console(stderr=True)

    generate_plan = compute_generate_plan(project_dir, include_unchanged=not quick)
    plan = generate_plan.plan
    drift = plan.summary.changed

    fixed = False
    if drift and fix:
        execute_generate_plan(generate_plan, operation="doctor-fix")
        fixed = True

    exit_code = 2 if drift and not fix and not quick else 0

    if output_json:
        echo_json(
            {
                "clean": not drift,
                "fixed": fixed,
                "entities": len(generate_plan.entities),
                **plan.to_dict(),
            }
        )
        return exit_code

    if not drift:
        console.print(
            f"[green]✓[/green] All artifacts up to date "
            f"({len(generate_plan.entities)} entities, {plan.summary.noop} artifacts)."
        )
        return exit_code

    console.print(plan_table(plan, title="Drift"))
    console.print(format_summary(plan))
    if fixed:
        console.print("[green]✓[/green] Applied pending changes.")
    else:
        console.print("[yellow]![/yellow] Artifacts are out of date. Run [bold]tsera doctor --fix[/bold] to regenerate.")
    return exit_code
