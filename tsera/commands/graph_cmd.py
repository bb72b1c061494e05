"""Graph command - show the dependency graph in topological order."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..pipeline import compute_generate_plan
from .generate import echo_json


def run_graph(project_dir: Path, *, output_json: bool = False) -> int:
    """
    Print every node in the order the engine would process it.

    Returns exit code.
    """
    generate_plan = compute_generate_plan(project_dir)
    dag = generate_plan.dag

    if output_json:
        echo_json(dag.to_dict())
        return 0

    console = Console()
    if not dag.nodes:
        console.print("[dim]No entities found.[/dim]")
        return 0

    table = Table(title=f"Graph ({len(dag.nodes)} nodes, {len(dag.edges)} edges)")
    table.add_column("#", justify="right")
    table.add_column("Node")
    table.add_column("Mode")
    table.add_column("Depends on")

    for i, node in enumerate(dag.order, 1):
        mode_style = "cyan" if node.mode == "input" else "white"
        deps = ", ".join(dag.dependencies_of(node.id))
        table.add_row(
            str(i),
            escape(node.id),
            f"[{mode_style}]{node.mode}[/{mode_style}]",
            escape(deps) or "[dim]-[/dim]",
        )

    console.print(table)
    return 0
