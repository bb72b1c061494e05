"""CLI entrypoint for tsera."""

import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import click

from . import __version__
from .config import find_project_root
from .engine.errors import EngineError


@contextmanager
def _engine_errors() -> Iterator[None]:
    """Report engine, config and entity errors as a one-line CLI failure."""
    try:
        yield
    except (EngineError, ValueError) as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.version_option(__version__, prog_name="tsera")
@click.option(
    "--project",
    "-p",
    type=click.Path(exists=False, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Project root (defaults to the nearest directory containing tsera.toml)",
)
@click.pass_context
def cli(ctx: click.Context, project: Path | None) -> None:
    """tsera - Incremental generator for entity-driven projects.

    Turns entity definitions into schemas, migrations, docs and tests,
    rewriting only what changed since the last run.
    """
    ctx.ensure_object(dict)
    if project is None:
        project = find_project_root(Path.cwd()) or Path.cwd()

    if not project.exists() or not project.is_dir():
        raise click.BadParameter(f"Directory '{project}' does not exist.", param_hint="--project / -p")

    ctx.obj["project"] = project.resolve()


@cli.command()
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would be done without writing (diagnostic only)",
)
@click.option(
    "--all",
    "include_unchanged",
    is_flag=True,
    help="Also list unchanged artifacts",
)
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output results as JSON",
)
@click.pass_context
def generate(ctx: click.Context, dry_run: bool, include_unchanged: bool, output_json: bool) -> None:
    """Generate artifacts for every entity.

    Only artifacts whose content changed are rewritten; artifacts of
    removed entities are deleted.

    Examples:

        tsera generate

        tsera generate --dry-run --all
    """
    from .commands.generate import run_generate

    with _engine_errors():
        exit_code = run_generate(
            ctx.obj["project"],
            dry_run=dry_run,
            include_unchanged=include_unchanged,
            output_json=output_json,
        )
    sys.exit(exit_code)


@cli.command()
@click.option(
    "--all",
    "include_unchanged",
    is_flag=True,
    help="Also list unchanged artifacts",
)
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output results as JSON",
)
@click.pass_context
def plan(ctx: click.Context, include_unchanged: bool, output_json: bool) -> None:
    """Show the pending plan without writing anything."""
    from .commands.generate import run_plan

    with _engine_errors():
        exit_code = run_plan(
            ctx.obj["project"],
            include_unchanged=include_unchanged,
            output_json=output_json,
        )
    sys.exit(exit_code)


@cli.command()
@click.option(
    "--fix",
    is_flag=True,
    help="Regenerate out-of-date artifacts",
)
@click.option(
    "--quick",
    is_flag=True,
    help="Only list changes and always exit 0",
)
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output results as JSON",
)
@click.pass_context
def doctor(ctx: click.Context, fix: bool, quick: bool, output_json: bool) -> None:
    """Check that generated artifacts match the entity definitions.

    Exits with status 2 when artifacts are out of date (unless --fix or
    --quick is given).

    Examples:

        tsera doctor

        tsera doctor --fix
    """
    from .commands.generate import run_doctor

    with _engine_errors():
        exit_code = run_doctor(
            ctx.obj["project"],
            fix=fix,
            quick=quick,
            output_json=output_json,
        )
    sys.exit(exit_code)


@cli.command()
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output the graph as JSON",
)
@click.pass_context
def graph(ctx: click.Context, output_json: bool) -> None:
    """Show the dependency graph in processing order."""
    from .commands.graph_cmd import run_graph

    with _engine_errors():
        exit_code = run_graph(ctx.obj["project"], output_json=output_json)
    sys.exit(exit_code)


@cli.command()
@click.option(
    "--last",
    "last_n",
    type=int,
    default=None,
    help="Show only the last N entries",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="List every written and erased path",
)
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output entries as JSON",
)
@click.pass_context
def history(ctx: click.Context, last_n: int | None, verbose: bool, output_json: bool) -> None:
    """Show the audit log of applied generations."""
    from .commands.history import run_history

    run_history(ctx.obj["project"], last_n=last_n, verbose=verbose, output_json=output_json)


@cli.command()
@click.pass_context
def dev(ctx: click.Context) -> None:
    """Watch entity definitions and regenerate on change.

    Runs until interrupted (Ctrl+C).
    """
    from .commands.watch_cmd import run_dev

    run_dev(ctx.obj["project"])


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
