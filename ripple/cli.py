"""Typer-based CLI for ripple change-impact analysis."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape

from . import __version__, render
from .errors import RippleError
from .log import DebugBuffer, configure_logging
from .models import Diff
from .project import Project
from .runner import COVER_MODES, TestOptions, run_tests, select_units

logger = logging.getLogger(__name__)

err_console = Console(stderr=True)

app = typer.Typer(
    help="Find the units affected by changes since a base revision, and test only those.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@dataclass
class CliState:
    repo: Optional[Path]
    buffer: DebugBuffer


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"ripple v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Log debugging output to stderr."),
    repo: Optional[Path] = typer.Option(
        None, "--repo", "-C", file_okay=False, help="Run against the repository containing this directory."
    ),
):
    """ripple: git-centric change-impact analysis for Python and Go projects."""
    ctx.obj = CliState(repo=repo, buffer=configure_logging(verbose))


def _fail(ctx: typer.Context, exc: RippleError) -> typer.Exit:
    state: CliState = ctx.obj
    err_console.print(f"[red]✗[/red] {escape(state.buffer.annotate(str(exc)))}", highlight=False)
    return typer.Exit(code=1)


def _open_project(ctx: typer.Context) -> Project:
    state: CliState = ctx.obj
    return Project.open(state.repo)


def _query(project: Project, base: Optional[str], direct: bool = False, everything: bool = False) -> Diff:
    if everything:
        diff = project.all()
    else:
        base = base or project.config.base
        project.repo.canonicalize(base)
        diff = project.diff(base) if direct else project.recursive_diff(base)
    for directory, reason in diff.skipped:
        logger.debug("skipped directory %r: %s", directory, reason)
    return diff


@app.command("status")
def status(
    ctx: typer.Context,
    direct: bool = typer.Option(False, "--direct", "-d", help="Include only directly modified units."),
    base: Optional[str] = typer.Option(
        None, "--base", "-b", help="Commitish to compare against. Defaults to the configured base."
    ),
    as_json: bool = typer.Option(False, "--json", help="Format output as JSON."),
):
    """Show files and units changed since the base revision."""
    try:
        project = _open_project(ctx)
        diff = _query(project, base, direct=direct)
    except RippleError as exc:
        raise _fail(ctx, exc)

    typer.echo(render.to_json(diff) if as_json else render.to_text(diff))


@app.command("test")
def test(
    ctx: typer.Context,
    run_all: bool = typer.Option(False, "--all", "-a", help="Run tests for all units."),
    direct: bool = typer.Option(False, "--direct", "-d", help="Include only directly modified units."),
    base: Optional[str] = typer.Option(
        None, "--base", "-b", help="Commitish to compare against. Defaults to the configured base."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Increase test output verbosity."),
    run: Optional[str] = typer.Option(None, "--run", help="Run only tests matching a pattern."),
    list_pattern: Optional[str] = typer.Option(
        None, "--list", help="List tests matching a pattern without running them."
    ),
    race: bool = typer.Option(False, "--race", "-r", help="Enable the race detector (go)."),
    cover: bool = typer.Option(False, "--cover", "-c", help="Enable coverage reporting (go)."),
    covermode: Optional[str] = typer.Option(None, "--covermode", help="Coverage mode: set, count, or atomic (go)."),
    bench: Optional[str] = typer.Option(
        None, "--bench", help="Also run benchmarks matching a pattern, with memory stats (go)."
    ),
    extra_args: Optional[List[str]] = typer.Argument(None, help="Extra arguments for the test tool, after '--'."),
):
    """Run tests for the units affected since the base revision."""
    if covermode is not None and covermode not in COVER_MODES:
        raise typer.BadParameter(f"must be one of: {', '.join(COVER_MODES)}", param_hint="--covermode")

    options = TestOptions(
        verbose=verbose,
        run=run,
        list_pattern=list_pattern,
        race=race,
        cover=cover,
        covermode=covermode,
        bench=bench,
        extra_args=list(extra_args or []),
    )

    try:
        project = _open_project(ctx)
        diff = _query(project, base, direct=direct, everything=run_all)
        units = select_units(diff)
        code = run_tests(project.backend, units, options) if units else None
    except RippleError as exc:
        raise _fail(ctx, exc)

    if code is None:
        typer.echo("No units need to be tested.")
        return
    if code != 0:
        raise typer.Exit(code=code)


@app.command("graph")
def graph(
    ctx: typer.Context,
    as_json: bool = typer.Option(False, "--json", help="Format output as JSON."),
):
    """Show the reverse dependency index: which units depend on each unit."""
    try:
        project = _open_project(ctx)
        index = project.graph(units_only=True)
    except RippleError as exc:
        raise _fail(ctx, exc)

    if as_json:
        typer.echo(render.graph_to_json(index))
    elif not index:
        typer.echo("No dependencies between units.")
    else:
        Console().print(render.graph_table(index))


if __name__ == "__main__":
    app()
