#!/usr/bin/env python3
"""
Expecto CLI - HTTP API Testing Tool

Usage:
    expecto run <collection.yaml> [OPTIONS]
    expecto validate <collection.yaml> [--env KEY=VALUE ...]
    expecto info
    expecto --version
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__
from .reporting import RunStatus
from .runner import run_collection_async
from .schema_parsing import Collection, load_collection

app = typer.Typer(
    name="expecto",
    help="🔮 Expecto - HTTP API Testing Tool",
    add_completion=False,
)
console = Console()

COLLECTION_ARGUMENT = typer.Argument(
    ...,
    help="Path to the collection YAML file",
    exists=True,
    readable=True,
)
ENV_OPTION = typer.Option(
    None, "--env", "-e",
    help="KEY=VALUE for {{env.KEY}} templates, overriding the environment (repeatable)"
)


def version_callback(value: bool):
    if value:
        console.print(f"🔮 Expecto v{__version__}")
        raise typer.Exit()


def setup_logging(level: Optional[str]) -> None:
    """Route library logs through rich when a level is given."""
    if level is None:
        return
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def parse_env(pairs: Optional[List[str]]) -> dict[str, str]:
    """Merge KEY=VALUE pairs over os.environ."""
    environ = dict(os.environ)
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--env")
        environ[key] = value
    return environ


def load_or_exit(collection_file: Path, env: Optional[List[str]]) -> Collection:
    """Load a collection, printing the errors and exiting 1 if it is invalid."""
    collection, validation = load_collection(collection_file, environ=parse_env(env))

    if not validation.is_valid:
        console.print("\n[red]❌ Validation failed:[/red]")
        console.print(str(validation))
        raise typer.Exit(code=1)

    return collection


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True,
        help="Show version and exit"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", "-l",
        help="Log level: debug, info, warning or error"
    ),
):
    """
    🔮 Expecto - HTTP API Testing Tool

    Test HTTP APIs with declarative YAML collections.
    """
    setup_logging(log_level)


@app.command()
def run(
    collection_file: Path = COLLECTION_ARGUMENT,
    env: Optional[List[str]] = ENV_OPTION,
    verbose: bool = typer.Option(
        True, "--verbose/--no-verbose", "-V",
        help="Show detailed step output"
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Only show errors and final status"
    ),
    output: str = typer.Option(
        "text", "--output", "-o",
        help="Output format: text or json"
    ),
    report_dir: Path = typer.Option(
        Path("reports"), "--report-dir", "-r",
        help="Directory to save JSON reports"
    ),
    no_report: bool = typer.Option(
        False, "--no-report",
        help="Don't save a JSON report file"
    ),
):
    """
    Run an HTTP test collection.

    Sends every step's request, checks the responses, and exits 1
    unless every step passed.
    """
    if not quiet:
        console.print(f"\n📄 Loading collection: {collection_file}")

    collection = load_or_exit(collection_file, env)

    if not quiet:
        console.print(f"   [green]✅ Valid collection:[/green] {collection.name}")

    reporter = asyncio.run(run_collection_async(collection, verbose, quiet, console=console))
    report = reporter.report

    if output == "json":
        console.print_json(data=report.to_dict())
    elif not quiet:
        console.print("\n" + report.summary())

    if not no_report:
        report_path = report_dir / f"{report.run_id}.json"
        reporter.save_json(report_path)
        if not quiet:
            console.print(f"\n📁 Report saved: {report_path}")

    raise typer.Exit(code=0 if report.status == RunStatus.PASSED else 1)


@app.command()
def validate(
    collection_file: Path = COLLECTION_ARGUMENT,
    env: Optional[List[str]] = ENV_OPTION,
):
    """
    Validate a collection YAML file.

    Checks the schema and lists the steps without sending any request.
    """
    console.print(f"\n📄 Validating: {collection_file}")

    collection = load_or_exit(collection_file, env)

    console.print(f"\n[green]✅ Valid collection:[/green] {collection.name}")
    console.print(f"   Server: {collection.server.base_url}")
    console.print(f"   Steps: {len(collection.steps)}")

    table = Table(title="Steps")
    table.add_column("ID", style="cyan")
    table.add_column("Method", style="magenta")
    table.add_column("Path")
    table.add_column("Expect")

    for step in collection.steps:
        expect = [f"status {step.expect.status}"] if step.expect.status is not None else []
        expect.extend(check.op.value for check in step.expect.checks)
        table.add_row(step.id, step.method, step.path, ", ".join(expect))

    console.print()
    console.print(table)


@app.command()
def info():
    """
    Show information about Expecto.
    """
    console.print(f"""
🔮 [bold]Expecto[/bold] v{__version__}

Fluent HTTP API Testing Tool

[bold]Features:[/bold]
  • Chainable response assertions with path-aware failure messages
  • Retries with exponential backoff, deadlines and cancellation
  • Replayable request bodies
  • Declarative YAML test collections with {{{{env.KEY}}}} templates
  • Bearer, API key and basic authentication
  • JSON run reports

[bold]Quick Start:[/bold]
  expecto validate collections/users.yaml
  expecto run collections/users.yaml --env TOKEN=secret
""")


if __name__ == "__main__":
    app()
