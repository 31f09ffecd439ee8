"""
CLI Output Utilities

Progress and summaries go to stderr through a rich console; stdout carries
only machine-relevant output (JSON results, dry-run plans).
"""

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from splice.cli.config import CLIConfig
from splice.schemas import SurgeryResult


# Console instance for human-facing output
_console = Console(stderr=True)


def get_console() -> Console:
    """
    Get the stderr console instance.
    """
    return _console


def print_json(result: SurgeryResult) -> None:
    typer.echo(result.model_dump_json(indent=2))


def print_plan(result: SurgeryResult) -> None:
    """
    Print the rewrite plan, one directive per line, on stdout.
    """
    for line in result.plan:
        typer.echo(line)


def positions_table(result: SurgeryResult) -> Table:
    table = Table(title="Tracked branches")
    table.add_column("Branch", style="cyan", no_wrap=True)
    table.add_column("Depth", justify="right", style="magenta")
    table.add_column("Commit", style="green")
    for position in result.positions:
        table.add_row(escape(position.name), str(position.depth), position.sha[:12])
    return table


def moves_table(result: SurgeryResult) -> Table:
    table = Table(title=f"Branches moved by {result.operation.value}")
    table.add_column("Branch", style="cyan", no_wrap=True)
    table.add_column("Depth", justify="right", style="magenta")
    table.add_column("Old", style="red")
    table.add_column("New", style="green")
    for move in result.moves:
        table.add_row(
            escape(move.name),
            f"{move.old_depth} -> {move.new_depth}",
            move.old_sha[:12],
            move.new_sha[:12],
        )
    for name in result.lost_branches:
        table.add_row(escape(name), "-", "[yellow]unchanged[/yellow]", "")
    return table


def print_summary(result: SurgeryResult) -> None:
    """
    Print the outcome of an operation respecting --json and --quiet.
    """
    if CLIConfig.is_json_output():
        print_json(result)
        return

    if result.dry_run:
        print_plan(result)
        if not CLIConfig.is_quiet() and result.positions:
            _console.print(positions_table(result))
        return

    if not CLIConfig.is_quiet() and (result.moves or result.lost_branches):
        _console.print(moves_table(result))
