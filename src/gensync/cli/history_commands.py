"""History browsing commands: gensync history, gensync show."""

from __future__ import annotations

import json
import sys

import click
from rich import box
from rich.table import Table

from gensync.cli.main import console, history_manager
from gensync.core.logging import STATUS_STYLES


def format_timestamp(run) -> str:
    return run.created_at.strftime("%Y-%m-%d %H:%M:%S") if run.created_at else "-"


@click.command()
@click.option("--limit", "-n", type=int, default=20, show_default=True, help="Maximum runs to list")
@click.pass_context
def history(ctx: click.Context, limit: int):
    """List recorded generation runs, newest first."""
    manager = history_manager(ctx)
    if not manager.is_enabled:
        console.print("[red]Run history is disabled.[/red] Set GENSYNC_HISTORY_ENABLED=true.")
        sys.exit(1)

    runs = manager.list_runs()
    if not runs:
        console.print("[dim]No runs recorded.[/dim]")
        return

    table = Table(title=f"Generation runs ({len(runs)})", box=box.ROUNDED, show_header=True)
    table.add_column("Run", style="bold", no_wrap=True)
    table.add_column("Execution", style="dim", no_wrap=True)
    table.add_column("Source")
    table.add_column("Timestamp", no_wrap=True)
    table.add_column("Files", justify="right")

    for run in runs[:limit]:
        table.add_row(
            run.run_id,
            run.execution_id or "-",
            run.source.source_path or run.source.entity or "-",
            format_timestamp(run),
            str(len(run.entries)),
        )

    console.print(table)
    if len(runs) > limit:
        console.print(f"[dim]({len(runs) - limit} older runs not shown)[/dim]")


@click.command("show")
@click.argument("run_id")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the raw manifest")
@click.pass_context
def show_run(ctx: click.Context, run_id: str, as_json: bool):
    """Show the files one run wrote or overwrote.

    RUN_ID is the id printed by ``gensync history``.
    """
    manager = history_manager(ctx)
    run = manager.get_run(run_id)
    if run is None:
        console.print(f"[red]Run not found:[/red] {run_id}")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(run.to_manifest(), indent=2))
        return

    module = run.source.module or "global"
    console.print(
        f"\n[dim]Run:[/dim] {run.run_id}  [dim]Source:[/dim] {run.source.source_path or '-'}"
        f"  [dim]Module:[/dim] {module}  [dim]Date:[/dim] {format_timestamp(run)}\n"
    )

    table = Table(box=box.ROUNDED, show_header=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Path")
    table.add_column("Bytes", justify="right")
    table.add_column("Backup", style="dim")

    for entry in run.entries:
        style = STATUS_STYLES.get(entry.status.value, "white")
        table.add_row(
            f"[{style}]{entry.status.value}[/{style}]",
            entry.relative_path,
            str(entry.byte_size) if entry.byte_size is not None else "-",
            entry.backup or "-",
        )

    console.print(table)
    for warning in run.warnings:
        console.print(f"[yellow]warning:[/yellow] {warning}")
