"""Rollback command: undo the files written by recorded runs."""

from __future__ import annotations

import sys

import click
from rich import box
from rich.markup import escape
from rich.table import Table

from gensync.cli.history_commands import format_timestamp
from gensync.cli.main import console, history_manager

RESULT_STYLES = {
    "restored": "yellow",
    "deleted": "green",
    "skipped": "dim",
    "error": "red",
}


def suggest_runs(manager, limit: int = 5) -> None:
    runs = manager.list_runs()
    if not runs:
        return
    console.print("Available runs:")
    for run in runs[:limit]:
        console.print(
            f"  - {run.run_id} | exec={run.execution_id or '-'} | "
            f"source={run.source.source_path or '-'} | {format_timestamp(run)}"
        )
    if len(runs) > limit:
        console.print(f"  [dim](total: {len(runs)} runs)[/dim]")


@click.command()
@click.argument("run_id", required=False)
@click.option("--execution", "execution_id", default=None, help="Roll back every run of this execution")
@click.option("--dry-run", is_flag=True, help="Show what would be undone without changing files")
@click.option("-y", "--yes", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def rollback(ctx: click.Context, run_id: str | None, execution_id: str | None, dry_run: bool, yes: bool):
    """Undo generated files using the run history.

    RUN_ID selects one run. Without it, the newest run is undone together
    with every other run of the same execution.
    """
    from gensync.history.rollback import Rollback, collect_actions

    manager = history_manager(ctx)
    if not manager.is_enabled:
        console.print("[red]Run history is disabled.[/red] Set GENSYNC_HISTORY_ENABLED=true.")
        sys.exit(1)

    runs = manager.resolve_targets(run_id, execution_id)
    if not runs:
        if run_id:
            console.print(f'[red]No run found with id "{run_id}".[/red]')
        elif execution_id:
            console.print(f'[red]No runs found for execution "{execution_id}".[/red]')
        else:
            console.print("[red]No recorded runs to roll back.[/red]")
        suggest_runs(manager)
        sys.exit(1)

    actions = collect_actions(runs)
    if not actions:
        console.print("[yellow]The selected runs have no files to roll back.[/yellow]")
        return

    if run_id:
        console.print(f"Selected run: [bold]{runs[0].run_id}[/bold] ({format_timestamp(runs[0])})")
    elif runs[0].execution_id:
        console.print(
            f"Selected execution: [bold]{runs[0].execution_id}[/bold] "
            f"({len(runs)} run(s), {format_timestamp(runs[0])})"
        )
    else:
        console.print(f"Selected run: [bold]{runs[0].run_id}[/bold] ({format_timestamp(runs[0])})")

    table = Table(box=box.ROUNDED, show_header=True)
    table.add_column("Action", no_wrap=True)
    table.add_column("Source")
    table.add_column("File")
    table.add_column("Absolute path", style="dim")
    for action in actions:
        table.add_row(action.verb, action.label, action.entry.relative_path, action.entry.absolute_path)
    console.print(table)

    if dry_run:
        console.print("[dim]Dry run: no changes made.[/dim]")
        return

    if not yes and not click.confirm("Roll back these changes?", default=True):
        console.print("[dim]Aborted.[/dim]")
        return

    report = Rollback(manager.store).apply(runs)

    for result in report.results:
        style = RESULT_STYLES.get(result.status, "white")
        console.print(f"[{style}]{result.status:>8}[/{style}] \\[{escape(result.action.label)}] {escape(result.detail)}")

    console.print(
        f"Summary ({len(report.runs)} run(s)): restored={report.restored}, deleted={report.deleted}, "
        f"skipped={report.skipped}, errors={report.errors}"
    )

    if report.failed:
        sys.exit(1)
