"""gensync CLI: main entry point and shared utilities."""

from __future__ import annotations

import logging
from pathlib import Path

import click
from rich.console import Console

console = Console()


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def history_manager(ctx: click.Context):
    """Build the HistoryManager for the history directory in effect."""
    from gensync.config import get_settings
    from gensync.history.manager import HistoryManager
    from gensync.history.store import FilesystemRunStore

    settings = get_settings()
    override = ctx.obj.get("history_dir") if ctx.obj else None
    root = Path(override) if override else settings.history_path
    return HistoryManager(FilesystemRunStore(root), enabled=settings.history_enabled)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("--history-dir", type=click.Path(file_okay=False), default=None,
              help="Run history directory (default: <storage_dir>/history)")
@click.pass_context
def main(ctx: click.Context, verbose: bool, history_dir: str | None):
    """gensync: write, merge and roll back generated code."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["history_dir"] = history_dir
    setup_logging(verbose)


def cli():
    """Entrypoint that loads .env before running the CLI."""
    from dotenv import load_dotenv

    load_dotenv()
    main()


# Import subcommand modules to register commands
from gensync.cli.history_commands import history, show_run  # noqa: E402
from gensync.cli.rollback_commands import rollback  # noqa: E402

main.add_command(history)
main.add_command(show_run, name="show")
main.add_command(rollback)
