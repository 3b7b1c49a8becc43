"""CLI for backing up a database and replicating its tables remotely.

Usage:
    db-mirror --database Shop --suffix bi --backup-dir D:/Backups \\
        --remote-server warehouse.internal --remote-database Warehouse
    db-mirror --config mirror.toml
    db-mirror --config mirror.toml --on-table-error abort --deadline 3600

Exit codes:
    0 - backup written and every table replicated
    1 - backup written but at least one table failed or was skipped
    2 - configuration error, backup failure, or table enumeration failure
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from db_mirror.config.loader import DEFAULT_ENV_PREFIX, load_run_config
from db_mirror.errors import MirrorError
from db_mirror.pipeline import RunReport, run_backup_and_sync
from db_mirror.schema.models import TableOutcome

console = Console()

_STATUS_STYLE = {
    "succeeded": "[green]ok[/green]",
    "failed": "[bold red]FAILED[/bold red]",
    "skipped": "[yellow]skipped[/yellow]",
}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _print_report(report: RunReport) -> None:
    console.print()
    console.print(f"Backup: [bold]{report.backup.full_path}[/bold]")

    table = Table(title="Replication", show_header=True, header_style="bold")
    table.add_column("Source", style="dim")
    table.add_column("Target")
    table.add_column("Status")
    table.add_column("Rows", justify="right")
    table.add_column("Error")

    for outcome in report.replication.outcomes:
        error = (
            f"{outcome.error_kind}: {outcome.error}" if outcome.error_kind else ""
        )
        table.add_row(
            outcome.source,
            outcome.target,
            _STATUS_STYLE[outcome.status],
            str(outcome.rows_copied) if outcome.status == "succeeded" else "-",
            error,
        )

    console.print(table)

    replication = report.replication
    if replication.success:
        console.print(
            f"[bold green]v[/bold green] {len(replication.succeeded)} tables replicated."
        )
    else:
        console.print(
            f"[bold red]x[/bold red] {len(replication.failed)} failed, "
            f"{len(replication.skipped)} skipped, "
            f"{len(replication.succeeded)} replicated."
        )


def _table_done(outcome: TableOutcome) -> None:
    if outcome.status == "succeeded":
        console.print(
            f"  [green]v[/green] {outcome.source} -> {outcome.target} "
            f"[dim]({outcome.rows_copied} rows)[/dim]"
        )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for ``db-mirror``."""
    parser = argparse.ArgumentParser(
        prog="db-mirror",
        description=(
            "Back up a SQL Server database to a timestamped .bak file, then "
            "replicate its base tables to a remote database"
        ),
    )
    parser.add_argument("--config", "-c", type=Path, help="Path to a TOML config file")
    parser.add_argument("--database", dest="source_database", help="Source database name")
    parser.add_argument("--suffix", help="Suffix appended to every remote table name")
    parser.add_argument(
        "--backup-dir",
        dest="backup_directory",
        help="Directory (on the database server) for the .bak file",
    )
    parser.add_argument("--source-server", help="Source server (default: localhost)")
    parser.add_argument("--source-user", help="Source SQL login (default: trusted)")
    parser.add_argument("--remote-server", help="Remote server address")
    parser.add_argument("--remote-database", help="Remote database name")
    parser.add_argument("--remote-user", help="Remote SQL login (default: trusted)")
    parser.add_argument(
        "--remote-password",
        help="Remote password (prefer the <prefix>REMOTE_PASSWORD env var)",
    )
    parser.add_argument(
        "--on-table-error",
        choices=["continue", "abort"],
        help="Keep going or stop after a table fails (default: continue)",
    )
    parser.add_argument(
        "--max-workers",
        type=int,
        help="Tables replicated concurrently (default: 1)",
    )
    parser.add_argument("--chunk-size", type=int, help="Rows per insert batch")
    parser.add_argument(
        "--deadline",
        dest="deadline_seconds",
        type=float,
        help="Overall replication deadline in seconds",
    )
    parser.add_argument(
        "--env-prefix",
        default=DEFAULT_ENV_PREFIX,
        help=(
            "Prefix for password environment variables "
            f"(default: {DEFAULT_ENV_PREFIX})"
        ),
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


async def _async_run(args: argparse.Namespace) -> int:
    """Async implementation of the run command.

    Returns:
        Exit code (see module docstring).
    """
    overrides = {
        key: getattr(args, key)
        for key in (
            "source_database",
            "suffix",
            "backup_directory",
            "source_server",
            "source_user",
            "remote_server",
            "remote_database",
            "remote_user",
            "remote_password",
            "on_table_error",
            "max_workers",
            "chunk_size",
            "deadline_seconds",
        )
    }

    try:
        config = load_run_config(args.config, overrides, env_prefix=args.env_prefix)
    except MirrorError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 2

    console.print(
        f"Backing up [bold cyan]{config.source_database}[/bold cyan] and "
        f"replicating to [bold]{config.remote_server}/{config.remote_database}[/bold]",
    )

    try:
        report = await run_backup_and_sync(config, on_table_done=_table_done)
    except MirrorError as e:
        console.print(f"\n[bold red]x[/bold red] {e.kind}: {e}")
        return 2

    _print_report(report)
    return 0 if report.success else 1


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)
    return asyncio.run(_async_run(args))


if __name__ == "__main__":
    sys.exit(main())
