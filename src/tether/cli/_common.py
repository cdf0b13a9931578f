"""Shared utilities for all CLI command modules.

Provides the Rich console instance, the error-to-exit-code bridge and
the outcome tables shared by capture and apply.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, NoReturn, TypeVar

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .. import USER_HOME
from ..errors import TetherError
from ..security.keystore import EncryptionKeyManager
from ..sync.report import OutcomeStatus, Report

console = Console()
logger = logging.getLogger("tether.cli")

T = TypeVar("T")

STATUS_STYLE = {
    OutcomeStatus.SUCCEEDED: "[green]ok[/]",
    OutcomeStatus.SKIPPED: "[dim]skipped[/]",
    OutcomeStatus.FAILED: "[bold red]FAILED[/]",
}

home_option = click.option(
    "--home",
    default=USER_HOME,
    type=click.Path(),
    help="Home directory to operate on.",
)


def configure_logging(verbose: bool) -> None:
    """Route library logging through Rich when --verbose is given."""
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def home_path(home: str) -> Path:
    return Path(home).expanduser()


def run_async(coro: Awaitable[T]) -> T:
    return asyncio.run(coro)


def fail(exc: TetherError) -> NoReturn:
    """Print ``exc`` and exit with its status code."""
    console.print(f"[bold red]Error:[/] {escape(str(exc))}", soft_wrap=True)
    raise SystemExit(exc.exit_code)


def summary_table(report: Report) -> Table:
    """Per-category succeeded/skipped/failed counts."""
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("Category", style="cyan")
    table.add_column("OK", justify="right", style="green")
    table.add_column("Skipped", justify="right", style="dim")
    table.add_column("Failed", justify="right", style="red")
    for category, counts in report.summary().items():
        table.add_row(
            category,
            str(counts["succeeded"]),
            str(counts["skipped"]),
            str(counts["failed"]),
        )
    return table


def print_failures(report: Report) -> None:
    for outcome in report.failed:
        console.print(
            f"  {STATUS_STYLE[outcome.status]} [cyan]{outcome.category}[/] "
            f"{outcome.item}: {outcome.detail}"
        )


def key_manager() -> EncryptionKeyManager:
    """The key manager bound to the platform keystore."""
    return EncryptionKeyManager()
