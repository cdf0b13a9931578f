"""Inspection commands: scan, discover."""

from __future__ import annotations

from pathlib import Path

import click
from rich.table import Table

from ._common import console, home_option, home_path
from ..config import SHELL_RC_FILES
from ..errors import EXIT_SECRETS_FOUND
from ..security.secrets import scan_for_secrets
from ..sync.discovery import discover_sourced_dirs


def register_scan_commands(main: click.Group) -> None:
    """Register the scan and discover commands."""

    @main.command("scan")
    @click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
    def scan(paths: tuple[str, ...]):
        """Check files for credentials before syncing them.

        Exits with status 3 if anything is found.
        """
        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("File", style="cyan")
        table.add_column("Line", justify="right")
        table.add_column("Looks like")
        table.add_column("Context", style="dim")

        found = 0
        for path in paths:
            for finding in scan_for_secrets(Path(path)):
                found += 1
                table.add_row(path, str(finding.line_number), finding.secret_type.description, finding.context)

        if not found:
            console.print("[green]No secrets found.[/]")
            return
        console.print(table)
        raise SystemExit(EXIT_SECRETS_FOUND)

    @main.command("discover")
    @home_option
    def discover(home: str):
        """List directories your shell rc files source from."""
        root = home_path(home)
        dirs = discover_sourced_dirs(root, SHELL_RC_FILES)
        if not dirs:
            console.print("[dim]No sourced directories found.[/]")
            return
        for directory in dirs:
            console.print(f"  [cyan]{directory}[/]")
