"""Backup commands: list, files, restore, prune."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click
from rich.table import Table

from ._common import console, fail, home_option, home_path
from ..config import load_config
from ..errors import TetherError
from ..sync.backup import (
    list_backup_files,
    list_backups,
    parse_backup_timestamp,
    prune_old_backups,
    restore_file,
)


def register_backup_commands(main: click.Group) -> None:
    """Register the backups command group."""

    @main.group()
    def backups():
        """Backups taken before every apply.

        Each apply copies the files it is about to overwrite into
        ~/.tether/backups/<timestamp>/.
        """

    @backups.command("list")
    @home_option
    def backups_list(home: str):
        """List backups, newest first."""
        stamps = list_backups(home_path(home))
        if not stamps:
            console.print("\n[dim]No backups found.[/]\n")
            return

        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("Timestamp", style="cyan")
        table.add_column("Taken (UTC)", style="dim")
        for stamp in stamps:
            moment = parse_backup_timestamp(stamp)
            table.add_row(stamp, moment.strftime("%Y-%m-%d %H:%M:%S") if moment else "?")

        console.print(f"\n[bold]{len(stamps)}[/] backup(s):\n")
        console.print(table)
        console.print()

    @backups.command("files")
    @click.argument("timestamp")
    @home_option
    def backups_files(timestamp: str, home: str):
        """List the files inside one backup."""
        try:
            files = list_backup_files(timestamp, home_path(home))
        except TetherError as exc:
            fail(exc)

        if not files:
            console.print(f"\n[dim]Backup {timestamp} is empty.[/]\n")
            return
        for category, rel in files:
            console.print(f"  [cyan]{category}[/]/{rel}")

    @backups.command("restore")
    @click.argument("timestamp")
    @click.argument("category", type=click.Choice(["dotfiles", "projects"]))
    @click.argument("relative_path")
    @home_option
    @click.option("--dest", default=None, type=click.Path(), help="Where to write (required for projects).")
    def backups_restore(timestamp: str, category: str, relative_path: str, home: str, dest: Optional[str]):
        """Restore one file from a backup.

        Examples:

            tether backups restore 2026-01-15T10-30-45 dotfiles .zshrc
        """
        destination = Path(dest).expanduser() if dest else None
        try:
            written = restore_file(
                timestamp, category, relative_path, home=home_path(home), destination=destination
            )
        except TetherError as exc:
            fail(exc)
        console.print(f"[green]Restored[/] {category}/{relative_path} -> [cyan]{written}[/]")

    @backups.command("prune")
    @home_option
    @click.option("--keep", default=None, type=click.IntRange(min=1), help="Backups to keep (default from config).")
    def backups_prune(home: str, keep: Optional[int]):
        """Delete all but the newest backups."""
        root = home_path(home)
        count = keep if keep is not None else load_config(root).backups.keep
        removed = prune_old_backups(root, keep=count)
        console.print(f"Pruned [bold]{removed}[/] backup(s), kept up to {count}.")

    main.add_command(backups)
