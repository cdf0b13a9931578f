"""Sync commands: capture, apply."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click
from rich.panel import Panel
from rich.table import Table

from ._common import (
    console,
    fail,
    home_option,
    home_path,
    key_manager,
    print_failures,
    run_async,
    summary_table,
)
from ..config import load_config, tether_dir
from ..errors import EXIT_FAILURE, TetherError
from ..sync.apply import ApplyEngine
from ..sync.snapshot import SnapshotBuilder, load_snapshot, save_snapshot


def _default_output(home: Path, machine_id: str, encrypted: bool) -> Path:
    suffix = ".json.enc" if encrypted else ".json"
    return tether_dir(home) / "snapshots" / f"{machine_id}{suffix}"


def register_sync_commands(main: click.Group) -> None:
    """Register the capture and apply commands."""

    @main.command("capture")
    @home_option
    @click.option("--out", "-o", default=None, type=click.Path(), help="Snapshot file to write.")
    @click.option("--encrypt/--no-encrypt", default=True, help="Seal the snapshot with the stored key.")
    @click.option("--allow-secrets", is_flag=True, help="Include files that look like they hold secrets.")
    def capture(home: str, out: Optional[str], encrypt: bool, allow_secrets: bool):
        """Capture dotfiles and global packages into a snapshot.

        Files that appear to contain credentials are left out and the
        command exits with status 3 unless --allow-secrets is given.

        Examples:

            tether capture

            tether capture --no-encrypt -o /tmp/laptop.json
        """
        root = home_path(home)
        config = load_config(root)
        if allow_secrets:
            config.security.allow_secrets = True

        try:
            key = key_manager().load() if encrypt else None
            console.print("\n[cyan]Capturing this machine...[/]")
            report = run_async(SnapshotBuilder(home=root, config=config).build())
            snapshot = report.snapshot
            target = Path(out).expanduser() if out else _default_output(root, snapshot.machine_id, encrypt)
            save_snapshot(snapshot, target, key=key)
        except TetherError as exc:
            fail(exc)

        console.print(summary_table(report))
        console.print(Panel(
            f"[bold green]Snapshot written[/]\n"
            f"Machine: {snapshot.machine_id} ({snapshot.hostname})\n"
            f"Files: {len(snapshot.dotfiles)}\n"
            f"Managers: {len(snapshot.packages)}\n"
            f"Encrypted: {'yes' if encrypt else '[yellow]no[/]'}\n"
            f"Path: [cyan]{target}[/]",
            title="Capture Complete",
            border_style="green",
        ))

        for key_name, error in snapshot.failed_managers.items():
            console.print(f"  [yellow]{key_name.label} omitted:[/] {error}")

        if snapshot.skipped:
            table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
            table.add_column("File", style="cyan")
            table.add_column("Line", justify="right")
            table.add_column("Looks like")
            for ref in snapshot.skipped:
                first = ref.findings[0]
                table.add_row(ref.relative_path, str(first.line_number), first.secret_type.description)
            console.print("\n[bold yellow]Left out because of possible secrets:[/]")
            console.print(table)
            console.print("[dim]Re-run with --allow-secrets to include them.[/]\n")
            try:
                report.raise_for_secrets()
            except TetherError as exc:
                fail(exc)

    @main.command("apply")
    @click.argument("snapshot_file", type=click.Path(exists=True, dir_okay=False))
    @home_option
    @click.option("--decrypt/--no-decrypt", default=True, help="Snapshot is sealed with the stored key.")
    @click.option("--no-dotfiles", is_flag=True, help="Skip writing files.")
    @click.option("--no-packages", is_flag=True, help="Skip package installs.")
    def apply(snapshot_file: str, home: str, decrypt: bool, no_dotfiles: bool, no_packages: bool):
        """Apply a snapshot to this machine.

        Every overwritten file is backed up first. A second apply while
        one is running exits with status 2.

        Examples:

            tether apply ~/Sync/laptop.json.enc

            tether apply laptop.json --no-decrypt --no-packages
        """
        root = home_path(home)
        try:
            key = key_manager().load() if decrypt else None
            snapshot = load_snapshot(Path(snapshot_file), key=key)
            console.print(f"\n[cyan]Applying snapshot from {snapshot.machine_id}...[/]")
            report = run_async(
                ApplyEngine(home=root).apply(
                    snapshot,
                    include_dotfiles=not no_dotfiles,
                    include_packages=not no_packages,
                )
            )
        except TetherError as exc:
            fail(exc)

        console.print(summary_table(report))
        print_failures(report)
        console.print(f"\n  [dim]Backup: {report.backup_dir}[/]")
        if report.degraded:
            console.print("[bold yellow]Apply degraded:[/] some files failed verification and were rolled back.")
        if report.failed:
            raise SystemExit(EXIT_FAILURE)
        console.print("[bold green]Apply complete.[/]\n")
