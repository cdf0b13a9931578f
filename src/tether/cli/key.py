"""Encryption key commands: init, reinit, status."""

from __future__ import annotations

import click

from ._common import console, fail, key_manager
from ..errors import TetherError


def register_key_commands(main: click.Group) -> None:
    """Register the key command group."""

    @main.group()
    def key():
        """The snapshot encryption key in the platform keystore."""

    @key.command("init")
    def key_init():
        """Generate the encryption key (once per machine pool)."""
        manager = key_manager()
        try:
            manager.initialize()
        except FileExistsError as exc:
            console.print(f"[yellow]{exc}[/]")
            console.print("[dim]Use 'tether key reinit' to replace it.[/]")
            raise SystemExit(1)
        except TetherError as exc:
            fail(exc)
        console.print(f"[green]Key stored[/] in keystore as {manager.service}/{manager.account}")

    @key.command("reinit")
    @click.confirmation_option(prompt="Snapshots sealed with the current key become unreadable. Continue?")
    def key_reinit():
        """Replace the encryption key with a fresh one."""
        manager = key_manager()
        try:
            manager.reinitialize()
        except TetherError as exc:
            fail(exc)
        console.print("[green]New key stored.[/]")

    @key.command("status")
    def key_status():
        """Show whether a key is stored."""
        manager = key_manager()
        try:
            present = manager.exists()
        except TetherError as exc:
            fail(exc)
        state = "[green]present[/]" if present else "[yellow]missing[/] (run 'tether key init')"
        console.print(f"Key {manager.service}/{manager.account}: {state}")

    main.add_command(key)
