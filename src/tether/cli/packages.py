"""Package commands: list."""

from __future__ import annotations

import asyncio
from typing import Optional

import click
from rich.table import Table

from ._common import console, home_option, home_path, run_async
from ..config import load_config
from ..errors import TetherError
from ..models import ManagerKey
from ..packages import PackageManager, create_manager


async def _inventory(managers: list[PackageManager]) -> list[tuple[PackageManager, object]]:
    async def one(manager: PackageManager):
        try:
            return manager, await manager.list_installed()
        except TetherError as exc:
            return manager, exc

    return list(await asyncio.gather(*(one(m) for m in managers)))


def register_packages_commands(main: click.Group) -> None:
    """Register the packages command group."""

    @main.group()
    def packages():
        """Globally installed packages, per package manager."""

    @packages.command("list")
    @home_option
    @click.option(
        "--manager",
        "-m",
        "manager_key",
        default=None,
        type=click.Choice([k.value for k in ManagerKey]),
        help="Only this package manager.",
    )
    def packages_list(home: str, manager_key: Optional[str]):
        """Show what each available package manager has installed."""
        config = load_config(home_path(home))
        keys = [ManagerKey(manager_key)] if manager_key else config.packages.enabled
        managers = []
        for key in keys:
            manager = create_manager(key, config.packages.timeout_seconds)
            if manager.is_available():
                managers.append(manager)
            else:
                console.print(f"  [dim]{key.label}: not installed[/]")

        for manager, result in run_async(_inventory(managers)):
            if isinstance(result, TetherError):
                console.print(f"\n[bold red]{manager.label}[/]: {result}")
                continue
            table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
            table.add_column("Package", style="cyan")
            table.add_column("Version", style="dim")
            for pkg in result:
                table.add_row(pkg.name, pkg.version or "")
            console.print(f"\n[bold]{manager.label}[/] ({len(result)})")
            console.print(table)
        console.print()

    main.add_command(packages)
