"""
Tether CLI -- capture one machine, apply it to another.

Each command group lives in its own module and is attached to the
main Click group through a register function.

Entry point: tether.cli:main
"""

from __future__ import annotations

import click

from .. import __version__
from ._common import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="tether")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
def main(verbose: bool):
    """Tether -- keep your machines in step.

    Dotfiles and global packages, captured on one machine and
    applied on the next.
    """
    configure_logging(verbose)


# ---------------------------------------------------------------------------
# Register all command groups/commands from modular files
# ---------------------------------------------------------------------------

from .sync_cmd import register_sync_commands
from .backups import register_backup_commands
from .packages import register_packages_commands
from .key import register_key_commands
from .scan import register_scan_commands

register_sync_commands(main)
register_backup_commands(main)
register_packages_commands(main)
register_key_commands(main)
register_scan_commands(main)
