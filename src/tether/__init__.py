"""
Tether -- keep a developer environment in step across machines.

Dotfiles, package-manager inventories and shell-sourced config
directories are captured into a per-machine snapshot, encrypted at
rest, and applied on the other side with a backup before every write.
"""

import os

__version__ = "0.1.0"

TETHER_DIR_NAME = ".tether"
USER_HOME = os.environ.get("TETHER_HOME", "~")
