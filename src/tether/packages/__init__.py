"""
Package manager adapters.

One adapter per ManagerKey. ``create_manager`` is the only way the
engine obtains an adapter; the set of keys is closed.
"""

from __future__ import annotations

from ..models import ManagerKey
from ..process import DEFAULT_TIMEOUT
from .brew import BrewCasksManager, BrewFormulaeManager, BrewTapsManager
from .bun import BunManager
from .gem import GemManager
from .manager import ImportResult, PackageManager, is_safe_package_name, parse_manifest
from .npm import NpmManager, PnpmManager
from .uv import UvManager
from .winget import WingetManager

ADAPTERS: dict[ManagerKey, type[PackageManager]] = {
    ManagerKey.BREW_FORMULAE: BrewFormulaeManager,
    ManagerKey.BREW_CASKS: BrewCasksManager,
    ManagerKey.BREW_TAPS: BrewTapsManager,
    ManagerKey.NPM: NpmManager,
    ManagerKey.PNPM: PnpmManager,
    ManagerKey.BUN: BunManager,
    ManagerKey.GEM: GemManager,
    ManagerKey.UV: UvManager,
    ManagerKey.WINGET: WingetManager,
}


def create_manager(key: ManagerKey, timeout: float = DEFAULT_TIMEOUT) -> PackageManager:
    """Instantiate the adapter for ``key``.

    Raises:
        ValueError: If ``key`` has no adapter.
    """
    factory = ADAPTERS.get(ManagerKey(key))
    if not factory:
        raise ValueError(f"Unsupported package manager: {key}")
    return factory(timeout=timeout)


__all__ = [
    "ADAPTERS",
    "ImportResult",
    "PackageManager",
    "create_manager",
    "is_safe_package_name",
    "parse_manifest",
]
