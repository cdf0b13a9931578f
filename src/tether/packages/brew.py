"""
Homebrew adapters -- formulae, casks and taps.

One ``brew`` binary backs three inventories. Each gets its own adapter
so the snapshot can carry (and apply) them independently.
"""

from __future__ import annotations

from typing import Optional

from ..models import ManagerKey, PackageInfo
from .manager import PackageManager


def normalize_formula_name(name: str) -> str:
    """Strip a tap prefix: ``oven-sh/bun/bun`` -> ``bun``."""
    return name.rsplit("/", 1)[-1]


def _parse_names(output: str) -> list[PackageInfo]:
    return [PackageInfo(name=token) for token in output.split()]


class BrewFormulaeManager(PackageManager):
    key = ManagerKey.BREW_FORMULAE
    program = "brew"

    def list_args(self) -> list[str]:
        return ["list", "--formula"]

    def parse_list(self, output: str) -> list[PackageInfo]:
        return _parse_names(output)

    def name_key(self, name: str) -> str:
        return normalize_formula_name(name)

    def install_args(self, package: PackageInfo) -> list[str]:
        return ["install", package.name]

    def uninstall_args(self, name: str) -> Optional[list[str]]:
        return ["uninstall", name]

    def update_args(self) -> Optional[list[str]]:
        return ["upgrade"]

    def dependents_args(self, name: str) -> Optional[list[str]]:
        return ["uses", "--installed", name]


class BrewCasksManager(PackageManager):
    key = ManagerKey.BREW_CASKS
    program = "brew"

    def list_args(self) -> list[str]:
        return ["list", "--cask"]

    def parse_list(self, output: str) -> list[PackageInfo]:
        return _parse_names(output)

    def install_args(self, package: PackageInfo) -> list[str]:
        return ["install", "--cask", package.name]

    def uninstall_args(self, name: str) -> Optional[list[str]]:
        return ["uninstall", "--cask", name]

    def update_args(self) -> Optional[list[str]]:
        return ["upgrade", "--cask"]


class BrewTapsManager(PackageManager):
    key = ManagerKey.BREW_TAPS
    program = "brew"

    def list_args(self) -> list[str]:
        return ["tap"]

    def parse_list(self, output: str) -> list[PackageInfo]:
        return _parse_names(output)

    def install_args(self, package: PackageInfo) -> list[str]:
        return ["tap", package.name]

    def uninstall_args(self, name: str) -> Optional[list[str]]:
        return ["untap", name]
