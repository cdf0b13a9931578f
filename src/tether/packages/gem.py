"""RubyGems adapter -- user installs, no sudo."""

from __future__ import annotations

from typing import Optional

from ..models import ManagerKey, PackageInfo
from .manager import PackageManager


def parse_gem_list(output: str) -> list[PackageInfo]:
    """Parse ``gem list --local --no-versions``: one gem name per line."""
    packages = []
    for line in output.splitlines():
        line = line.strip()
        if not line or line.startswith("***") or "LOCAL GEMS" in line:
            continue
        packages.append(PackageInfo(name=line))
    return packages


def _strip_gem_version(token: str) -> str:
    name, sep, tail = token.rpartition("-")
    if sep and tail[:1].isdigit():
        return name
    return token


def parse_gem_dependents(output: str) -> list[str]:
    """Names listed under the ``Used by`` blocks of ``gem dependency -R``."""
    dependents: set[str] = set()
    in_used_by = False
    for line in output.splitlines():
        if "Used by" in line:
            in_used_by = True
            continue
        if not in_used_by:
            continue
        if not line.strip() or not line.startswith((" ", "\t")):
            in_used_by = False
            continue
        token = line.split()[0]
        name = _strip_gem_version(token)
        if name:
            dependents.add(name)
    return sorted(dependents)


class GemManager(PackageManager):
    key = ManagerKey.GEM
    program = "gem"

    def list_args(self) -> list[str]:
        return ["list", "--local", "--no-versions"]

    def parse_list(self, output: str) -> list[PackageInfo]:
        return parse_gem_list(output)

    def install_args(self, package: PackageInfo) -> list[str]:
        return ["install", package.spec(separator=":"), "--user-install"]

    def uninstall_args(self, name: str) -> Optional[list[str]]:
        return ["uninstall", name, "-x", "-a"]

    def update_args(self) -> Optional[list[str]]:
        return ["update", "--user-install"]

    def dependents_args(self, name: str) -> Optional[list[str]]:
        return ["dependency", "-R", name]

    def parse_dependents(self, output: str) -> list[str]:
        return parse_gem_dependents(output)
