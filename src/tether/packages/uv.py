"""uv adapter -- tools installed with ``uv tool install``."""

from __future__ import annotations

from typing import Optional

from ..models import ManagerKey, PackageInfo
from .manager import PackageManager


def parse_uv_tool_list(output: str) -> list[PackageInfo]:
    """Parse ``uv tool list``.

    A tool header starts at column 0 and is not ``-``-prefixed, e.g.
    ``ruff v0.6.0``; the indented or ``- `` lines under it name the
    executables the tool provides.
    """
    packages = []
    for line in output.splitlines():
        if not line or line[0] in (" ", "\t", "-"):
            continue
        tokens = line.split()
        if not tokens:
            continue
        version = tokens[1].lstrip("v") if len(tokens) > 1 else None
        packages.append(PackageInfo(name=tokens[0], version=version or None))
    return packages


class UvManager(PackageManager):
    key = ManagerKey.UV
    program = "uv"

    def list_args(self) -> list[str]:
        return ["tool", "list"]

    def parse_list(self, output: str) -> list[PackageInfo]:
        return parse_uv_tool_list(output)

    def install_args(self, package: PackageInfo) -> list[str]:
        return ["tool", "install", package.spec(separator="==")]

    def uninstall_args(self, name: str) -> Optional[list[str]]:
        return ["tool", "uninstall", name]

    def update_args(self) -> Optional[list[str]]:
        return ["tool", "upgrade", "--all"]
