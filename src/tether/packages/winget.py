"""winget adapter -- parses the fixed-width ``winget list`` table."""

from __future__ import annotations

import unicodedata
from typing import Optional

from ..models import ManagerKey, PackageInfo
from .manager import PackageManager

AGREEMENT_FLAGS = [
    "-e",
    "--disable-interactivity",
    "--accept-source-agreements",
    "--accept-package-agreements",
]


def _char_width(char: str) -> int:
    return 2 if unicodedata.east_asian_width(char) in ("W", "F") else 1


def slice_by_display_col(text: str, start: int, end: Optional[int] = None) -> str:
    """Substring covering display columns ``[start, end)``."""
    col = 0
    chars = []
    for char in text:
        if end is not None and col >= end:
            break
        if col >= start:
            chars.append(char)
        col += _char_width(char)
    return "".join(chars)


def parse_winget_list(output: str) -> list[PackageInfo]:
    """Column offsets come from the header line holding ``Id`` and ``Version``."""
    lines = output.splitlines()
    header_idx = next(
        (i for i, line in enumerate(lines) if "Id" in line and "Version" in line),
        None,
    )
    if header_idx is None:
        return []

    header = lines[header_idx]
    id_col = header.find("Id")
    version_col = header.find("Version")

    data_start = header_idx + 1
    for i in range(header_idx + 1, len(lines)):
        if lines[i].startswith("-"):
            data_start = i + 1
            break

    packages = []
    for line in lines[data_start:]:
        if not line.strip():
            continue
        package_id = slice_by_display_col(line, id_col, version_col).strip()
        rest = slice_by_display_col(line, version_col).split()
        if package_id:
            packages.append(PackageInfo(name=package_id, version=rest[0] if rest else None))
    return packages


class WingetManager(PackageManager):
    key = ManagerKey.WINGET
    program = "winget"

    def list_args(self) -> list[str]:
        return ["list"]

    def parse_list(self, output: str) -> list[PackageInfo]:
        return parse_winget_list(output)

    def name_key(self, name: str) -> str:
        return name.lower()

    def install_args(self, package: PackageInfo) -> list[str]:
        args = ["install", "--id", package.name, *AGREEMENT_FLAGS]
        if package.version:
            args += ["--version", package.version]
        return args

    def uninstall_args(self, name: str) -> Optional[list[str]]:
        return ["uninstall", "--id", name, "-e", "--disable-interactivity"]

    def update_args(self) -> Optional[list[str]]:
        return ["upgrade", "--all", *AGREEMENT_FLAGS[1:]]
