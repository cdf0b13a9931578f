"""bun adapter -- parses the tree printed by ``bun pm ls -g``."""

from __future__ import annotations

import logging
from typing import Optional

from ..errors import ProcessFailed
from ..models import ManagerKey, PackageInfo, normalize_packages
from .manager import PackageManager

logger = logging.getLogger("tether.packages.bun")

NO_GLOBAL_MANIFEST = "No package.json was found"
TREE_CHARS = "├└│─ \t"


def parse_package_version(entry: str) -> tuple[str, Optional[str]]:
    """Split ``name@version`` on the rightmost ``@``.

    The split is skipped when the prefix ends in ``/`` or is empty, which
    keeps scoped names like ``@org/name`` whole.
    """
    at = entry.rfind("@")
    if at > 0 and not entry[:at].endswith("/"):
        return entry[:at], entry[at + 1:]
    return entry, None


def parse_bun_list(output: str) -> list[PackageInfo]:
    """Parse ``bun pm ls -g`` output into sorted PackageInfo records."""
    packages = []
    for line in output.splitlines():
        line = line.strip()
        if not line or "node_modules" in line:
            continue
        line = line.lstrip(TREE_CHARS)
        if not line:
            continue

        name, version = parse_package_version(line)
        if version == "":
            # A trailing "@" cannot be told apart from a name ending in "@".
            logger.warning("Ambiguous bun entry %r; keeping %r without version", line, name)
            version = None
        if not name or name == "@":
            continue
        packages.append(PackageInfo(name=name, version=version))
    return normalize_packages(packages)


class BunManager(PackageManager):
    key = ManagerKey.BUN
    program = "bun"

    def list_args(self) -> list[str]:
        return ["pm", "ls", "-g"]

    def parse_list(self, output: str) -> list[PackageInfo]:
        return parse_bun_list(output)

    async def list_installed(self) -> list[PackageInfo]:
        try:
            return await super().list_installed()
        except ProcessFailed as exc:
            if NO_GLOBAL_MANIFEST in exc.stderr:
                # bun has not created its global install metadata yet
                return []
            raise

    def install_args(self, package: PackageInfo) -> list[str]:
        return ["add", "-g", package.spec()]

    def uninstall_args(self, name: str) -> Optional[list[str]]:
        return ["remove", "-g", name]

    async def update_all(self) -> None:
        # `bun update -g` only touches the first package; reinstall each instead.
        for package in await self.list_installed():
            result = await self._run(["add", "-g", package.name])
            if not result.ok:
                logger.warning("bun: failed to update %s: %s", package.name, result.stderr_text.strip())
