"""npm and pnpm adapters -- global packages via ``--json`` listings."""

from __future__ import annotations

import json
from typing import Any, Optional

from ..errors import ParseFailed
from ..models import ManagerKey, PackageInfo, normalize_packages
from .manager import PackageManager


def _load_json(source: str, output: str) -> Any:
    if not output.strip():
        return None
    try:
        return json.loads(output)
    except json.JSONDecodeError as exc:
        raise ParseFailed(source, str(exc)) from exc


def _from_dependencies(deps: Any, skip: str) -> list[PackageInfo]:
    packages = []
    if not isinstance(deps, dict):
        return packages
    for name, meta in deps.items():
        if name == skip:
            continue
        version = meta.get("version") if isinstance(meta, dict) else None
        packages.append(PackageInfo(name=name, version=version))
    return packages


class NpmManager(PackageManager):
    key = ManagerKey.NPM
    program = "npm"

    def list_args(self) -> list[str]:
        return ["ls", "-g", "--depth=0", "--json"]

    async def list_installed(self) -> list[PackageInfo]:
        # npm exits 1 on extraneous/invalid trees but still prints the JSON
        result = await self._run(self.list_args())
        if not result.ok and not result.stdout.strip():
            result.check()
        return normalize_packages(self.parse_list(result.stdout_text))

    def parse_list(self, output: str) -> list[PackageInfo]:
        data = _load_json("npm ls", output)
        if data is None:
            return []
        if not isinstance(data, dict):
            raise ParseFailed("npm ls", "expected a JSON object")
        return _from_dependencies(data.get("dependencies"), skip="npm")

    def install_args(self, package: PackageInfo) -> list[str]:
        return ["install", "-g", package.spec()]

    def uninstall_args(self, name: str) -> Optional[list[str]]:
        return ["uninstall", "-g", name]

    def update_args(self) -> Optional[list[str]]:
        return ["update", "-g"]


class PnpmManager(PackageManager):
    key = ManagerKey.PNPM
    program = "pnpm"

    def list_args(self) -> list[str]:
        return ["list", "-g", "--depth=0", "--json"]

    def parse_list(self, output: str) -> list[PackageInfo]:
        data = _load_json("pnpm list", output)
        if data is None:
            return []
        if isinstance(data, dict):
            data = [data]
        if not isinstance(data, list):
            raise ParseFailed("pnpm list", "expected a JSON array")

        packages = []
        for item in data:
            if not isinstance(item, dict):
                continue
            if "dependencies" in item:
                packages.extend(_from_dependencies(item["dependencies"], skip="pnpm"))
            elif item.get("name") and item["name"] != "pnpm":
                packages.append(PackageInfo(name=item["name"], version=item.get("version")))
        return packages

    def install_args(self, package: PackageInfo) -> list[str]:
        return ["add", "-g", package.spec()]

    def uninstall_args(self, name: str) -> Optional[list[str]]:
        return ["remove", "-g", name]

    def update_args(self) -> Optional[list[str]]:
        return ["update", "-g"]
