"""Shared test fixtures for tether."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

import pytest

from tether.config import PackagesConfig, TetherConfig
from tether.models import ManagerKey, PackageInfo, normalize_packages
from tether.packages import ImportResult, PackageManager, parse_manifest


class FakeManager(PackageManager):
    """In-memory adapter: no subprocesses, records every import."""

    program = "fake"

    def __init__(
        self,
        key: ManagerKey,
        packages: Iterable[PackageInfo] = (),
        available: bool = True,
        error: Optional[Exception] = None,
        calls: Optional[list] = None,
    ) -> None:
        super().__init__()
        self.key = key
        self.packages = list(packages)
        self.available = available
        self.error = error
        self.calls = calls if calls is not None else []

    def list_args(self) -> list[str]:
        return []

    def parse_list(self, output: str) -> list[PackageInfo]:
        return []

    def install_args(self, package: PackageInfo) -> list[str]:
        return ["install", package.name]

    def is_available(self) -> bool:
        return self.available

    async def list_installed(self) -> list[PackageInfo]:
        if self.error is not None:
            raise self.error
        return normalize_packages(self.packages)

    async def import_manifest(self, text: str) -> ImportResult:
        self.calls.append((self.key, text))
        if self.error is not None:
            raise self.error
        return ImportResult(installed=parse_manifest(text))


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """Provide an empty temporary home directory."""
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def quiet_config() -> TetherConfig:
    """Config with every package manager disabled."""
    return TetherConfig(packages=PackagesConfig(enabled=[]))
