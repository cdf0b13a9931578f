"""
Package manager adapters -- the uniform capability set.

Each adapter wraps one external tool. Subclasses describe the argv for
each capability and how to parse listing output; the base class owns
the shared flow: idempotent install, tolerant uninstall, manifest
export/import and change hashing. A capability whose argv builder
returns None is reported as UnsupportedOperation.
"""

from __future__ import annotations

import hashlib
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from ..errors import TetherError, UnsupportedOperation
from ..models import ManagerKey, PackageInfo, normalize_packages
from ..process import DEFAULT_TIMEOUT, ProcessResult, resolve_program, run

logger = logging.getLogger("tether.packages")

MAX_PACKAGE_NAME_LENGTH = 214
_SAFE_NAME = re.compile(r"^[A-Za-z0-9@][A-Za-z0-9@/._+:=~-]*$")


def is_safe_package_name(name: str) -> bool:
    """True if ``name`` is safe to hand to a package manager's argv."""
    return 0 < len(name) <= MAX_PACKAGE_NAME_LENGTH and bool(_SAFE_NAME.match(name))


def parse_manifest(text: str) -> list[str]:
    """Newline-delimited package names, blanks and ``#`` comments dropped."""
    names = []
    for line in text.splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            names.append(line)
    return names


@dataclass
class ImportResult:
    """Per-package outcome of one import_manifest call."""

    installed: list[str] = field(default_factory=list)
    present: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    invalid: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class PackageManager(ABC):
    """One package manager, addressed by its ManagerKey."""

    key: ManagerKey
    program: str

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.timeout = timeout

    @property
    def name(self) -> str:
        return self.key.value

    @property
    def label(self) -> str:
        return self.key.label

    # -- subclass hooks ---------------------------------------------------

    @abstractmethod
    def list_args(self) -> list[str]:
        """Argv that lists installed packages."""

    @abstractmethod
    def parse_list(self, output: str) -> list[PackageInfo]:
        """Turn the listing output into PackageInfo records."""

    @abstractmethod
    def install_args(self, package: PackageInfo) -> list[str]:
        """Argv that installs ``package``."""

    def uninstall_args(self, name: str) -> Optional[list[str]]:
        return None

    def update_args(self) -> Optional[list[str]]:
        return None

    def dependents_args(self, name: str) -> Optional[list[str]]:
        return None

    def parse_dependents(self, output: str) -> list[str]:
        return sorted({line.strip() for line in output.splitlines() if line.strip()})

    def name_key(self, name: str) -> str:
        """Comparison key used when diffing manifests against installs."""
        return name

    # -- process plumbing -------------------------------------------------

    async def _run(self, args: list[str]) -> ProcessResult:
        return await run(self.program, args, timeout=self.timeout)

    async def _run_checked(self, args: list[str]) -> str:
        result = await self._run(args)
        return result.check().stdout_text

    # -- capabilities -----------------------------------------------------

    def is_available(self) -> bool:
        """True iff the underlying program is on PATH. Never raises."""
        try:
            return resolve_program(self.program) is not None
        except OSError:
            return False

    async def list_installed(self) -> list[PackageInfo]:
        """Installed packages, sorted by name with no duplicate names."""
        output = await self._run_checked(self.list_args())
        return normalize_packages(self.parse_list(output))

    async def install(self, package: PackageInfo) -> bool:
        """Install ``package``; a no-op when already at the requested version.

        Returns:
            True if an install ran, False if nothing needed doing.
        """
        installed = {self.name_key(p.name): p for p in await self.list_installed()}
        current = installed.get(self.name_key(package.name))
        if current is not None and (
            package.version is None or current.version == package.version
        ):
            logger.debug("%s: %s already installed", self.name, package.name)
            return False
        await self._run_checked(self.install_args(package))
        logger.info("%s: installed %s", self.name, package.spec())
        return True

    async def uninstall(self, name: str) -> bool:
        """Remove ``name``. A package that is not installed is not an error."""
        args = self.uninstall_args(name)
        if args is None:
            raise UnsupportedOperation(self.name, "uninstall")
        installed = {self.name_key(p.name) for p in await self.list_installed()}
        if self.name_key(name) not in installed:
            return False
        await self._run_checked(args)
        logger.info("%s: uninstalled %s", self.name, name)
        return True

    async def update_all(self) -> None:
        """Upgrade every installed package to its latest release."""
        args = self.update_args()
        if args is None:
            raise UnsupportedOperation(self.name, "update_all")
        await self._run_checked(args)

    async def export_manifest(self) -> str:
        """Newline-delimited names of the installed packages."""
        return "\n".join(p.name for p in await self.list_installed())

    async def import_manifest(self, text: str) -> ImportResult:
        """Install every manifest entry that is not installed yet.

        A failing package is logged and recorded; the remaining installs
        still run. Failure to list the current inventory propagates.
        """
        result = ImportResult()
        wanted = []
        for name in parse_manifest(text):
            if is_safe_package_name(name):
                wanted.append(name)
            else:
                logger.warning("%s: skipping unsafe package name %r", self.name, name)
                result.invalid.append(name)
        if not wanted:
            return result

        installed = {self.name_key(p.name) for p in await self.list_installed()}
        for name in wanted:
            if self.name_key(name) in installed:
                result.present.append(name)
                continue
            try:
                await self._run_checked(self.install_args(PackageInfo(name=name)))
            except TetherError as exc:
                logger.warning("%s: failed to install %s: %s", self.name, name, exc)
                result.failed[name] = str(exc)
                continue
            installed.add(self.name_key(name))
            result.installed.append(name)
        return result

    async def get_dependents(self, name: str) -> list[str]:
        """Reverse dependencies of ``name``; empty on any failure."""
        args = self.dependents_args(name)
        if args is None:
            return []
        try:
            result = await self._run(args)
        except TetherError as exc:
            logger.debug("%s: dependents of %s unavailable: %s", self.name, name, exc)
            return []
        if not result.ok:
            return []
        return self.parse_dependents(result.stdout_text)

    async def manifest_hash(self) -> str:
        """SHA-256 of the exported manifest, for change detection."""
        manifest = await self.export_manifest()
        return hashlib.sha256(manifest.encode("utf-8")).hexdigest()
