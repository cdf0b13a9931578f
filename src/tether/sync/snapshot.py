"""
Snapshot builder -- capture this machine into a MachineSnapshot.

Pulls from shell discovery, the secret scanner and every available
package manager. Listing runs concurrently across managers; a manager
that fails loses its own slot and nothing else.

Serialized form is JSON (pydantic) with file contents base64-encoded
and a ``schema_version`` field. Unknown fields are ignored on decode.
"""

from __future__ import annotations

import asyncio
import logging
import socket
import stat
from pathlib import Path
from typing import Iterable, Optional

from pydantic import ValidationError

from ..audit import audit_event
from ..config import SHELL_RC_FILES, TetherConfig, load_config, resolve_home
from ..errors import ParseFailed, TetherError
from ..models import (
    SCHEMA_VERSION,
    DotfileEntry,
    MachineSnapshot,
    ManagerKey,
    PackageInfo,
    SkippedRef,
)
from ..packages import PackageManager, create_manager
from ..security.encryption import decrypt_file, encrypt_file
from ..security.secrets import scan_content
from .discovery import discover_sourced_dirs, dir_to_relative
from .report import CaptureReport, OutcomeStatus
from .state import get_machine_id

logger = logging.getLogger("tether.sync.snapshot")


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------


def encode_snapshot(snapshot: MachineSnapshot) -> bytes:
    return snapshot.model_dump_json().encode("utf-8")


def decode_snapshot(data: bytes | str) -> MachineSnapshot:
    """Parse a serialized snapshot.

    Raises:
        ParseFailed: Malformed JSON, invalid fields, or a schema newer
            than this build understands.
    """
    try:
        snapshot = MachineSnapshot.model_validate_json(data)
    except ValidationError as exc:
        raise ParseFailed("snapshot", str(exc)) from exc
    if snapshot.schema_version > SCHEMA_VERSION:
        raise ParseFailed(
            "snapshot",
            f"schema_version {snapshot.schema_version} is newer than supported {SCHEMA_VERSION}",
        )
    return snapshot


def encrypt_snapshot(snapshot: MachineSnapshot, key: bytes) -> bytes:
    return encrypt_file(encode_snapshot(snapshot), key)


def decrypt_snapshot(blob: bytes, key: bytes) -> MachineSnapshot:
    return decode_snapshot(decrypt_file(blob, key))


def save_snapshot(snapshot: MachineSnapshot, path: Path, key: Optional[bytes] = None) -> Path:
    """Write ``snapshot`` to ``path``, sealed when ``key`` is given."""
    data = encrypt_snapshot(snapshot, key) if key is not None else encode_snapshot(snapshot)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


def load_snapshot(path: Path, key: Optional[bytes] = None) -> MachineSnapshot:
    data = path.read_bytes()
    return decrypt_snapshot(data, key) if key is not None else decode_snapshot(data)


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class SnapshotBuilder:
    """Assembles a MachineSnapshot for one home directory.

    Args:
        home: The user's home directory. Defaults to ~ (or TETHER_HOME).
        config: Capture settings. Defaults to ~/.tether/config.yaml.
        managers: Adapters to query. Defaults to one per enabled key.
    """

    def __init__(
        self,
        home: Optional[Path] = None,
        config: Optional[TetherConfig] = None,
        managers: Optional[Iterable[PackageManager]] = None,
    ) -> None:
        self.home = resolve_home(home)
        self.config = config or load_config(self.home)
        if managers is None:
            timeout = self.config.packages.timeout_seconds
            managers = [create_manager(k, timeout) for k in self.config.packages.enabled]
        self.managers = list(managers)

    async def build(self) -> CaptureReport:
        """Capture dotfiles, discovered dirs and package inventories."""
        report = CaptureReport()

        discovered: list[str] = []
        if self.config.discover_dirs:
            discovered = discover_sourced_dirs(self.home, SHELL_RC_FILES)
            logger.info("Discovered %d sourced director(ies)", len(discovered))

        dotfiles, skipped = await self._capture_files(discovered, report)
        packages, failed = await self._capture_packages(report)

        snapshot = MachineSnapshot(
            machine_id=get_machine_id(self.home),
            hostname=socket.gethostname(),
            dotfiles=dotfiles,
            discovered_dirs=discovered,
            packages=packages,
            skipped=skipped,
            failed_managers=failed,
        )
        report.snapshot = snapshot
        audit_event(
            self.home,
            "CAPTURE",
            f"{len(dotfiles)} file(s), {len(packages)} manager(s)",
            metadata={"skipped": len(skipped), "failed_managers": sorted(k.value for k in failed)},
        )
        return report

    def _candidate_paths(self, discovered: list[str]) -> list[str]:
        seen: dict[str, None] = {}
        for rel in self.config.dotfiles:
            seen.setdefault(rel, None)
        for directory in [*map(dir_to_relative, discovered), *self.config.dirs]:
            root = self.home / directory
            if not root.is_dir():
                continue
            for path in sorted(root.rglob("*")):
                if path.is_file() and not path.is_symlink():
                    seen.setdefault(path.relative_to(self.home).as_posix(), None)
        return list(seen)

    async def _capture_files(
        self, discovered: list[str], report: CaptureReport
    ) -> tuple[list[DotfileEntry], list[SkippedRef]]:
        security = self.config.security
        dotfiles: list[DotfileEntry] = []
        skipped: list[SkippedRef] = []

        for rel in self._candidate_paths(discovered):
            path = self.home / rel
            if not path.is_file():
                report.record("dotfiles", rel, OutcomeStatus.SKIPPED, "missing")
                continue
            try:
                content = await asyncio.to_thread(path.read_bytes)
                mode = stat.S_IMODE(path.stat().st_mode)
            except OSError as exc:
                logger.warning("Cannot read %s: %s", path, exc)
                report.record("dotfiles", rel, OutcomeStatus.FAILED, str(exc))
                continue

            if security.scan_secrets:
                findings = scan_content(content)
                if findings and not security.allow_secrets:
                    logger.warning(
                        "Omitting %s: %d possible secret(s) (first: %s on line %d)",
                        rel,
                        len(findings),
                        findings[0].secret_type.description,
                        findings[0].line_number,
                    )
                    skipped.append(SkippedRef(relative_path=rel, findings=findings))
                    report.record("dotfiles", rel, OutcomeStatus.SKIPPED, "possible secrets")
                    continue
                if findings:
                    logger.warning("Including %s despite %d possible secret(s)", rel, len(findings))

            dotfiles.append(DotfileEntry(relative_path=rel, content=content, mode=mode))
            report.record("dotfiles", rel, OutcomeStatus.SUCCEEDED)
        return dotfiles, skipped

    async def _capture_packages(
        self, report: CaptureReport
    ) -> tuple[dict[ManagerKey, list[PackageInfo]], dict[ManagerKey, str]]:
        available = []
        for manager in self.managers:
            if manager.is_available():
                available.append(manager)
            else:
                report.record("packages", manager.name, OutcomeStatus.SKIPPED, "not installed")

        results = await asyncio.gather(*(self._list_one(m) for m in available))

        packages: dict[ManagerKey, list[PackageInfo]] = {}
        failed: dict[ManagerKey, str] = {}
        for manager, (listed, error) in zip(available, results):
            if error is not None:
                failed[manager.key] = error
                report.record("packages", manager.name, OutcomeStatus.FAILED, error)
                continue
            packages[manager.key] = listed
            report.record("packages", manager.name, OutcomeStatus.SUCCEEDED, f"{len(listed)} package(s)")
        return packages, failed

    async def _list_one(self, manager: PackageManager) -> tuple[list[PackageInfo], Optional[str]]:
        try:
            return await manager.list_installed(), None
        except (TetherError, OSError, UnicodeDecodeError) as exc:
            logger.warning("%s: listing failed, omitting from snapshot: %s", manager.label, exc)
            return [], str(exc)


async def capture_snapshot(
    home: Optional[Path] = None, config: Optional[TetherConfig] = None
) -> CaptureReport:
    """Convenience wrapper: build a snapshot with default adapters."""
    return await SnapshotBuilder(home=home, config=config).build()
