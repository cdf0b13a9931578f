"""
Apply engine -- make this machine match a MachineSnapshot.

Order of work:

1. Take the apply lock (a concurrent apply fails with Busy).
2. Back up and write every dotfile, verifying each write.
3. Install missing packages, one manager at a time in key order.
4. Prune old backups.

A file whose backup fails is left untouched. A file that fails
verification is rolled back from its backup and the run is marked
degraded. A package manager that fails loses its own slot only.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import os
from pathlib import Path
from typing import Callable, Optional

from ..audit import audit_event
from ..config import TetherConfig, load_config, resolve_home
from ..errors import BackupFailed, TetherError
from ..models import DotfileEntry, MachineSnapshot, ManagerKey
from ..packages import ImportResult, PackageManager, create_manager
from .backup import backup_file, create_backup_dir, prune_old_backups
from .lock import ApplyLock
from .report import ApplyReport, FileState, OutcomeStatus

logger = logging.getLogger("tether.sync.apply")

ManagerFactory = Callable[[ManagerKey, float], PackageManager]


def _digest(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _write_atomic(target: Path, content: bytes, mode: Optional[int]) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp = target.with_name(f".{target.name}.tether-tmp")
    try:
        tmp.write_bytes(content)
        if mode is not None:
            os.chmod(tmp, mode)
        os.replace(tmp, target)
    finally:
        if tmp.exists():
            tmp.unlink()


class ApplyEngine:
    """Applies snapshots to one home directory.

    Args:
        home: Target home directory. Defaults to ~ (or TETHER_HOME).
        config: Settings (enabled managers, backup retention).
        manager_factory: Builds an adapter for a key; tests inject fakes.
    """

    def __init__(
        self,
        home: Optional[Path] = None,
        config: Optional[TetherConfig] = None,
        manager_factory: Optional[ManagerFactory] = None,
    ) -> None:
        self.home = resolve_home(home)
        self.config = config or load_config(self.home)
        self.manager_factory = manager_factory or create_manager

    async def apply(
        self,
        snapshot: MachineSnapshot,
        include_dotfiles: bool = True,
        include_packages: bool = True,
    ) -> ApplyReport:
        """Apply ``snapshot``.

        Raises:
            Busy: Another apply holds the lock.
        """
        report = ApplyReport()
        with ApplyLock(self.home):
            backup_dir = create_backup_dir(self.home)
            report.backup_dir = backup_dir
            logger.info("Applying snapshot from %s (backup: %s)", snapshot.machine_id, backup_dir)

            if include_dotfiles:
                for entry in snapshot.dotfiles:
                    self._apply_dotfile(entry, backup_dir, report)

            if include_packages:
                await self._apply_packages(snapshot, report)

            report.pruned = prune_old_backups(self.home, keep=self.config.backups.keep)

        audit_event(
            self.home,
            "APPLY",
            f"snapshot from {snapshot.machine_id}",
            metadata={
                "summary": report.summary(),
                "degraded": report.degraded,
                "failed_paths": report.failed_paths,
            },
        )
        return report

    # -- dotfiles ---------------------------------------------------------

    def _apply_dotfile(self, entry: DotfileEntry, backup_dir: Path, report: ApplyReport) -> None:
        rel = entry.relative_path
        target = self.home / rel
        report.file_states[rel] = FileState.ABSENT

        try:
            backed_up = backup_file(backup_dir, "dotfiles", rel, target)
        except BackupFailed as exc:
            logger.error("Not writing %s: %s", rel, exc)
            report.failed_paths.append(rel)
            report.record("dotfiles", rel, OutcomeStatus.FAILED, str(exc))
            return
        if backed_up:
            report.file_states[rel] = FileState.BACKED_UP

        try:
            _write_atomic(target, entry.content, entry.mode)
        except OSError as exc:
            logger.error("Failed to write %s: %s", target, exc)
            report.failed_paths.append(rel)
            report.record("dotfiles", rel, OutcomeStatus.FAILED, str(exc))
            return
        report.file_states[rel] = FileState.WRITTEN

        if self._verify(target, entry.content):
            report.file_states[rel] = FileState.VERIFIED
            report.record("dotfiles", rel, OutcomeStatus.SUCCEEDED)
            return

        logger.error("Verification failed for %s, rolling back", target)
        self._rollback(target, backup_dir / "dotfiles" / rel, backed_up)
        report.file_states[rel] = FileState.ROLLED_BACK
        report.failed_paths.append(rel)
        report.record("dotfiles", rel, OutcomeStatus.FAILED, "verification failed")

    @staticmethod
    def _verify(target: Path, expected: bytes) -> bool:
        try:
            written = target.read_bytes()
        except OSError:
            return False
        return len(written) == len(expected) and _digest(written) == _digest(expected)

    @staticmethod
    def _rollback(target: Path, backup: Path, backed_up: bool) -> None:
        try:
            if backed_up:
                target.write_bytes(backup.read_bytes())
            elif target.exists():
                target.unlink()
        except OSError as exc:
            logger.error("Rollback of %s failed: %s", target, exc)

    # -- packages ---------------------------------------------------------

    async def _apply_packages(self, snapshot: MachineSnapshot, report: ApplyReport) -> None:
        enabled = set(self.config.packages.enabled)
        timeout = self.config.packages.timeout_seconds

        for key in sorted(snapshot.packages, key=lambda k: k.value):
            packages = snapshot.packages[key]
            if key not in enabled:
                report.record(key.value, "*", OutcomeStatus.SKIPPED, "disabled in config")
                continue
            manager = self.manager_factory(key, timeout)
            if not manager.is_available():
                logger.warning("%s not installed, skipping %d package(s)", key.label, len(packages))
                report.record(key.value, "*", OutcomeStatus.SKIPPED, "not installed")
                continue

            manifest = "\n".join(p.name for p in packages)
            try:
                result = await self._import_shielded(manager, manifest)
            except TetherError as exc:
                logger.warning("%s: import failed: %s", key.label, exc)
                report.record(key.value, "*", OutcomeStatus.FAILED, str(exc))
                continue
            self._record_import(key, result, report)

    @staticmethod
    async def _import_shielded(manager: PackageManager, manifest: str) -> ImportResult:
        # A cancelled apply lets the in-flight import finish before unwinding.
        task = asyncio.ensure_future(manager.import_manifest(manifest))
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            await asyncio.wait({task})
            raise

    @staticmethod
    def _record_import(key: ManagerKey, result: ImportResult, report: ApplyReport) -> None:
        for name in result.installed:
            report.record(key.value, name, OutcomeStatus.SUCCEEDED)
        for name in result.present:
            report.record(key.value, name, OutcomeStatus.SKIPPED, "already installed")
        for name, error in result.failed.items():
            report.record(key.value, name, OutcomeStatus.FAILED, error)
        for name in result.invalid:
            report.record(key.value, name, OutcomeStatus.FAILED, "unsafe package name")


async def apply_snapshot(
    snapshot: MachineSnapshot,
    home: Optional[Path] = None,
    config: Optional[TetherConfig] = None,
) -> ApplyReport:
    """Convenience wrapper: apply with default adapters."""
    return await ApplyEngine(home=home, config=config).apply(snapshot)
