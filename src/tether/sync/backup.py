"""
Backup store -- a copy of every file before Tether overwrites it.

Layout::

    ~/.tether/backups/
    └── 2026-01-15T10-30-45/       # UTC, %Y-%m-%dT%H-%M-%S
        ├── dotfiles/.zshrc
        └── projects/...

Directory names sort lexically in creation order. Two backups made in
the same second by one process get a ``-N`` suffix on the second one.
Only the newest few are retained.
"""

from __future__ import annotations

import logging
import re
import shutil
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from ..config import resolve_home, tether_dir
from ..errors import BackupFailed, RestoreFailed

logger = logging.getLogger("tether.sync.backup")

MAX_BACKUPS = 5
TIMESTAMP_FORMAT = "%Y-%m-%dT%H-%M-%S"
CATEGORIES = ("dotfiles", "projects")

_TIMESTAMP_RE = re.compile(r"^(\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2})(?:-(\d+))?$")

_stamp_lock = threading.Lock()
_last_base: Optional[str] = None
_last_seq = 0


def backups_dir(home: Optional[Path] = None) -> Path:
    return tether_dir(home) / "backups"


def format_backup_timestamp(moment: datetime) -> str:
    """Render a UTC moment as a backup directory name."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime(TIMESTAMP_FORMAT)


def parse_backup_timestamp(stamp: str) -> Optional[datetime]:
    """Parse a backup directory name (``-N`` suffix allowed) to a UTC datetime."""
    match = _TIMESTAMP_RE.match(stamp)
    if not match:
        return None
    try:
        parsed = datetime.strptime(match.group(1), TIMESTAMP_FORMAT)
    except ValueError:
        return None
    return parsed.replace(tzinfo=timezone.utc)


def _next_timestamp(now: Optional[datetime] = None) -> str:
    global _last_base, _last_seq

    base = format_backup_timestamp(now or datetime.now(timezone.utc))
    with _stamp_lock:
        if _last_base is not None and base <= _last_base:
            _last_seq += 1
            return f"{_last_base}-{_last_seq}"
        _last_base, _last_seq = base, 0
        return base


def create_backup_dir(home: Optional[Path] = None) -> Path:
    """Create and return a fresh timestamped backup directory."""
    root = backups_dir(home)
    root.mkdir(parents=True, exist_ok=True)
    while True:
        path = root / _next_timestamp()
        try:
            path.mkdir()
        except FileExistsError:
            continue
        logger.debug("Created backup directory %s", path)
        return path


def backup_file(
    backup_dir: Path,
    category: str,
    relative_path: str,
    source: Path,
) -> bool:
    """Copy ``source`` into ``backup_dir/category/relative_path``.

    Returns:
        True if a copy was made, False if ``source`` does not exist.

    Raises:
        ValueError: Unknown category.
        BackupFailed: ``source`` exists but could not be copied.
    """
    if category not in CATEGORIES:
        raise ValueError(f"Unknown backup category: {category}")
    if not source.exists():
        return False

    dest = backup_dir / category / relative_path
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, dest)
    except OSError as exc:
        raise BackupFailed(str(source), exc) from exc
    return True


def list_backups(home: Optional[Path] = None) -> list[str]:
    """Backup timestamps, newest first."""
    root = backups_dir(home)
    if not root.exists():
        return []
    return sorted(
        (p.name for p in root.iterdir() if p.is_dir() and _TIMESTAMP_RE.match(p.name)),
        reverse=True,
    )


def list_backup_files(timestamp: str, home: Optional[Path] = None) -> list[tuple[str, str]]:
    """``(category, relative_path)`` for every file in one backup.

    Raises:
        RestoreFailed: No backup with that timestamp.
    """
    root = backups_dir(home) / timestamp
    if not root.is_dir():
        raise RestoreFailed(timestamp, "backup not found")

    files = []
    for path in sorted(root.rglob("*")):
        if not path.is_file():
            continue
        parts = path.relative_to(root).parts
        if len(parts) >= 2:
            files.append((parts[0], "/".join(parts[1:])))
    return files


def restore_file(
    timestamp: str,
    category: str,
    relative_path: str,
    home: Optional[Path] = None,
    destination: Optional[Path] = None,
) -> Path:
    """Copy a backed-up file back to where it came from.

    ``dotfiles`` restore to ``~/<relative_path>``. ``projects`` have no
    recorded origin, so the caller must pass ``destination``.

    Returns:
        The path written.

    Raises:
        RestoreFailed: Unknown category, missing destination, or the
            backup copy does not exist.
    """
    if category == "dotfiles":
        dest = destination or resolve_home(home) / relative_path
    elif category == "projects":
        if destination is None:
            raise RestoreFailed(
                f"{category}/{relative_path}",
                "project files need an explicit destination",
            )
        dest = destination
    else:
        raise RestoreFailed(f"{category}/{relative_path}", f"unknown category {category!r}")

    source = backups_dir(home) / timestamp / category / relative_path
    if not source.is_file():
        raise RestoreFailed(f"{category}/{relative_path}", f"not in backup {timestamp}")

    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, dest)
    logger.info("Restored %s/%s from %s to %s", category, relative_path, timestamp, dest)
    return dest


def prune_old_backups(home: Optional[Path] = None, keep: int = MAX_BACKUPS) -> int:
    """Delete all but the ``keep`` newest backups. Returns how many went."""
    backups = list_backups(home)
    stale = backups[keep:]
    root = backups_dir(home)
    for stamp in stale:
        shutil.rmtree(root / stamp)
        logger.debug("Pruned backup %s", stamp)
    return len(stale)
