"""
Audit log -- append-only JSONL record of captures and applies.

One JSON object per line: timestamp, event type, detail, host and
optional metadata. Writing the log never fails the operation it
describes.
"""

from __future__ import annotations

import json
import logging
import socket
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from .config import tether_dir

logger = logging.getLogger("tether.audit")

AUDIT_LOG_NAME = "audit.log"


class AuditEntry(BaseModel):
    """A single structured audit log entry."""

    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    event_type: str
    detail: str
    host: str = Field(default_factory=socket.gethostname)
    metadata: Optional[dict] = None


def audit_event(
    home: Optional[Path],
    event_type: str,
    detail: str,
    metadata: Optional[dict] = None,
) -> None:
    """Append an entry to ~/.tether/audit.log."""
    entry = AuditEntry(event_type=event_type, detail=detail, metadata=metadata)
    log_path = tether_dir(home) / AUDIT_LOG_NAME
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with open(log_path, "a", encoding="utf-8") as fh:
            fh.write(entry.model_dump_json() + "\n")
    except OSError as exc:
        logger.warning("Could not write audit log %s: %s", log_path, exc)


def read_audit_log(home: Optional[Path] = None, limit: int = 50) -> list[AuditEntry]:
    """The last ``limit`` entries, oldest first. Corrupt lines are skipped."""
    log_path = tether_dir(home) / AUDIT_LOG_NAME
    if not log_path.exists():
        return []
    entries = []
    for line in log_path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            entries.append(AuditEntry(**json.loads(line)))
        except (json.JSONDecodeError, ValueError):
            continue
    return entries[-limit:]
