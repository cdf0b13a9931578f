"""Local machine state under ~/.tether/state/."""

from __future__ import annotations

import logging
import re
import secrets
import socket
from pathlib import Path
from typing import Optional

from ..config import tether_dir

logger = logging.getLogger("tether.sync.state")

MACHINE_ID_FILE = "machine_id"


def state_dir(home: Optional[Path] = None) -> Path:
    return tether_dir(home) / "state"


def _slug(hostname: str) -> str:
    slug = re.sub(r"[^a-z0-9-]+", "-", hostname.lower()).strip("-")
    return slug or "machine"


def generate_machine_id(hostname: Optional[str] = None) -> str:
    """Hostname slug plus a short random suffix, e.g. ``work-laptop-3f9a1c``."""
    return f"{_slug(hostname or socket.gethostname())}-{secrets.token_hex(3)}"


def get_machine_id(home: Optional[Path] = None) -> str:
    """The stable id of this machine, created on first call."""
    id_file = state_dir(home) / MACHINE_ID_FILE
    if id_file.exists():
        machine_id = id_file.read_text(encoding="utf-8").strip()
        if machine_id:
            return machine_id
        logger.warning("Empty machine id file %s; regenerating", id_file)

    machine_id = generate_machine_id()
    id_file.parent.mkdir(parents=True, exist_ok=True)
    id_file.write_text(machine_id + "\n", encoding="utf-8")
    logger.info("Generated machine id %s", machine_id)
    return machine_id
