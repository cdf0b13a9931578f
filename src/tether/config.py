"""
Tether configuration -- ~/.tether/config.yaml.

A missing or unreadable config never stops a sync: the defaults below
are used and the problem is logged.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from . import TETHER_DIR_NAME, USER_HOME
from .models import ManagerKey

logger = logging.getLogger("tether.config")

CONFIG_FILE = "config.yaml"

DEFAULT_DOTFILES = [
    ".zshrc",
    ".zprofile",
    ".bashrc",
    ".bash_profile",
    ".gitconfig",
    ".tmux.conf",
    ".vimrc",
]

SHELL_RC_FILES = [".zshrc", ".zprofile", ".bashrc", ".bash_profile"]


def resolve_home(home: Optional[Path] = None) -> Path:
    """The user's home directory (TETHER_HOME overrides ~)."""
    return (home or Path(USER_HOME)).expanduser()


def tether_dir(home: Optional[Path] = None) -> Path:
    """The ~/.tether state directory for ``home``."""
    return resolve_home(home) / TETHER_DIR_NAME


def is_safe_dotfile_path(path: str) -> bool:
    """Reject absolute paths, empty paths and ``..`` traversal."""
    candidate = path[2:] if path.startswith("~/") else path
    if not candidate or candidate.startswith("/"):
        return False
    return all(part != ".." for part in candidate.split("/"))


class PackagesConfig(BaseModel):
    """Which package managers take part in sync."""

    enabled: list[ManagerKey] = Field(default_factory=lambda: list(ManagerKey))
    timeout_seconds: float = 60.0


class SecurityConfig(BaseModel):
    scan_secrets: bool = True
    allow_secrets: bool = False


class BackupsConfig(BaseModel):
    keep: int = Field(default=5, ge=1)


class TetherConfig(BaseModel):
    """Complete user configuration."""

    dotfiles: list[str] = Field(default_factory=lambda: list(DEFAULT_DOTFILES))
    dirs: list[str] = Field(default_factory=list)
    discover_dirs: bool = True
    packages: PackagesConfig = Field(default_factory=PackagesConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    backups: BackupsConfig = Field(default_factory=BackupsConfig)

    @field_validator("dotfiles", "dirs")
    @classmethod
    def _safe_paths(cls, value: list[str]) -> list[str]:
        cleaned = []
        for path in value:
            if not is_safe_dotfile_path(path):
                logger.warning("Ignoring unsafe dotfile path: %r", path)
                continue
            cleaned.append(path[2:] if path.startswith("~/") else path)
        return cleaned


def load_config(home: Optional[Path] = None) -> TetherConfig:
    """Load config from ``~/.tether/config.yaml``, falling back to defaults."""
    config_file = tether_dir(home) / CONFIG_FILE
    if config_file.exists():
        try:
            data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
            return TetherConfig(**data)
        except (yaml.YAMLError, ValidationError, TypeError) as exc:
            logger.warning("Failed to load tether config: %s", exc)
    return TetherConfig()


def save_config(config: TetherConfig, home: Optional[Path] = None) -> Path:
    """Persist ``config`` as YAML and return the file path."""
    config_file = tether_dir(home) / CONFIG_FILE
    config_file.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="json")
    config_file.write_text(yaml.dump(data, default_flow_style=False), encoding="utf-8")
    return config_file
