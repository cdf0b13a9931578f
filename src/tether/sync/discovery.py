"""
Shell discovery -- find config directories sourced by shell rc files.

Only glob-style sourcing counts (``source ~/.config/zsh/*.zsh`` or a
``for f in ~/.config/zsh/*.zsh(N)`` loop); single-file sources are
left alone because the file itself is already a dotfile.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, Optional

logger = logging.getLogger("tether.sync.discovery")

_SOURCE_GLOB = re.compile(
    r"""(?:source|\.)\s+["']?((?:~|\$HOME)/[^\s"'*]+)/\*\.[a-z]+"""
)
# (N) and friends are zsh glob qualifiers
_FOR_LOOP_GLOB = re.compile(
    r"""for\s+\w+\s+in\s+["']?((?:~|\$HOME)/[^\s"'*(]+)/\*\.[a-z]+(?:\([A-Z]+\))?"""
)


def expand_path(path: str, home: Path) -> Optional[Path]:
    """Expand a ``~/`` or ``$HOME/`` prefix; other paths give None."""
    for prefix in ("~/", "$HOME/"):
        if path.startswith(prefix):
            return home / path[len(prefix):]
    return None


def parse_sourced_dirs(content: str, home: Path) -> list[Path]:
    """Directories referenced by glob source directives in ``content``."""
    dirs = []
    for pattern in (_SOURCE_GLOB, _FOR_LOOP_GLOB):
        for match in pattern.finditer(content):
            expanded = expand_path(match.group(1), home)
            if expanded is not None:
                dirs.append(expanded)
    return dirs


def discover_sourced_dirs(home: Path, dotfiles: Iterable[str]) -> list[str]:
    """Existing directories sourced by ``dotfiles``, as sorted ``~/<rel>`` strings.

    Args:
        home: The user's home directory.
        dotfiles: Home-relative rc files to read (e.g. ``.zshrc``).

    Returns:
        Deduplicated, ascending list such as ``["~/.config/zsh"]``.
    """
    discovered: set[str] = set()
    for dotfile in dotfiles:
        path = home / dotfile
        if not path.is_file():
            continue
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.debug("Cannot read %s: %s", path, exc)
            continue

        for directory in parse_sourced_dirs(content, home):
            if not directory.is_dir():
                continue
            try:
                rel = directory.relative_to(home)
            except ValueError:
                continue
            discovered.add(f"~/{rel.as_posix()}")
    return sorted(discovered)


def dir_to_relative(discovered: str) -> str:
    """``~/.config/zsh`` -> ``.config/zsh``."""
    return discovered[2:] if discovered.startswith("~/") else discovered
