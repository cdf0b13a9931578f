"""Tests for the snapshot data model."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from tether.models import (
    DotfileEntry,
    MachineSnapshot,
    ManagerKey,
    PackageInfo,
    normalize_packages,
)


class TestPackageInfo:
    """Tests for PackageInfo and inventory normalization."""

    def test_spec(self) -> None:
        """Versions render with the requested separator."""
        assert PackageInfo(name="ts-node", version="10.9.2").spec() == "ts-node@10.9.2"
        assert PackageInfo(name="ruff", version="0.6.0").spec("==") == "ruff==0.6.0"
        assert PackageInfo(name="git").spec() == "git"

    def test_normalize_first_wins(self) -> None:
        """Duplicates keep the first occurrence; output is sorted."""
        result = normalize_packages([
            PackageInfo(name="b", version="1"),
            PackageInfo(name="a"),
            PackageInfo(name="b", version="2"),
        ])
        assert result == [PackageInfo(name="a"), PackageInfo(name="b", version="1")]


class TestDotfileEntry:
    """Tests for DotfileEntry path validation."""

    @pytest.mark.parametrize("path", ["", "/etc/passwd", "../outside", ".config/../../x"])
    def test_rejects_unsafe(self, path: str) -> None:
        """Only home-relative paths without traversal are valid."""
        with pytest.raises(ValidationError):
            DotfileEntry(relative_path=path, content=b"")

    def test_accepts_nested(self) -> None:
        """Nested relative paths are fine."""
        entry = DotfileEntry(relative_path=".config/zsh/a.zsh", content=b"x", mode=0o644)
        assert entry.mode == 0o644


class TestMachineSnapshot:
    """Tests for MachineSnapshot."""

    def test_inventory_normalized(self) -> None:
        """Inventories are sorted and deduplicated on construction."""
        snapshot = MachineSnapshot(
            machine_id="m1",
            packages={"npm": [PackageInfo(name="z"), PackageInfo(name="a"), PackageInfo(name="z")]},
        )
        assert [p.name for p in snapshot.packages[ManagerKey.NPM]] == ["a", "z"]

    def test_requires_machine_id(self) -> None:
        """An empty machine id is invalid."""
        with pytest.raises(ValidationError):
            MachineSnapshot(machine_id="")

    def test_unknown_fields_ignored(self) -> None:
        """Extra fields from newer writers are dropped."""
        snapshot = MachineSnapshot.model_validate({"machine_id": "m1", "future_field": 1})
        assert snapshot.machine_id == "m1"
        assert snapshot.dotfiles == []

    def test_dotfile_lookup(self) -> None:
        """Entries are found by relative path."""
        snapshot = MachineSnapshot(
            machine_id="m1",
            dotfiles=[DotfileEntry(relative_path=".zshrc", content=b"x")],
        )
        assert snapshot.dotfile(".zshrc").content == b"x"
        assert snapshot.dotfile(".bashrc") is None

    def test_duplicate_paths_rejected(self) -> None:
        """A path may appear only once in a snapshot."""
        with pytest.raises(ValidationError, match="duplicate dotfile path"):
            MachineSnapshot(
                machine_id="m1",
                dotfiles=[
                    DotfileEntry(relative_path=".zshrc", content=b"first\n"),
                    DotfileEntry(relative_path=".zshrc", content=b"second\n"),
                ],
            )

    def test_manager_labels(self) -> None:
        """Every key has a human label."""
        assert ManagerKey.BREW_CASKS.label == "Homebrew casks"
        assert all(key.label for key in ManagerKey)
