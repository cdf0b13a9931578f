"""Tests for machine identity and the apply lock."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from tether.errors import EXIT_BUSY, Busy
from tether.sync.lock import ApplyLock
from tether.sync.state import generate_machine_id, get_machine_id, state_dir


class TestMachineId:
    """Tests for the persistent machine id."""

    def test_generated_from_hostname(self) -> None:
        """The id is a hostname slug plus a random suffix."""
        machine_id = generate_machine_id("Work Laptop.local")
        slug, _, suffix = machine_id.rpartition("-")
        assert slug == "work-laptop-local"
        assert len(suffix) == 6

    def test_stable_across_calls(self, home: Path) -> None:
        """The first id is written once and read back later."""
        first = get_machine_id(home)
        assert get_machine_id(home) == first
        assert (state_dir(home) / "machine_id").read_text().strip() == first

    def test_empty_file_regenerates(self, home: Path) -> None:
        """A blank id file is replaced."""
        path = state_dir(home) / "machine_id"
        path.parent.mkdir(parents=True)
        path.write_text("\n")
        assert get_machine_id(home)


class TestApplyLock:
    """Tests for the advisory apply lock."""

    def test_second_holder_is_busy(self, home: Path) -> None:
        """A held lock makes the next acquire fail fast."""
        with ApplyLock(home):
            with pytest.raises(Busy) as exc_info:
                ApplyLock(home).acquire()
        assert exc_info.value.exit_code == EXIT_BUSY

    def test_released_on_exit(self, home: Path) -> None:
        """The lock can be taken again once released."""
        with ApplyLock(home) as lock:
            assert lock.held
        assert not lock.held
        with ApplyLock(home):
            pass

    def test_records_pid(self, home: Path) -> None:
        """The lock file names its holder."""
        with ApplyLock(home) as lock:
            assert lock.path.read_text().strip() == str(os.getpid())
