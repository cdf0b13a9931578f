"""Per-item outcomes and the summaries printed after a capture or apply."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from ..errors import SecretFound
from ..models import MachineSnapshot


class OutcomeStatus(str, Enum):
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


class FileState(str, Enum):
    """Lifecycle of one file write during an apply."""

    ABSENT = "absent"
    BACKED_UP = "backed-up"
    WRITTEN = "written"
    VERIFIED = "verified"
    ROLLED_BACK = "rolled-back"


@dataclass
class ItemOutcome:
    category: str
    item: str
    status: OutcomeStatus
    detail: str = ""


@dataclass
class Report:
    """Ordered outcomes with a per-category tally."""

    outcomes: list[ItemOutcome] = field(default_factory=list)

    def record(
        self, category: str, item: str, status: OutcomeStatus, detail: str = ""
    ) -> ItemOutcome:
        outcome = ItemOutcome(category, item, status, detail)
        self.outcomes.append(outcome)
        return outcome

    def summary(self) -> dict[str, dict[str, int]]:
        """``{category: {"succeeded": n, "skipped": n, "failed": n}}``."""
        totals: dict[str, dict[str, int]] = {}
        for outcome in self.outcomes:
            bucket = totals.setdefault(
                outcome.category, {status.value: 0 for status in OutcomeStatus}
            )
            bucket[outcome.status.value] += 1
        return totals

    @property
    def failed(self) -> list[ItemOutcome]:
        return [o for o in self.outcomes if o.status == OutcomeStatus.FAILED]


@dataclass
class CaptureReport(Report):
    snapshot: Optional[MachineSnapshot] = None

    def raise_for_secrets(self) -> None:
        """Raise SecretFound for the first file dropped because of secrets."""
        if self.snapshot is None:
            return
        for skipped in self.snapshot.skipped:
            if skipped.findings:
                raise SecretFound(skipped.relative_path, skipped.findings)


@dataclass
class ApplyReport(Report):
    backup_dir: Optional[Path] = None
    file_states: dict[str, FileState] = field(default_factory=dict)
    failed_paths: list[str] = field(default_factory=list)
    pruned: int = 0

    @property
    def degraded(self) -> bool:
        """True when any written file failed verification."""
        return any(state == FileState.ROLLED_BACK for state in self.file_states.values())
