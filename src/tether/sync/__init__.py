"""Capture, apply and backup of machine state."""

from .apply import ApplyEngine, apply_snapshot
from .report import ApplyReport, CaptureReport, FileState, ItemOutcome, OutcomeStatus
from .snapshot import (
    SnapshotBuilder,
    capture_snapshot,
    decode_snapshot,
    decrypt_snapshot,
    encode_snapshot,
    encrypt_snapshot,
    load_snapshot,
    save_snapshot,
)

__all__ = [
    "ApplyEngine",
    "ApplyReport",
    "CaptureReport",
    "FileState",
    "ItemOutcome",
    "OutcomeStatus",
    "SnapshotBuilder",
    "apply_snapshot",
    "capture_snapshot",
    "decode_snapshot",
    "decrypt_snapshot",
    "encode_snapshot",
    "encrypt_snapshot",
    "load_snapshot",
    "save_snapshot",
]
