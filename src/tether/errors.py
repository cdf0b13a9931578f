"""
Error kinds raised by the sync engine.

Every exception derives from TetherError and carries an exit_code the
CLI maps straight to the process status.
"""

from __future__ import annotations

from typing import Sequence

EXIT_FAILURE = 1
EXIT_BUSY = 2
EXIT_SECRETS_FOUND = 3


class TetherError(Exception):
    """Base class for all Tether failures."""

    exit_code: int = EXIT_FAILURE


class ProgramMissing(TetherError):
    """An external tool is not on PATH."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Program not found on PATH: {name}")


class ProcessFailed(TetherError):
    """An external tool exited non-zero."""

    def __init__(
        self,
        name: str,
        argv: Sequence[str],
        exit_code: int,
        stderr: str,
    ) -> None:
        self.name = name
        self.argv = list(argv)
        self.returncode = exit_code
        self.stderr = stderr
        super().__init__(
            f"{name} {' '.join(self.argv)} failed (exit {exit_code}): {stderr.strip()}"
        )


class ProcessTimeout(ProcessFailed):
    """An external tool ran past its wall-clock budget and was killed."""

    def __init__(self, name: str, argv: Sequence[str], timeout: float) -> None:
        self.timeout = timeout
        super().__init__(name, argv, -1, f"timed out after {timeout:g}s")


class ParseFailed(TetherError):
    """Output of a tool (or a stored document) could not be parsed."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Could not parse {source}: {reason}")


class UnsupportedOperation(TetherError):
    """The adapter does not implement the requested capability."""

    def __init__(self, manager: str, operation: str) -> None:
        self.manager = manager
        self.operation = operation
        super().__init__(f"{manager} does not support {operation}")


class SecretFound(TetherError):
    """The secret scanner flagged a candidate file."""

    exit_code = EXIT_SECRETS_FOUND

    def __init__(self, path: str, findings: list) -> None:
        self.path = path
        self.findings = findings
        super().__init__(f"{len(findings)} possible secret(s) in {path}")


class BackupFailed(TetherError):
    """The source file exists but could not be copied into the backup."""

    def __init__(self, path: str, cause: BaseException) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Backup of {path} failed: {cause}")


class RestoreFailed(TetherError):
    """A restore request was refused or its backup copy is missing."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot restore {path}: {reason}")


class KeystoreUnavailable(TetherError):
    """The platform keystore could not be reached."""

    def __init__(self, cause: BaseException | str) -> None:
        self.cause = cause
        super().__init__(f"Keystore unavailable: {cause}")


class KeyNotFound(TetherError):
    """No encryption key is stored yet."""

    def __init__(self, service: str = "", account: str = "") -> None:
        self.service = service
        self.account = account
        super().__init__(
            f"No key stored for {service}/{account}. Run 'tether key init' first."
        )


class DecryptionAuthFailed(TetherError):
    """Ciphertext failed authentication (wrong key, truncation or tampering)."""

    def __init__(self, reason: str = "authentication tag mismatch") -> None:
        super().__init__(f"Decryption failed: {reason}")


class Busy(TetherError):
    """Another apply holds the advisory lock."""

    exit_code = EXIT_BUSY

    def __init__(self, lock_path: str) -> None:
        self.lock_path = lock_path
        super().__init__(f"Another tether apply is running (lock held: {lock_path})")
