"""
Keystore binding -- where the snapshot encryption key lives.

``KeyringKeystore`` delegates to the ``keyring`` library, which maps to
the macOS login keychain, the Secret Service on Linux and the Windows
Credential Locker. Secrets are hex-encoded into the password slot.
``MemoryKeystore`` keeps everything in-process.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from ..errors import KeyNotFound, KeystoreUnavailable
from .encryption import KEY_SIZE, generate_key

logger = logging.getLogger("tether.security.keystore")

SERVICE = "com.tether-cli"
ACCOUNT = "encryption-key"


class Keystore(ABC):
    """Named secret blobs addressed by (service, account)."""

    @abstractmethod
    def get(self, service: str, account: str) -> Optional[bytes]:
        """The stored secret, or None when nothing is stored."""

    @abstractmethod
    def _set(self, service: str, account: str, secret: bytes) -> None:
        """Write ``secret`` without clearing a previous value first."""

    @abstractmethod
    def delete(self, service: str, account: str) -> bool:
        """Remove the secret. Returns False if nothing was stored."""

    def store(self, service: str, account: str, secret: bytes) -> None:
        """Overwrite cleanly: delete any existing value, then set."""
        self.delete(service, account)
        self._set(service, account, secret)

    def has(self, service: str, account: str) -> bool:
        return self.get(service, account) is not None


class KeyringKeystore(Keystore):
    """Platform keystore through the ``keyring`` library."""

    def get(self, service: str, account: str) -> Optional[bytes]:
        try:
            value = keyring.get_password(service, account)
        except KeyringError as exc:
            raise KeystoreUnavailable(exc) from exc
        if value is None:
            return None
        try:
            return bytes.fromhex(value)
        except ValueError as exc:
            raise KeystoreUnavailable(f"stored value for {service}/{account} is not hex") from exc

    def _set(self, service: str, account: str, secret: bytes) -> None:
        try:
            keyring.set_password(service, account, secret.hex())
        except KeyringError as exc:
            raise KeystoreUnavailable(exc) from exc

    def delete(self, service: str, account: str) -> bool:
        try:
            keyring.delete_password(service, account)
        except PasswordDeleteError:
            return False
        except KeyringError as exc:
            raise KeystoreUnavailable(exc) from exc
        return True


class MemoryKeystore(Keystore):
    """In-process keystore for tests and dry runs."""

    def __init__(self) -> None:
        self._items: dict[tuple[str, str], bytes] = {}

    def get(self, service: str, account: str) -> Optional[bytes]:
        return self._items.get((service, account))

    def _set(self, service: str, account: str, secret: bytes) -> None:
        self._items[(service, account)] = bytes(secret)

    def delete(self, service: str, account: str) -> bool:
        return self._items.pop((service, account), None) is not None


class EncryptionKeyManager:
    """Lifecycle of the single snapshot encryption key.

    Generated once by ``initialize``, read-only afterwards, and only
    replaced through the explicit ``reinitialize`` path.
    """

    def __init__(
        self,
        keystore: Optional[Keystore] = None,
        service: str = SERVICE,
        account: str = ACCOUNT,
    ) -> None:
        self.keystore = keystore or KeyringKeystore()
        self.service = service
        self.account = account

    def exists(self) -> bool:
        return self.keystore.has(self.service, self.account)

    def initialize(self) -> bytes:
        """Generate and store the key.

        Raises:
            FileExistsError: A key is already stored.
        """
        if self.exists():
            raise FileExistsError(
                f"An encryption key already exists for {self.service}/{self.account}"
            )
        key = generate_key()
        self.keystore.store(self.service, self.account, key)
        logger.info("Encryption key generated and stored in keystore")
        return key

    def load(self) -> bytes:
        """The stored key.

        Raises:
            KeyNotFound: No key has been initialized.
            KeystoreUnavailable: The stored value is malformed or unreachable.
        """
        key = self.keystore.get(self.service, self.account)
        if key is None:
            raise KeyNotFound(self.service, self.account)
        if len(key) != KEY_SIZE:
            raise KeystoreUnavailable(
                f"stored key has {len(key)} bytes, expected {KEY_SIZE}"
            )
        return key

    def reinitialize(self) -> bytes:
        """Delete the current key (if any) and generate a new one."""
        self.keystore.delete(self.service, self.account)
        logger.warning("Encryption key reset; snapshots sealed with the old key are unreadable")
        return self.initialize()
