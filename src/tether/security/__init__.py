"""
Security -- secret scanning, snapshot encryption and key storage.

Nothing leaves the machine unscanned, and nothing is stored unsealed.
"""

from .encryption import decrypt_file, encrypt_file, generate_key
from .keystore import EncryptionKeyManager, KeyringKeystore, Keystore, MemoryKeystore
from .secrets import SecretScanner, get_scanner, scan_content, scan_for_secrets

__all__ = [
    "EncryptionKeyManager",
    "KeyringKeystore",
    "Keystore",
    "MemoryKeystore",
    "SecretScanner",
    "decrypt_file",
    "encrypt_file",
    "generate_key",
    "get_scanner",
    "scan_content",
    "scan_for_secrets",
]
