"""
Snapshot encryption -- AES-256-GCM with an embedded random nonce.

Layout of every ciphertext::

    nonce (12 bytes) || ciphertext || tag (16 bytes)

A fresh 96-bit nonce is drawn for each call, so the same plaintext
never encrypts to the same bytes twice under one key.
"""

from __future__ import annotations

import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..errors import DecryptionAuthFailed

KEY_SIZE = 32
NONCE_SIZE = 12
TAG_SIZE = 16


def _check_key(key: bytes) -> None:
    if len(key) != KEY_SIZE:
        raise ValueError(f"Invalid key size: expected {KEY_SIZE} bytes, got {len(key)}")


def generate_key() -> bytes:
    """A new random 256-bit key."""
    return AESGCM.generate_key(bit_length=KEY_SIZE * 8)


def encrypt_file(plaintext: bytes, key: bytes) -> bytes:
    """Encrypt ``plaintext`` and prepend the nonce.

    Raises:
        ValueError: If ``key`` is not 32 bytes.
    """
    _check_key(key)
    nonce = os.urandom(NONCE_SIZE)
    return nonce + AESGCM(key).encrypt(nonce, plaintext, None)


def decrypt_file(ciphertext: bytes, key: bytes) -> bytes:
    """Authenticate and decrypt a blob produced by ``encrypt_file``.

    Raises:
        ValueError: If ``key`` is not 32 bytes.
        DecryptionAuthFailed: Wrong key, truncated or tampered input.
    """
    _check_key(key)
    if len(ciphertext) < NONCE_SIZE + TAG_SIZE:
        raise DecryptionAuthFailed("ciphertext too short")
    nonce, body = ciphertext[:NONCE_SIZE], ciphertext[NONCE_SIZE:]
    try:
        return AESGCM(key).decrypt(nonce, body, None)
    except InvalidTag:
        raise DecryptionAuthFailed(
            "the data is corrupted or was encrypted with a different key"
        ) from None
