"""
Content Cipher component.

Symmetric encryption of raw content bytes: AES-256 in CBC mode with PKCS7
padding, one freshly generated IV per encrypt call.

Invariants:
- An IV is never reused: every encrypt call draws 16 new random bytes.
- Key material never appears in logs or error messages; only lengths do.
"""

from __future__ import annotations

import binascii
import logging
import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from blobgate.domain.errors import ConfigError, CryptoError

from .models import BLOCK_SIZE, IV_SIZE, KEY_SIZE, EncryptedPayload

logger = logging.getLogger(__name__)


def _check_key(secret: bytes | None) -> bytes:
    if secret is None:
        raise ConfigError("Encryption key is not configured")
    if len(secret) != KEY_SIZE:
        raise CryptoError(f"Encryption key must be {KEY_SIZE} bytes, got {len(secret)}")
    return secret


def parse_secret(value: str) -> bytes:
    """
    Decode the configured hex secret into a 32-byte key.

    Raises:
        ConfigError: If the value is not 64 hex characters
    """
    try:
        key = binascii.unhexlify(value.strip())
    except (binascii.Error, ValueError) as e:
        raise ConfigError("Encryption key must be hex encoded") from e
    if len(key) != KEY_SIZE:
        raise ConfigError(f"Encryption key must decode to {KEY_SIZE} bytes, got {len(key)}")
    return key


def encrypt(plaintext: bytes, secret: bytes | None) -> EncryptedPayload:
    """
    Encrypt ``plaintext`` under ``secret`` with a new random IV.

    Raises:
        ConfigError: If no key is configured
        CryptoError: If the key has the wrong length
    """
    key = _check_key(secret)
    iv = os.urandom(IV_SIZE)

    padder = padding.PKCS7(BLOCK_SIZE * 8).padder()
    padded = padder.update(plaintext) + padder.finalize()

    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()
    return EncryptedPayload(ciphertext=ciphertext, iv=iv)


def decrypt(ciphertext: bytes, iv: bytes, secret: bytes | None) -> bytes:
    """
    Decrypt and unpad ``ciphertext``.

    Raises:
        ConfigError: If no key is configured
        CryptoError: On wrong key/IV length, bad ciphertext length or bad padding
    """
    key = _check_key(secret)
    if len(iv) != IV_SIZE:
        logger.warning("decrypt rejected: iv_len=%d", len(iv))
        raise CryptoError(f"IV must be {IV_SIZE} bytes, got {len(iv)}")
    if not ciphertext or len(ciphertext) % BLOCK_SIZE:
        logger.warning(
            "decrypt rejected: ciphertext_len=%d iv_len=%d", len(ciphertext), len(iv)
        )
        raise CryptoError(
            f"Ciphertext length {len(ciphertext)} is not a positive multiple of {BLOCK_SIZE}"
        )

    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()

    unpadder = padding.PKCS7(BLOCK_SIZE * 8).unpadder()
    try:
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as e:
        logger.warning(
            "decrypt padding check failed: ciphertext_len=%d iv_len=%d",
            len(ciphertext),
            len(iv),
        )
        raise CryptoError("Padding validation failed (wrong key or corrupted data)") from e
