"""Cipher component - AES-256-CBC content encryption."""

from blobgate.components.cipher.component import decrypt, encrypt, parse_secret
from blobgate.components.cipher.models import (
    BLOCK_SIZE,
    IV_SIZE,
    KEY_SIZE,
    EncryptedPayload,
)

__all__ = [
    # Functions
    "encrypt",
    "decrypt",
    "parse_secret",
    # Models
    "EncryptedPayload",
    "BLOCK_SIZE",
    "IV_SIZE",
    "KEY_SIZE",
]
