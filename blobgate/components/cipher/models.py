"""Cipher component models - frozen dataclass inputs and outputs."""

from dataclasses import dataclass

KEY_SIZE = 32
IV_SIZE = 16
BLOCK_SIZE = 16


@dataclass(frozen=True)
class EncryptedPayload:
    """Ciphertext plus the IV it was produced under."""

    ciphertext: bytes
    iv: bytes
