"""
Blob Storage Port.

Protocol-based interface for the external content-addressed object store.
Implementations: local filesystem (dev), Walrus HTTP publisher/aggregator,
in-memory (tests).

Invariants:
- The content reference returned by write_blob is assigned by the store and
  becomes the ledger's item id; it is never reassigned.
- read_blob returns exactly the bytes that were written.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class StoredBlob:
    """Result of a successful blob write."""

    content_ref: str
    size_bytes: int
    epochs: int | None = None
    certified: bool = False


class StoragePort(Protocol):
    """
    Object storage port interface.

    Errors:
        StorageError: transport or collaborator failure (message preserved).
        NotFoundError: read of an unknown content reference.
    """

    def write_blob(self, data: bytes, *, epochs: int = 1) -> StoredBlob:
        """
        Store bytes and return the store-assigned content reference.

        Args:
            data: Blob bytes (ciphertext for new items)
            epochs: Requested storage duration, where the backend supports it

        Raises:
            StorageError: If the write did not complete
        """
        ...

    def read_blob(self, content_ref: str) -> bytes:
        """
        Retrieve blob bytes.

        Raises:
            NotFoundError: If the reference is unknown
            StorageError: If the read failed
        """
        ...

    def delete_blob(self, content_ref: str) -> bool:
        """
        Best-effort removal.

        Returns:
            True if deleted, False if absent or unsupported by the backend
        """
        ...
