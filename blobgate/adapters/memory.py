"""
In-memory adapters for tests and ephemeral runs.

Both keep everything in process memory and expose failure switches so the
rollback and orphan-cleanup paths can be exercised.
"""

from __future__ import annotations

import copy
import hashlib

from blobgate.core.ports.registry import RawRecord
from blobgate.core.ports.storage import StoredBlob
from blobgate.domain.errors import NotFoundError, PersistenceError, StorageError


class InMemoryBlobStorage:
    """Content-addressed blob store backed by a dict."""

    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}
        self.fail_writes = False
        self.fail_reads = False
        self.reads = 0

    def write_blob(self, data: bytes, *, epochs: int = 1) -> StoredBlob:
        if self.fail_writes:
            raise StorageError("Simulated storage outage")
        content_ref = hashlib.sha256(data).hexdigest()
        self.blobs[content_ref] = bytes(data)
        return StoredBlob(content_ref=content_ref, size_bytes=len(data), epochs=epochs, certified=True)

    def read_blob(self, content_ref: str) -> bytes:
        if self.fail_reads:
            raise StorageError("Simulated storage outage")
        self.reads += 1
        if content_ref not in self.blobs:
            raise NotFoundError(f"Blob {content_ref} not found")
        return self.blobs[content_ref]

    def delete_blob(self, content_ref: str) -> bool:
        return self.blobs.pop(content_ref, None) is not None

    def put_raw(self, content_ref: str, data: bytes) -> None:
        """Seed a blob under an arbitrary reference (legacy fixtures)."""
        self.blobs[content_ref] = data


class InMemoryRegistryStore:
    """RegistryStorePort keeping deep copies of the saved records."""

    def __init__(self, records: dict[str, RawRecord] | None = None) -> None:
        self.records: dict[str, RawRecord] = copy.deepcopy(records or {})
        self.fail_saves = False
        self.saves = 0

    def load(self) -> dict[str, RawRecord]:
        return copy.deepcopy(self.records)

    def save(self, records: dict[str, RawRecord]) -> None:
        if self.fail_saves:
            raise PersistenceError("Simulated registry write failure")
        self.records = copy.deepcopy(records)
        self.saves += 1
