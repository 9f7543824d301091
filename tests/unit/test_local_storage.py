"""Unit tests for the local filesystem blob storage adapter."""

import hashlib
from pathlib import Path

import pytest

from blobgate.adapters.local_storage import LocalBlobStorage
from blobgate.core.ports.storage import StoragePort
from blobgate.domain.errors import NotFoundError, StorageError


@pytest.fixture
def storage(tmp_path: Path) -> LocalBlobStorage:
    return LocalBlobStorage(tmp_path / "blobs")


class TestLocalBlobStorage:
    def test_satisfies_storage_port_protocol(self, storage: LocalBlobStorage) -> None:
        port: StoragePort = storage
        assert isinstance(port, LocalBlobStorage)

    def test_write_then_read(self, storage: LocalBlobStorage) -> None:
        stored = storage.write_blob(b"ciphertext bytes", epochs=3)
        assert stored.content_ref == hashlib.sha256(b"ciphertext bytes").hexdigest()
        assert stored.size_bytes == 16
        assert stored.epochs == 3
        assert storage.read_blob(stored.content_ref) == b"ciphertext bytes"

    def test_sidecar_written(self, storage: LocalBlobStorage) -> None:
        stored = storage.write_blob(b"abc")
        ref = stored.content_ref
        assert (storage.base_path / ref[:2] / f"{ref}.meta.json").exists()

    def test_same_bytes_same_ref(self, storage: LocalBlobStorage) -> None:
        assert storage.write_blob(b"x").content_ref == storage.write_blob(b"x").content_ref

    def test_read_unknown(self, storage: LocalBlobStorage) -> None:
        with pytest.raises(NotFoundError):
            storage.read_blob("0" * 64)

    def test_traversal_refs_rejected(self, storage: LocalBlobStorage) -> None:
        with pytest.raises(NotFoundError):
            storage.read_blob("../../etc/passwd")

    def test_tampered_blob_fails_integrity(self, storage: LocalBlobStorage) -> None:
        ref = storage.write_blob(b"original").content_ref
        (storage.base_path / ref[:2] / f"{ref}.bin").write_bytes(b"tampered")
        with pytest.raises(StorageError):
            storage.read_blob(ref)

    def test_delete(self, storage: LocalBlobStorage) -> None:
        ref = storage.write_blob(b"gone soon").content_ref
        assert storage.delete_blob(ref) is True
        assert storage.delete_blob(ref) is False
        with pytest.raises(NotFoundError):
            storage.read_blob(ref)

    def test_delete_disabled(self, tmp_path: Path) -> None:
        storage = LocalBlobStorage(tmp_path / "immutable", allow_delete=False)
        ref = storage.write_blob(b"keep").content_ref
        assert storage.delete_blob(ref) is False
        assert storage.read_blob(ref) == b"keep"

    def test_delete_invalid_ref(self, storage: LocalBlobStorage) -> None:
        assert storage.delete_blob("not-a-ref") is False
