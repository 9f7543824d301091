"""
Local Filesystem Blob Storage Adapter.

Implements StoragePort on the local filesystem for development and
single-server deployments without a Walrus publisher.

Blobs are content-addressed: the content reference is the sha256 of the
stored bytes. Layout: {base_path}/{ref[:2]}/{ref}.bin + {ref}.meta.json

Invariants:
- Bytes served equal bytes stored (verified against the sidecar hash on read)
- A reference never points at different bytes
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from datetime import UTC, datetime
from pathlib import Path

from blobgate.core.ports.storage import StoredBlob
from blobgate.domain.errors import NotFoundError, StorageError

logger = logging.getLogger(__name__)


class LocalBlobStorage:
    """
    Local filesystem implementation of StoragePort.

    ``epochs`` is recorded in the sidecar but has no effect locally.
    """

    def __init__(
        self,
        base_path: str | Path,
        *,
        create_dirs: bool = True,
        allow_delete: bool = True,
    ) -> None:
        """
        Args:
            base_path: Root directory for blobs
            create_dirs: Whether to create the root if missing
            allow_delete: When False, delete_blob is a no-op returning False
        """
        self.base_path = Path(base_path)
        self.allow_delete = allow_delete

        if create_dirs:
            self.base_path.mkdir(parents=True, exist_ok=True)

    def _ref_to_paths(self, content_ref: str) -> tuple[Path, Path]:
        # References are hex digests; anything else can not be one of ours
        if len(content_ref) != 64 or any(c not in "0123456789abcdef" for c in content_ref):
            raise NotFoundError(f"Blob {content_ref} not found")
        folder = self.base_path / content_ref[:2]
        return folder / f"{content_ref}.bin", folder / f"{content_ref}.meta.json"

    def write_blob(self, data: bytes, *, epochs: int = 1) -> StoredBlob:
        content_ref = hashlib.sha256(data).hexdigest()
        data_path, meta_path = self._ref_to_paths(content_ref)

        if data_path.exists():
            logger.info("Blob %s already stored", content_ref)
            return StoredBlob(content_ref=content_ref, size_bytes=len(data), epochs=epochs)

        try:
            data_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = data_path.with_suffix(".tmp")
            with open(tmp_path, "wb") as f:
                f.write(data)
            os.replace(tmp_path, data_path)

            with open(meta_path, "w") as f:
                json.dump(
                    {
                        "content_ref": content_ref,
                        "size_bytes": len(data),
                        "epochs": epochs,
                        "stored_at": datetime.now(UTC).isoformat(),
                    },
                    f,
                )
        except OSError as e:
            raise StorageError("Local blob write failed", detail=str(e)) from e

        return StoredBlob(content_ref=content_ref, size_bytes=len(data), epochs=epochs)

    def read_blob(self, content_ref: str) -> bytes:
        data_path, _ = self._ref_to_paths(content_ref)

        if not data_path.exists():
            raise NotFoundError(f"Blob {content_ref} not found")

        try:
            with open(data_path, "rb") as f:
                data = f.read()
        except OSError as e:
            raise StorageError("Local blob read failed", detail=str(e)) from e

        if hashlib.sha256(data).hexdigest() != content_ref:
            raise StorageError(f"Blob {content_ref} failed integrity check")
        return data

    def delete_blob(self, content_ref: str) -> bool:
        if not self.allow_delete:
            return False

        try:
            data_path, meta_path = self._ref_to_paths(content_ref)
        except NotFoundError:
            return False

        if not data_path.exists():
            return False

        try:
            data_path.unlink()
            meta_path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError("Local blob delete failed", detail=str(e)) from e
        return True
