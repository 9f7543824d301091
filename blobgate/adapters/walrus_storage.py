"""
Walrus HTTP Storage Adapter.

StoragePort over the Walrus publisher (writes) and aggregator (reads) HTTP
APIs:

    PUT {publisher}/v1/blobs?epochs=N   body = raw bytes
    GET {aggregator}/v1/blobs/{blobId}

A publisher write answers with either ``newlyCreated`` (a fresh blob object)
or ``alreadyCertified`` (identical bytes were stored before). Both carry the
blob id that becomes the ledger item id.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from blobgate.core.ports.storage import StoredBlob
from blobgate.domain.errors import NotFoundError, StorageError

logger = logging.getLogger(__name__)

DEFAULT_PUBLISHER_URL = "https://publisher.walrus-testnet.walrus.space"
DEFAULT_AGGREGATOR_URL = "https://aggregator.walrus-testnet.walrus.space"


def parse_publish_response(body: Any) -> tuple[str, bool]:
    """
    Extract (blob_id, certified) from a publisher response.

    Raises:
        StorageError: If the response carries no blob id
    """
    if not isinstance(body, dict):
        raise StorageError("Unexpected Walrus publisher response")

    if "newlyCreated" in body:
        blob_object = _object(_object(body["newlyCreated"], body).get("blobObject", {}), body)
        blob_id = blob_object.get("blobId")
        certified = blob_object.get("certifiedEpoch") is not None
    elif "alreadyCertified" in body:
        blob_id = _object(body["alreadyCertified"], body).get("blobId")
        certified = True
    else:
        raise StorageError("Unexpected Walrus publisher response", detail=str(body)[:200])

    if not blob_id or not isinstance(blob_id, str):
        raise StorageError("Walrus publisher response has no blobId")
    return blob_id, certified


def _object(value: Any, body: dict[str, Any]) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise StorageError("Unexpected Walrus publisher response", detail=str(body)[:200])
    return value


class WalrusHttpStorage:
    """Walrus implementation of StoragePort."""

    def __init__(
        self,
        publisher_url: str = DEFAULT_PUBLISHER_URL,
        aggregator_url: str = DEFAULT_AGGREGATOR_URL,
        *,
        timeout: float = 60.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.publisher_url = publisher_url.rstrip("/")
        self.aggregator_url = aggregator_url.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def write_blob(self, data: bytes, *, epochs: int = 1) -> StoredBlob:
        url = f"{self.publisher_url}/v1/blobs"
        logger.info("Storing %d bytes on Walrus for %d epochs", len(data), epochs)
        try:
            response = self._client.put(url, params={"epochs": epochs}, content=data)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            raise StorageError(
                f"Walrus publisher returned {e.response.status_code}",
                detail=e.response.text[:500],
            ) from e
        except httpx.HTTPError as e:
            raise StorageError("Walrus publisher unreachable", detail=str(e)) from e
        except ValueError as e:
            raise StorageError("Walrus publisher returned invalid JSON", detail=str(e)) from e

        blob_id, certified = parse_publish_response(body)
        logger.info("Walrus blob stored: %s (certified=%s)", blob_id, certified)
        return StoredBlob(
            content_ref=blob_id,
            size_bytes=len(data),
            epochs=epochs,
            certified=certified,
        )

    def read_blob(self, content_ref: str) -> bytes:
        url = f"{self.aggregator_url}/v1/blobs/{content_ref}"
        try:
            response = self._client.get(url)
        except httpx.HTTPError as e:
            raise StorageError("Walrus aggregator unreachable", detail=str(e)) from e

        if response.status_code == 404:
            raise NotFoundError(f"Blob {content_ref} not found")
        if response.is_error:
            raise StorageError(
                f"Walrus aggregator returned {response.status_code}",
                detail=response.text[:500],
            )
        return response.content

    def delete_blob(self, content_ref: str) -> bool:
        # Blobs published over HTTP are not deletable; they expire with their epochs
        logger.info("Walrus blob %s left to expire", content_ref)
        return False
