"""
Registry record codec.

``migrate_record`` turns one raw decoded record, from any schema this service
has ever written, into the canonical ``Item``. Every substructure is validated
and defaulted field by field, so read paths never see optional shapes.
``to_record`` is the inverse used for every save.

Persisted record layout (camelCase, stable on disk):

    {
      "id", "title", "description", "ownerAddress", "uploadDate", "tags",
      "isPublic", "originalFileSize", "previewText",
      "accessControl": {"paymentRequired", "price", "currency",
                        "paymentAddress", "assetAddress", "network"},
      "walrus": {"contentBlob": {"blobId", "storageEpochs", "isCertified",
                                 "uploadStatus", "uploadDate",
                                 "errorMessage", "iv"},
                 "overallStatus"},
      "payments": {requester: {"paymentId", "amount", "timestamp"}}
    }
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from blobgate.domain.entities import (
    AccessRecord,
    EncryptedCipher,
    Item,
    PlainCipher,
    PriceTerms,
    StoragePointer,
    utcnow,
)

from .models import MigrationDefaults
from .ports import RawRecord

logger = logging.getLogger(__name__)

_BLOB_STATUSES = {"pending", "success", "failed", "local-only"}


# --- Field helpers ---


def _dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _str(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return str(value)


def _int(value: Any, default: int | None = 0) -> int | None:
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


def _decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        d = Decimal(str(value).strip().lstrip("$"))
    except InvalidOperation:
        return None
    return d if d.is_finite() else None


def _datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return None


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


# --- Substructures ---


def _migrate_price_terms(raw: Any, defaults: PriceTerms, owner: str) -> PriceTerms:
    if not defaults.payout_address and owner:
        # No operator payout address configured: pay the author
        defaults = defaults.model_copy(update={"payout_address": owner})

    access = _dict(raw)
    if not access:
        return defaults

    amount = _decimal(access.get("price"))
    try:
        return PriceTerms(
            amount=amount if amount is not None and amount > 0 else defaults.amount,
            currency=_str(access.get("currency")) or defaults.currency,
            payout_address=_str(access.get("paymentAddress")) or defaults.payout_address,
            asset=_str(access.get("assetAddress")) or defaults.asset,
            network=_str(access.get("network")) or defaults.network,
        )
    except PydanticValidationError:
        logger.warning("Invalid accessControl block, using default price terms")
        return defaults


def _migrate_storage(raw: Any) -> StoragePointer:
    walrus = _dict(raw)
    blob = _dict(walrus.get("contentBlob"))

    status = _str(blob.get("uploadStatus"), "local-only")
    if status not in _BLOB_STATUSES:
        status = "local-only"

    iv = blob.get("iv")
    cipher: EncryptedCipher | PlainCipher
    if iv:
        # Raises on a malformed IV; the caller skips the record.
        cipher = EncryptedCipher(iv=iv)
    else:
        cipher = PlainCipher()

    content_ref = blob.get("blobId")
    return StoragePointer(
        content_ref=_str(content_ref) if content_ref else None,
        epochs=_int(blob.get("storageEpochs"), None),
        certified=bool(blob.get("isCertified", False)),
        status=status,  # type: ignore[arg-type]
        uploaded_at=_datetime(blob.get("uploadDate")),
        error_message=blob.get("errorMessage") or None,
        cipher=cipher,
    )


def _migrate_access_log(raw: Any) -> dict[str, AccessRecord]:
    log: dict[str, AccessRecord] = {}
    for requester, entry in _dict(raw).items():
        entry = _dict(entry)
        amount = _decimal(entry.get("amount"))
        grant_id = _str(entry.get("paymentId"))
        if not requester or not grant_id or amount is None:
            logger.warning("Dropping malformed payment entry for %s", requester)
            continue
        log[str(requester)] = AccessRecord(
            grant_id=grant_id,
            amount=amount,
            timestamp=_datetime(entry.get("timestamp")) or utcnow(),
        )
    return log


# --- Public API ---


def migrate_record(raw: Any, key: str, defaults: MigrationDefaults) -> Item | None:
    """
    Validate and default one raw record.

    Args:
        raw: Decoded JSON value stored under ``key``
        key: Registry key (used when the record has no ``id``)
        defaults: Price terms and preview bound for missing substructures

    Returns:
        Canonical Item, or None if the record cannot be recovered
    """
    if not isinstance(raw, dict):
        logger.warning("Skipping registry entry %s: not an object", key)
        return None

    item_id = _str(raw.get("id")) or _str(key)
    if not item_id:
        logger.warning("Skipping registry entry without id")
        return None

    # Older schema kept the owner under owner.suiAddress
    owner = _str(raw.get("ownerAddress")) or _str(_dict(raw.get("owner")).get("suiAddress"))

    preview = _str(raw.get("previewText"))
    if defaults.preview_max_chars is not None:
        preview = preview[: defaults.preview_max_chars]

    tags = raw.get("tags")

    try:
        return Item(
            id=item_id,
            title=_str(raw.get("title")) or _str(raw.get("fileName")),
            description=_str(raw.get("description")),
            owner=owner,
            created_at=_datetime(raw.get("uploadDate")) or utcnow(),
            tags=[str(t) for t in tags] if isinstance(tags, list) else [],
            is_public=bool(raw.get("isPublic", True)),
            original_size=_int(raw.get("originalFileSize")) or 0,
            preview_text=preview,
            price_terms=_migrate_price_terms(raw.get("accessControl"), defaults.price_terms, owner),
            storage=_migrate_storage(raw.get("walrus")),
            access_log=_migrate_access_log(raw.get("payments")),
        )
    except (PydanticValidationError, ValueError) as e:
        logger.warning("Skipping registry entry %s: %s", item_id, e)
        return None


def to_record(item: Item) -> RawRecord:
    """Serialize an Item into the persisted record layout."""
    storage = item.storage
    cipher = storage.cipher
    terms = item.price_terms
    return {
        "id": item.id,
        "title": item.title,
        "description": item.description,
        "ownerAddress": item.owner,
        "uploadDate": _iso(item.created_at),
        "tags": list(item.tags),
        "isPublic": item.is_public,
        "originalFileSize": item.original_size,
        "previewText": item.preview_text,
        "accessControl": {
            "paymentRequired": True,
            "price": str(terms.amount),
            "currency": terms.currency,
            "paymentAddress": terms.payout_address,
            "assetAddress": terms.asset,
            "network": terms.network,
        },
        "walrus": {
            "contentBlob": {
                "blobId": storage.content_ref,
                "storageEpochs": storage.epochs,
                "isCertified": storage.certified,
                "uploadStatus": storage.status,
                "uploadDate": _iso(storage.uploaded_at),
                "errorMessage": storage.error_message,
                "iv": cipher.iv.hex() if isinstance(cipher, EncryptedCipher) else None,
            },
            "overallStatus": item.overall_status,
        },
        "payments": {
            requester: {
                "paymentId": record.grant_id,
                "amount": str(record.amount),
                "timestamp": _iso(record.timestamp),
            }
            for requester, record in item.access_log.items()
        },
    }
