from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from blobgate.components.access import ContentOutput, PreviewOutput
from blobgate.components.ledger import LedgerStats
from blobgate.domain.entities import Item, PriceTerms


class CamelModel(BaseModel):
    """Wire models use camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Shared ---
class PriceTermsModel(CamelModel):
    amount: str
    currency: str
    payment_address: str
    asset_address: str
    network: str

    @classmethod
    def from_terms(cls, terms: PriceTerms) -> "PriceTermsModel":
        return cls(
            amount=str(terms.amount),
            currency=terms.currency,
            payment_address=terms.payout_address,
            asset_address=terms.asset,
            network=terms.network,
        )


class StorageModel(CamelModel):
    blob_id: str | None
    storage_epochs: int | None
    is_certified: bool
    upload_status: str
    upload_date: datetime | None
    error_message: str | None = None
    overall_status: str


# --- Items ---
class ItemResponse(CamelModel):
    """Item metadata. Never carries content bytes or cipher parameters."""

    id: str
    title: str
    description: str
    owner_address: str
    upload_date: datetime
    tags: list[str]
    is_public: bool
    original_file_size: int
    encrypted: bool
    access_count: int
    price_terms: PriceTermsModel
    walrus: StorageModel

    @classmethod
    def from_item(cls, item: Item) -> "ItemResponse":
        storage = item.storage
        return cls(
            id=item.id,
            title=item.title,
            description=item.description,
            owner_address=item.owner,
            upload_date=item.created_at,
            tags=list(item.tags),
            is_public=item.is_public,
            original_file_size=item.original_size,
            encrypted=item.is_encrypted,
            access_count=len(item.access_log),
            price_terms=PriceTermsModel.from_terms(item.price_terms),
            walrus=StorageModel(
                blob_id=storage.content_ref,
                storage_epochs=storage.epochs,
                is_certified=storage.certified,
                upload_status=storage.status,
                upload_date=storage.uploaded_at,
                error_message=storage.error_message,
                overall_status=item.overall_status,
            ),
        )


class PreviewResponse(CamelModel):
    item_id: str
    title: str
    description: str
    content_preview: str
    price_terms: PriceTermsModel

    @classmethod
    def from_output(cls, output: PreviewOutput) -> "PreviewResponse":
        return cls(
            item_id=output.item_id,
            title=output.title,
            description=output.description,
            content_preview=output.content_preview,
            price_terms=PriceTermsModel.from_terms(output.price_terms),
        )


# --- Upload ---
class UploadRequest(CamelModel):
    # Missing fields are reported as field errors by the ingest component
    title: str = ""
    content: str = ""
    owner_address: str = ""
    description: str = ""
    tags: list[str] = []
    is_public: bool = True
    price: Decimal | None = None


class UploadResponse(CamelModel):
    success: bool = True
    message: str = "Content encrypted and stored"
    item_id: str
    price_terms: PriceTermsModel
    blob_info: ItemResponse


# --- Content ---
class PaymentModel(CamelModel):
    grant_id: str
    amount: str
    payer: str
    timestamp: datetime


class ContentMetadataModel(CamelModel):
    upload_date: datetime
    owner_address: str
    is_public: bool
    original_file_size: int
    payment: PaymentModel


class ContentResponse(CamelModel):
    item_id: str
    title: str
    content: str
    metadata: ContentMetadataModel

    @classmethod
    def from_output(cls, output: ContentOutput) -> "ContentResponse":
        meta = output.metadata
        if meta is None or output.content is None:
            raise ValueError(f"Content output for {output.item_id} is not GRANTED")
        return cls(
            item_id=output.item_id,
            title=output.title,
            content=output.content,
            metadata=ContentMetadataModel(
                upload_date=meta.upload_date,
                owner_address=meta.owner,
                is_public=meta.is_public,
                original_file_size=meta.original_size,
                payment=PaymentModel(
                    grant_id=meta.payment.grant_id,
                    amount=str(meta.payment.amount),
                    payer=meta.payment.payer,
                    timestamp=meta.payment.timestamp,
                ),
            ),
        )


class ChallengeModel(CamelModel):
    nonce: str
    expires_at: datetime
    reason: str


class PaymentRequiredResponse(CamelModel):
    error: str = "Payment required"
    x402_version: int = 1
    item_id: str
    title: str
    price_terms: PriceTermsModel
    challenge: ChallengeModel
    accepts: list[dict[str, Any]]
    payment_details: dict[str, Any]


# --- Delete ---
class DeleteResponse(CamelModel):
    success: bool
    message: str = ""
    remote_deleted: bool = False


# --- System ---
class StatsResponse(CamelModel):
    total_items: int
    total_size: int
    encrypted_items: int
    legacy_items: int
    total_grants: int
    status_counts: dict[str, int]
    last_updated: datetime | None

    @classmethod
    def from_stats(cls, stats: LedgerStats) -> "StatsResponse":
        return cls(
            total_items=stats.total_items,
            total_size=stats.total_size,
            encrypted_items=stats.encrypted_items,
            legacy_items=stats.legacy_items,
            total_grants=stats.total_grants,
            status_counts=dict(stats.status_counts),
            last_updated=stats.last_updated,
        )


class HealthDatabase(CamelModel):
    total_items: int
    last_updated: datetime | None


class HealthResponse(CamelModel):
    status: str = "OK"
    timestamp: datetime
    storage_backend: str
    payment_backend: str
    encryption_key_configured: bool
    database: HealthDatabase
