"""
Ingestion Pipeline component.

Validates an authoring request, encrypts the content, pushes the ciphertext to
the storage collaborator and registers the resulting item in the ledger.

Invariants:
- Atomic from the author's point of view: either storage and registration
  both succeed, or the call fails and no item exists.
- A storage failure aborts the whole ingestion; there is no local-only
  fallback.
- The preview never contains the full content.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from blobgate.components.cipher import encrypt
from blobgate.domain.entities import EncryptedCipher, Item, PriceTerms, StoragePointer, utcnow
from blobgate.domain.errors import ConfigError, FieldError, StorageError, ValidationError
from blobgate.rules.models import PreviewRules, Rules

from .models import PublishInput, PublishOutput
from .ports import ClockPort, LedgerPort, StoragePort

logger = logging.getLogger(__name__)


# --- Pure Functions ---


def validate_publish_input(input_data: PublishInput, rules: Rules) -> list[FieldError]:
    """Validate an authoring request against the content and storage rules."""
    errors: list[FieldError] = []

    title = input_data.title.strip() if input_data.title else ""
    if not title:
        errors.append(FieldError(code="title_required", message="Title is required", field="title"))
    elif len(title) > rules.content.title_max:
        errors.append(
            FieldError(
                code="title_too_long",
                message=f"Title must be {rules.content.title_max} characters or less",
                field="title",
            )
        )

    if not input_data.content or not input_data.content.strip():
        errors.append(
            FieldError(code="content_required", message="Content is required", field="content")
        )
    elif len(input_data.content.encode("utf-8")) > rules.storage.max_content_bytes:
        errors.append(
            FieldError(
                code="content_too_large",
                message=f"Content must be {rules.storage.max_content_bytes} bytes or less",
                field="content",
            )
        )

    if not input_data.owner or not input_data.owner.strip():
        errors.append(
            FieldError(code="owner_required", message="ownerAddress is required", field="ownerAddress")
        )

    if len(input_data.description or "") > rules.content.description_max:
        errors.append(
            FieldError(
                code="description_too_long",
                message=f"Description must be {rules.content.description_max} characters or less",
                field="description",
            )
        )

    if len(input_data.tags) > rules.content.tags_max:
        errors.append(
            FieldError(
                code="too_many_tags",
                message=f"At most {rules.content.tags_max} tags are allowed",
                field="tags",
            )
        )

    if input_data.price is not None and not (
        input_data.price.is_finite() and input_data.price > 0
    ):
        errors.append(
            FieldError(code="price_invalid", message="Price must be positive", field="price")
        )

    return errors


def build_preview_text(title: str, description: str, content: str, rules: PreviewRules) -> str:
    """
    Derive the free preview: title, description and a short content fragment.

    The fragment is taken from the first paragraph and never exceeds half the
    content, so the preview can not reproduce the full text.
    """
    first_paragraph = content.strip().split("\n\n")[0]
    limit = min(rules.fragment_chars, len(content) // 2)
    fragment = first_paragraph[:limit].strip()

    parts = [p for p in (title.strip(), description.strip(), fragment) if p]
    return "\n\n".join(parts)[: rules.max_chars]


# --- Pipeline ---


class IngestionPipeline:
    """Component turning an authoring request into a stored, priced item."""

    def __init__(
        self,
        ledger: LedgerPort,
        storage: StoragePort,
        rules: Rules,
        *,
        secret: bytes | None,
        payout_address: str | None = None,
        clock: ClockPort | None = None,
    ) -> None:
        self._ledger = ledger
        self._storage = storage
        self._rules = rules
        self._secret = secret
        self._payout_address = payout_address
        self._clock = clock

    def _now(self) -> datetime:
        return self._clock.now() if self._clock else utcnow()

    def price_terms_for(self, owner: str, amount: Decimal | None = None) -> PriceTerms:
        """Price terms for a new item; payouts go to the author unless configured."""
        pricing = self._rules.pricing
        return PriceTerms(
            amount=amount if amount is not None else pricing.default_amount,
            currency=pricing.currency,
            payout_address=self._payout_address or owner,
            asset=pricing.asset,
            network=pricing.network,
        )

    def publish(self, input_data: PublishInput) -> PublishOutput:
        """
        Encrypt, store and register one item.

        Raises:
            ValidationError: If required fields are missing or invalid
            ConfigError: If no encryption key is configured
            StorageError: If the storage write failed (nothing registered)
            PersistenceError: If registration failed after the write
        """
        errors = validate_publish_input(input_data, self._rules)
        if errors:
            raise ValidationError(errors[0].message, errors)

        if self._secret is None:
            raise ConfigError("Encryption key is not configured; cannot publish")

        title = input_data.title.strip()
        owner = input_data.owner.strip()
        plaintext = input_data.content.encode("utf-8")
        payload = encrypt(plaintext, self._secret)

        logger.info(
            "Uploading content: title=%r plaintext_bytes=%d ciphertext_bytes=%d epochs=%d",
            title,
            len(plaintext),
            len(payload.ciphertext),
            self._rules.storage.epochs,
        )
        try:
            stored = self._storage.write_blob(payload.ciphertext, epochs=self._rules.storage.epochs)
        except StorageError as e:
            logger.error("Storage write failed, nothing registered: %s", e.message)
            raise

        now = self._now()
        try:
            item = Item(
                id=stored.content_ref,
                title=title,
                description=(input_data.description or "").strip(),
                owner=owner,
                created_at=now,
                tags=[t.strip() for t in input_data.tags if t and t.strip()],
                is_public=input_data.is_public,
                original_size=len(plaintext),
                preview_text=build_preview_text(
                    title, input_data.description or "", input_data.content, self._rules.preview
                ),
                price_terms=self.price_terms_for(owner, input_data.price),
                storage=StoragePointer(
                    content_ref=stored.content_ref,
                    epochs=stored.epochs,
                    certified=stored.certified,
                    status="success",
                    uploaded_at=now,
                    cipher=EncryptedCipher(iv=payload.iv),
                ),
            )
            created = self._ledger.create(item)
        except ValidationError as e:
            # Same bytes already registered: the blob belongs to that item
            if not any(err.code == "duplicate_id" for err in e.errors):
                self._discard_orphan(stored.content_ref)
            raise
        except Exception:
            self._discard_orphan(stored.content_ref)
            raise

        return PublishOutput(item_id=created.id, price_terms=created.price_terms, item=created)

    def _discard_orphan(self, content_ref: str) -> None:
        try:
            removed = self._storage.delete_blob(content_ref)
        except StorageError as e:
            logger.error("Orphaned blob %s could not be removed: %s", content_ref, e.message)
            return
        if removed:
            logger.warning("Registration failed; orphaned blob %s removed", content_ref)
        else:
            logger.error("Registration failed; orphaned blob %s left in storage", content_ref)
