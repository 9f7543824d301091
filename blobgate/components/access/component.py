"""
Access Mediator component.

Decides, for one (item, request) pair, whether to return a preview, a payment
challenge or the decrypted content.

States: PREVIEW_ONLY -> free excerpt, no identity needed.
        PAYMENT_REQUIRED -> price terms plus a fresh nonce/expiry.
        GRANTED -> plaintext plus a summary of the verified payment.

Invariants:
- Every content request goes through the payment gateway. A previous grant,
  and the audit log it left behind, confers nothing (pay-per-read).
- A verification or settlement timeout is "no grant".
- Plaintext is only reconstructed after a Verified verdict for this request.
- The payment is settled only after the plaintext is in hand, so a request
  that ends in a challenge or an error is never charged.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta

from blobgate.components.cipher import decrypt
from blobgate.core.ports.payment import (
    PaymentRequest,
    PaymentVerdict,
    SettlementResult,
    Unpaid,
    Verified,
)
from blobgate.domain.entities import EncryptedCipher, Item, utcnow
from blobgate.domain.errors import (
    CryptoError,
    NotFoundError,
    PaymentTimeoutError,
    PersistenceError,
    StorageError,
    ValidationError,
)

from .models import (
    ContentMetadata,
    ContentOutput,
    ContentRequest,
    DeleteInput,
    DeleteOutput,
    PaymentChallenge,
    PaymentSummary,
    PreviewOutput,
)
from .ports import ClockPort, LedgerPort, PaymentGatewayPort, StoragePort

logger = logging.getLogger(__name__)


class AccessMediator:
    """Component mediating every read of an item."""

    def __init__(
        self,
        ledger: LedgerPort,
        storage: StoragePort,
        payments: PaymentGatewayPort,
        *,
        secret: bytes | None,
        challenge_ttl_seconds: int = 300,
        require_payer_match: bool = True,
        clock: ClockPort | None = None,
    ) -> None:
        self._ledger = ledger
        self._storage = storage
        self._payments = payments
        self._secret = secret
        self._challenge_ttl = timedelta(seconds=challenge_ttl_seconds)
        self._require_payer_match = require_payer_match
        self._clock = clock

    def _now(self) -> datetime:
        return self._clock.now() if self._clock else utcnow()

    def _require_item(self, item_id: str) -> Item:
        item = self._ledger.get(item_id)
        if item is None:
            raise NotFoundError(f"Item {item_id} not found")
        return item

    # --- Preview ---

    def preview(self, item_id: str) -> PreviewOutput:
        """Return the free excerpt. Never requires payment or identity."""
        return _to_preview(self._require_item(item_id))

    def list_previews(self) -> list[PreviewOutput]:
        return [_to_preview(item) for item in self._ledger.list()]

    # --- Content ---

    def content(self, request: ContentRequest) -> ContentOutput:
        """
        Run one content request through the payment state machine.

        Raises:
            ValidationError: If no requester identity was supplied
            NotFoundError: If the item or its blob is unknown
            StorageError, CryptoError, ConfigError: On retrieval failure
            PaymentGatewayError: On gateway failure other than a timeout
            PersistenceError: If the settled grant could not be recorded
        """
        requester = (request.requester or "").strip()
        if not requester:
            raise ValidationError.single(
                "requester_required", "Requester identity is required", "userAddress"
            )

        item = self._require_item(request.item_id)

        payment_request = PaymentRequest(
            item_id=item.id,
            requester=requester,
            price_terms=item.price_terms,
            payment_header=request.payment_header,
            resource=request.resource,
        )

        verdict = self._verify(item, requester, payment_request)
        if isinstance(verdict, Unpaid):
            return self._challenge(item, requester, verdict.reason)

        content = self._load_plaintext(item)

        settlement = self._settle(item, payment_request, verdict)
        if isinstance(settlement, Unpaid):
            return self._challenge(item, requester, settlement.reason)
        grant_id = settlement.grant_id

        granted_at = self._now()
        try:
            self._ledger.record_access(item.id, requester, grant_id, verdict.amount)
        except PersistenceError:
            logger.error(
                "Grant %s settled for item=%s requester=%s but not recorded",
                grant_id,
                item.id,
                requester,
            )
            raise
        logger.info(
            "Access granted: item=%s requester=%s grant=%s amount=%s",
            item.id,
            requester,
            grant_id,
            verdict.amount,
        )

        return ContentOutput(
            state="GRANTED",
            item_id=item.id,
            title=item.title,
            content=content,
            metadata=ContentMetadata(
                upload_date=item.created_at,
                owner=item.owner,
                is_public=item.is_public,
                original_size=item.original_size,
                payment=PaymentSummary(
                    grant_id=grant_id,
                    amount=verdict.amount,
                    payer=verdict.payer,
                    timestamp=granted_at,
                ),
            ),
        )

    def _verify(
        self, item: Item, requester: str, payment_request: PaymentRequest
    ) -> PaymentVerdict:
        try:
            verdict = self._payments.verify(payment_request)
        except PaymentTimeoutError as e:
            logger.warning("Payment verification timed out for %s: %s", item.id, e.message)
            return Unpaid(reason="verification_timeout")

        if isinstance(verdict, Verified):
            if verdict.amount < item.price_terms.amount:
                logger.warning(
                    "Verified amount %s below price %s for %s",
                    verdict.amount,
                    item.price_terms.amount,
                    item.id,
                )
                return Unpaid(reason="insufficient_amount")
            if self._require_payer_match and verdict.payer.lower() != requester.lower():
                logger.warning("Payer %s does not match requester %s", verdict.payer, requester)
                return Unpaid(reason="payer_mismatch")
        return verdict

    def _settle(
        self, item: Item, payment_request: PaymentRequest, verdict: Verified
    ) -> SettlementResult:
        try:
            return self._payments.settle(payment_request, verdict)
        except PaymentTimeoutError as e:
            logger.warning("Payment settlement timed out for %s: %s", item.id, e.message)
            return Unpaid(reason="settlement_timeout")

    def _challenge(self, item: Item, requester: str, reason: str) -> ContentOutput:
        challenge = PaymentChallenge(
            price_terms=item.price_terms,
            nonce=secrets.token_hex(16),
            expires_at=self._now() + self._challenge_ttl,
            reason=reason,
        )
        logger.info("Payment required: item=%s requester=%s reason=%s", item.id, requester, reason)
        return ContentOutput(
            state="PAYMENT_REQUIRED",
            item_id=item.id,
            title=item.title,
            challenge=challenge,
        )

    def _load_plaintext(self, item: Item) -> str:
        content_ref = item.storage.content_ref
        if not content_ref:
            raise NotFoundError(f"Content not available for item {item.id}")

        data = self._storage.read_blob(content_ref)
        cipher = item.storage.cipher
        if not isinstance(cipher, EncryptedCipher):
            # Legacy item stored before encryption was introduced
            return data.decode("utf-8", errors="replace")

        plaintext = decrypt(data, cipher.iv, self._secret)
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CryptoError(f"Decrypted content of {item.id} is not valid UTF-8") from e

    # --- Delete ---

    def delete(self, input_data: DeleteInput) -> DeleteOutput:
        """
        Remove an item from the ledger, then try to remove its remote blob.

        Remote removal is best-effort and never fails the call.
        """
        item = self._ledger.get(input_data.item_id)
        if item is None or not self._ledger.delete(input_data.item_id):
            return DeleteOutput(item_id=input_data.item_id, success=False)

        remote_deleted = False
        content_ref = item.storage.content_ref
        if content_ref:
            try:
                remote_deleted = self._storage.delete_blob(content_ref)
            except StorageError as e:
                logger.warning("Remote blob %s not deleted: %s", content_ref, e.message)

        return DeleteOutput(item_id=item.id, success=True, remote_deleted=remote_deleted)


def _to_preview(item: Item) -> PreviewOutput:
    return PreviewOutput(
        item_id=item.id,
        title=item.title,
        description=item.description,
        content_preview=item.preview_text,
        price_terms=item.price_terms,
    )
