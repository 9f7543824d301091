"""Access component models - frozen dataclass inputs and outputs."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from blobgate.domain.entities import AccessState, PriceTerms


@dataclass(frozen=True)
class PreviewOutput:
    """Free excerpt of an item. Never carries content bytes."""

    item_id: str
    title: str
    description: str
    content_preview: str
    price_terms: PriceTerms
    state: AccessState = "PREVIEW_ONLY"


@dataclass(frozen=True)
class ContentRequest:
    """One reader's attempt to fetch the plaintext of one item."""

    item_id: str
    requester: str | None
    payment_header: str | None = None
    resource: str = ""


@dataclass(frozen=True)
class PaymentChallenge:
    """What the reader must pay before retrying the request."""

    price_terms: PriceTerms
    nonce: str
    expires_at: datetime
    reason: str


@dataclass(frozen=True)
class PaymentSummary:
    """The payment verified for this request."""

    grant_id: str
    amount: Decimal
    payer: str
    timestamp: datetime


@dataclass(frozen=True)
class ContentMetadata:
    """Non-secret metadata returned alongside granted content."""

    upload_date: datetime
    owner: str
    is_public: bool
    original_size: int
    payment: PaymentSummary


@dataclass(frozen=True)
class ContentOutput:
    """Result of a content request: either a challenge or the plaintext."""

    state: AccessState
    item_id: str
    title: str
    content: str | None = None
    metadata: ContentMetadata | None = None
    challenge: PaymentChallenge | None = None


@dataclass(frozen=True)
class DeleteInput:
    """Input for item deletion. Authorization happens before this call."""

    item_id: str


@dataclass(frozen=True)
class DeleteOutput:
    """Output for item deletion."""

    item_id: str
    success: bool
    remote_deleted: bool = False
