"""Access component - preview, payment challenge and paid content delivery."""

from blobgate.components.access.component import AccessMediator
from blobgate.components.access.models import (
    ContentMetadata,
    ContentOutput,
    ContentRequest,
    DeleteInput,
    DeleteOutput,
    PaymentChallenge,
    PaymentSummary,
    PreviewOutput,
)
from blobgate.components.access.ports import LedgerPort

__all__ = [
    # Component
    "AccessMediator",
    # Models
    "ContentMetadata",
    "ContentOutput",
    "ContentRequest",
    "DeleteInput",
    "DeleteOutput",
    "PaymentChallenge",
    "PaymentSummary",
    "PreviewOutput",
    # Ports
    "LedgerPort",
]
