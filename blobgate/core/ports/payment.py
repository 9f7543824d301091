"""
Payment-verification gateway port.

External interface for the component that validates a payment assertion
attached to one content request. The core never parses wallet signatures: it
hands the opaque payment header to the gateway and receives a tagged verdict.

A payment is handled in two steps. ``verify`` checks the assertion without
moving funds; ``settle`` captures it. Callers settle only once the content is
ready to be returned.

Invariants:
- A verdict applies to exactly one request. Nothing is cached between calls.
- A gateway timeout is "no grant", never implicit success.
- Nothing is settled for a request that does not return content.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Literal, Protocol

from blobgate.domain.entities import PriceTerms

# --- Models ---


@dataclass(frozen=True)
class PaymentRequest:
    """
    Everything the gateway needs to judge one content request.

    Attributes:
        item_id: Item being requested
        requester: Wallet address claiming access
        price_terms: Terms the payment must satisfy
        payment_header: Opaque payment assertion (x402 ``X-PAYMENT``), if any
        resource: Resource URL the payment is bound to
    """

    item_id: str
    requester: str
    price_terms: PriceTerms
    payment_header: str | None = None
    resource: str = ""


@dataclass(frozen=True)
class Unpaid:
    """No valid payment attached to the request, or it could not be settled."""

    reason: str = "payment_missing"
    kind: Literal["unpaid"] = "unpaid"


@dataclass(frozen=True)
class Verified:
    """
    Payment verified but not yet settled.

    ``reference`` is gateway-specific and handed back to ``settle``.
    """

    amount: Decimal
    payer: str
    reference: str = ""
    kind: Literal["verified"] = "verified"


@dataclass(frozen=True)
class Settled:
    """Payment captured. ``grant_id`` identifies the settlement."""

    grant_id: str
    kind: Literal["settled"] = "settled"


PaymentVerdict = Unpaid | Verified
SettlementResult = Unpaid | Settled


# --- Port Interface ---


class PaymentGatewayPort(Protocol):
    """
    Port for per-request payment verification and settlement.

    Implementations:
    - PaymentStubGateway: one-shot approvals for dev/tests
    - X402FacilitatorGateway: x402 facilitator /verify and /settle
    """

    def verify(self, request: PaymentRequest) -> PaymentVerdict:
        """
        Judge the payment attached to this request. Moves no funds.

        Returns:
            Unpaid or Verified

        Raises:
            PaymentTimeoutError: Verification did not finish in time
            PaymentGatewayError: Collaborator failure
        """
        ...

    def settle(self, request: PaymentRequest, verdict: Verified) -> SettlementResult:
        """
        Capture a payment previously verified for this request.

        Returns:
            Settled with the grant id, or Unpaid if the payment was refused

        Raises:
            PaymentTimeoutError: Settlement did not finish in time
            PaymentGatewayError: Collaborator failure
        """
        ...
