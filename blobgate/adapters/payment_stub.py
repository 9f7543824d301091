"""
Payment stub gateway (dev/tests).

Stub implementation of PaymentGatewayPort. Nothing is paid by default: every
request gets ``Unpaid`` unless an approval was queued for it. Approvals are
one-shot, so a second read needs a second approval, the same way a real
gateway needs a second payment. ``settle`` hands back the approval's grant id
unless ``fail_settlement`` names a refusal reason.

Dev mode (``accept_any_header``) treats any non-empty payment header as a
verified payment of exactly the asking price.
"""

from __future__ import annotations

import logging
import uuid
from collections import deque
from dataclasses import dataclass, field
from decimal import Decimal

from blobgate.core.ports.payment import (
    PaymentGatewayPort,
    PaymentRequest,
    PaymentVerdict,
    Settled,
    SettlementResult,
    Unpaid,
    Verified,
)
from blobgate.domain.errors import PaymentTimeoutError

logger = logging.getLogger(__name__)


@dataclass
class _Approval:
    grant_id: str
    amount: Decimal | None
    payer: str | None


@dataclass
class PaymentStubGateway:
    """
    Stub payment gateway.

    This adapter satisfies the PaymentGatewayPort protocol.
    """

    accept_any_header: bool = False
    simulate_timeout: bool = False
    fail_settlement: str | None = None
    _approvals: dict[tuple[str, str], deque[_Approval]] = field(default_factory=dict)
    requests: list[PaymentRequest] = field(default_factory=list)
    settlements: list[PaymentRequest] = field(default_factory=list)

    def verify(self, request: PaymentRequest) -> PaymentVerdict:
        """
        Consume one queued approval for (item, requester), if any.

        Raises:
            PaymentTimeoutError: When ``simulate_timeout`` is set
        """
        self.requests.append(request)
        logger.debug(
            "PaymentStubGateway.verify: item=%s requester=%s header=%s",
            request.item_id,
            request.requester,
            bool(request.payment_header),
        )

        if self.simulate_timeout:
            raise PaymentTimeoutError("Simulated verification timeout")

        queue = self._approvals.get(_key(request.item_id, request.requester))
        if queue:
            approval = queue.popleft()
            return Verified(
                amount=approval.amount if approval.amount is not None else request.price_terms.amount,
                payer=approval.payer or request.requester,
                reference=approval.grant_id,
            )

        if self.accept_any_header and request.payment_header:
            return Verified(amount=request.price_terms.amount, payer=request.requester)

        if request.payment_header:
            return Unpaid(reason="payment_invalid")
        return Unpaid(reason="payment_missing")

    def settle(self, request: PaymentRequest, verdict: Verified) -> SettlementResult:
        self.settlements.append(request)
        if self.fail_settlement:
            return Unpaid(reason=self.fail_settlement)
        return Settled(grant_id=verdict.reference or f"stub-{uuid.uuid4().hex}")

    # --- Testing Helpers ---

    def approve_next(
        self,
        item_id: str,
        requester: str,
        *,
        grant_id: str | None = None,
        amount: Decimal | None = None,
        payer: str | None = None,
    ) -> str:
        """Queue one verified payment for the next matching request. Returns the grant id."""
        grant = grant_id or f"stub-{uuid.uuid4().hex}"
        self._approvals.setdefault(_key(item_id, requester), deque()).append(
            _Approval(grant_id=grant, amount=amount, payer=payer)
        )
        return grant

    def pending_approvals(self, item_id: str, requester: str) -> int:
        return len(self._approvals.get(_key(item_id, requester), ()))

    def clear(self) -> None:
        self._approvals.clear()
        self.requests.clear()
        self.settlements.clear()
        self.simulate_timeout = False
        self.fail_settlement = None


def _key(item_id: str, requester: str) -> tuple[str, str]:
    return item_id, requester.strip().lower()


# Verify protocol compliance at module load time
def _verify_protocol_compliance() -> None:
    gateway: PaymentGatewayPort = PaymentStubGateway()
    _ = gateway


_verify_protocol_compliance()
