"""
x402 facilitator payment gateway.

Implements PaymentGatewayPort against an x402 facilitator. The client sends
its signed payment as a base64-encoded JSON document in the ``X-PAYMENT``
header; this adapter forwards it, together with the payment requirements the
item's price terms imply, to the facilitator:

    POST {facilitator}/verify  -> {"isValid", "invalidReason", "payer"}
    POST {facilitator}/settle  -> {"success", "transaction", "errorReason", "payer"}

``verify`` only calls /verify. ``settle`` calls /settle and is invoked by the
caller once the content is ready; the settlement transaction hash is the grant
id. Timeouts raise PaymentTimeoutError, which callers treat as "no grant".
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from decimal import Decimal
from typing import Any

import httpx

from blobgate.core.ports.payment import (
    PaymentRequest,
    PaymentVerdict,
    Settled,
    SettlementResult,
    Unpaid,
    Verified,
)
from blobgate.domain.entities import PriceTerms
from blobgate.domain.errors import PaymentGatewayError, PaymentTimeoutError

logger = logging.getLogger(__name__)

X402_VERSION = 1
DEFAULT_FACILITATOR_URL = "https://x402.org/facilitator"


def to_atomic_units(amount: Decimal, decimals: int) -> int:
    """Convert a human amount (0.01 USDC) into integer token units (10000)."""
    return int((amount * (Decimal(10) ** decimals)).to_integral_value())


def from_atomic_units(value: int | str, decimals: int) -> Decimal:
    return Decimal(int(value)) / (Decimal(10) ** decimals)


def payment_requirements(
    price_terms: PriceTerms,
    resource: str,
    *,
    asset_decimals: int,
    description: str = "",
    max_timeout_seconds: int = 300,
) -> dict[str, Any]:
    """Build the x402 ``exact`` scheme requirements for one item."""
    return {
        "scheme": "exact",
        "network": price_terms.network,
        "maxAmountRequired": str(to_atomic_units(price_terms.amount, asset_decimals)),
        "resource": resource,
        "description": description,
        "mimeType": "application/json",
        "payTo": price_terms.payout_address,
        "maxTimeoutSeconds": max_timeout_seconds,
        "asset": price_terms.asset,
        "extra": {"name": price_terms.currency, "version": "2"},
    }


def decode_payment_header(header: str) -> dict[str, Any]:
    """
    Decode an ``X-PAYMENT`` header.

    Raises:
        ValueError: If the header is not base64-encoded JSON object
    """
    try:
        decoded = base64.b64decode(header, validate=True)
        payload = json.loads(decoded)
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValueError("X-PAYMENT header is not base64 JSON") from e
    if not isinstance(payload, dict):
        raise ValueError("X-PAYMENT header must decode to an object")
    return payload


class X402FacilitatorGateway:
    """PaymentGatewayPort backed by an x402 facilitator service."""

    def __init__(
        self,
        facilitator_url: str = DEFAULT_FACILITATOR_URL,
        *,
        asset_decimals: int = 6,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.facilitator_url = facilitator_url.rstrip("/")
        self.asset_decimals = asset_decimals
        self._client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def verify(self, request: PaymentRequest) -> PaymentVerdict:
        """Check the payment with the facilitator. Nothing is settled here."""
        if not request.payment_header:
            return Unpaid(reason="payment_missing")

        try:
            payload = decode_payment_header(request.payment_header)
        except ValueError as e:
            logger.info("Rejected payment header for %s: %s", request.item_id, e)
            return Unpaid(reason="payment_malformed")

        verification = self._post("verify", self._body(request, payload))
        if not verification.get("isValid"):
            reason = verification.get("invalidReason") or "payment_invalid"
            logger.info("Facilitator rejected payment for %s: %s", request.item_id, reason)
            return Unpaid(reason=str(reason))

        authorization = _authorization(payload)
        return Verified(
            amount=self._paid_amount(authorization, request.price_terms),
            payer=str(verification.get("payer") or authorization.get("from") or ""),
        )

    def settle(self, request: PaymentRequest, verdict: Verified) -> SettlementResult:
        """Capture a verified payment. The settlement transaction is the grant id."""
        try:
            payload = decode_payment_header(request.payment_header or "")
        except ValueError as e:
            logger.warning("Cannot settle %s: %s", request.item_id, e)
            return Unpaid(reason="payment_malformed")

        settlement = self._post("settle", self._body(request, payload))
        if not settlement.get("success"):
            reason = settlement.get("errorReason") or "settlement_failed"
            logger.warning("Settlement failed for %s: %s", request.item_id, reason)
            return Unpaid(reason=str(reason))

        grant_id = settlement.get("transaction") or ""
        if not grant_id:
            raise PaymentGatewayError("Facilitator settled without a transaction id")
        return Settled(grant_id=str(grant_id))

    def _body(self, request: PaymentRequest, payload: dict[str, Any]) -> dict[str, Any]:
        return {
            "x402Version": payload.get("x402Version", X402_VERSION),
            "paymentPayload": payload,
            "paymentRequirements": payment_requirements(
                request.price_terms,
                request.resource,
                asset_decimals=self.asset_decimals,
            ),
        }

    def _paid_amount(self, authorization: dict[str, Any], price_terms: PriceTerms) -> Decimal:
        value = authorization.get("value")
        if value is None:
            # Facilitator verified against maxAmountRequired; that is the floor
            return price_terms.amount
        try:
            return from_atomic_units(value, self.asset_decimals)
        except (TypeError, ValueError):
            return Decimal(0)

    def _post(self, endpoint: str, body: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.facilitator_url}/{endpoint}"
        try:
            response = self._client.post(url, json=body)
            response.raise_for_status()
            result = response.json()
        except httpx.TimeoutException as e:
            raise PaymentTimeoutError(f"Facilitator {endpoint} timed out", detail=str(e)) from e
        except httpx.HTTPStatusError as e:
            raise PaymentGatewayError(
                f"Facilitator {endpoint} returned {e.response.status_code}",
                detail=e.response.text[:500],
            ) from e
        except httpx.HTTPError as e:
            raise PaymentGatewayError(f"Facilitator {endpoint} unreachable", detail=str(e)) from e
        except ValueError as e:
            raise PaymentGatewayError(f"Facilitator {endpoint} returned invalid JSON") from e

        if not isinstance(result, dict):
            raise PaymentGatewayError(f"Facilitator {endpoint} returned a non-object")
        return result


def _authorization(payload: dict[str, Any]) -> dict[str, Any]:
    inner = payload.get("payload")
    authorization = inner.get("authorization") if isinstance(inner, dict) else None
    return authorization if isinstance(authorization, dict) else {}
