"""
Content access over the x402 facilitator adapter.

The facilitator is an httpx.MockTransport; every call it receives is recorded
so the tests can check when funds would move.
"""

import base64
import json
from typing import Any

import httpx
import pytest

from blobgate.adapters.clock import FixedClock
from blobgate.adapters.memory import InMemoryBlobStorage, InMemoryRegistryStore
from blobgate.adapters.x402_gateway import X402FacilitatorGateway
from blobgate.app_shell.config import Settings
from blobgate.app_shell.context import ServiceContext
from blobgate.components.access import ContentRequest
from blobgate.components.ingest import PublishInput
from blobgate.domain.errors import StorageError
from blobgate.rules.models import Rules

SECRET = bytes(range(32))
READER = "0xReader"


class Facilitator:
    """Scripted facilitator answering /verify and /settle."""

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.payer = READER
        self.value = "10000"
        self.settle_response: dict[str, Any] = {"success": True, "transaction": "0xtx"}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request.url.path)
        if request.url.path == "/verify":
            return httpx.Response(200, json={"isValid": True, "payer": self.payer})
        return httpx.Response(200, json=self.settle_response)

    def header(self) -> str:
        payload = {
            "x402Version": 1,
            "scheme": "exact",
            "network": "base-sepolia",
            "payload": {
                "signature": "0xsig",
                "authorization": {"from": self.payer, "value": self.value},
            },
        }
        return base64.b64encode(json.dumps(payload).encode()).decode()


@pytest.fixture
def facilitator() -> Facilitator:
    return Facilitator()


@pytest.fixture
def x402_ctx(
    settings: Settings,
    rules: Rules,
    blob_storage: InMemoryBlobStorage,
    registry: InMemoryRegistryStore,
    clock: FixedClock,
    facilitator: Facilitator,
) -> ServiceContext:
    gateway = X402FacilitatorGateway(
        "https://facilitator.test",
        asset_decimals=rules.pricing.asset_decimals,
        client=httpx.Client(transport=httpx.MockTransport(facilitator)),
    )
    return ServiceContext.create(
        settings,
        rules,
        storage=blob_storage,
        payments=gateway,
        registry=registry,
        clock=clock,
        secret=SECRET,
    )


@pytest.fixture
def item_id(x402_ctx: ServiceContext) -> str:
    return x402_ctx.pipeline.publish(
        PublishInput(title="Paid", content="members only", owner="0xAuthor")
    ).item_id


def read(ctx: ServiceContext, item_id: str, header: str):
    return ctx.mediator.content(
        ContentRequest(item_id=item_id, requester=READER, payment_header=header)
    )


def test_grant_settles_after_verify(
    x402_ctx: ServiceContext, item_id: str, facilitator: Facilitator
):
    out = read(x402_ctx, item_id, facilitator.header())

    assert out.state == "GRANTED"
    assert out.content == "members only"
    assert facilitator.calls == ["/verify", "/settle"]
    assert x402_ctx.ledger.require(item_id).access_log[READER].grant_id == "0xtx"


def test_payer_mismatch_is_never_settled(
    x402_ctx: ServiceContext, item_id: str, facilitator: Facilitator
):
    facilitator.payer = "0xSomeoneElse"
    out = read(x402_ctx, item_id, facilitator.header())

    assert out.state == "PAYMENT_REQUIRED"
    assert out.challenge.reason == "payer_mismatch"
    assert facilitator.calls == ["/verify"]
    assert x402_ctx.ledger.require(item_id).access_log == {}


def test_underpayment_is_never_settled(
    x402_ctx: ServiceContext, item_id: str, facilitator: Facilitator
):
    facilitator.value = "1"
    out = read(x402_ctx, item_id, facilitator.header())

    assert out.state == "PAYMENT_REQUIRED"
    assert out.challenge.reason == "insufficient_amount"
    assert facilitator.calls == ["/verify"]


def test_blob_read_failure_is_never_settled(
    x402_ctx: ServiceContext,
    item_id: str,
    facilitator: Facilitator,
    blob_storage: InMemoryBlobStorage,
):
    blob_storage.fail_reads = True
    with pytest.raises(StorageError):
        read(x402_ctx, item_id, facilitator.header())

    assert facilitator.calls == ["/verify"]
    assert x402_ctx.ledger.require(item_id).access_log == {}


def test_refused_settlement_withholds_content(
    x402_ctx: ServiceContext, item_id: str, facilitator: Facilitator
):
    facilitator.settle_response = {"success": False, "errorReason": "nonce_used"}
    out = read(x402_ctx, item_id, facilitator.header())

    assert out.state == "PAYMENT_REQUIRED"
    assert out.content is None
    assert out.challenge.reason == "nonce_used"
    assert x402_ctx.ledger.require(item_id).access_log == {}
