"""
Item routes: metadata listings, free previews, paid content and deletion.

Static paths are declared before ``/{item_id}`` so they are not captured by it.
"""

from typing import Any, Literal

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import JSONResponse

from blobgate.adapters.x402_gateway import payment_requirements
from blobgate.api.deps import get_context, get_ledger, get_mediator
from blobgate.api.schemas import (
    ChallengeModel,
    ContentResponse,
    DeleteResponse,
    ItemResponse,
    PaymentRequiredResponse,
    PreviewResponse,
    PriceTermsModel,
)
from blobgate.app_shell.context import ServiceContext
from blobgate.components.access import AccessMediator, ContentOutput, ContentRequest, DeleteInput
from blobgate.components.ledger import BlobLedger
from blobgate.domain.errors import ValidationError

router = APIRouter()


def _items(items: list) -> list[ItemResponse]:
    return [ItemResponse.from_item(item) for item in sorted(items, key=lambda i: i.created_at)]


@router.get("", response_model=list[ItemResponse])
def list_items(ledger: BlobLedger = Depends(get_ledger)) -> list[ItemResponse]:
    """All items, metadata only."""
    return _items(ledger.list())


@router.get("/preview", response_model=list[PreviewResponse])
def list_previews(mediator: AccessMediator = Depends(get_mediator)) -> list[PreviewResponse]:
    return [PreviewResponse.from_output(p) for p in mediator.list_previews()]


@router.get("/search", response_model=list[ItemResponse])
def search_items(
    q: str | None = Query(default=None),
    ledger: BlobLedger = Depends(get_ledger),
) -> list[ItemResponse]:
    return _items(ledger.search(q or ""))


@router.get("/status/{status}", response_model=list[ItemResponse])
def items_by_status(status: str, ledger: BlobLedger = Depends(get_ledger)) -> list[ItemResponse]:
    return _items(ledger.list_by_status(status))


@router.get("/owner/{address}", response_model=list[ItemResponse])
def items_by_owner(address: str, ledger: BlobLedger = Depends(get_ledger)) -> list[ItemResponse]:
    return _items(ledger.list_by_owner(address))


@router.get("/public", response_model=list[ItemResponse])
def public_items(ledger: BlobLedger = Depends(get_ledger)) -> list[ItemResponse]:
    return _items(ledger.list_public())


@router.get("/ownership/{kind}", response_model=list[ItemResponse])
def items_by_ownership(
    kind: Literal["owned", "public", "all"],
    address: str | None = Query(default=None),
    ledger: BlobLedger = Depends(get_ledger),
) -> list[ItemResponse]:
    if kind == "owned":
        if not address:
            raise ValidationError.single(
                "address_required", "Address parameter required for owned items", "address"
            )
        return _items(ledger.list_by_owner(address))
    if kind == "public":
        return _items(ledger.list_public())
    return _items(ledger.list())


@router.get("/{item_id}", response_model=ItemResponse)
def get_item(item_id: str, ledger: BlobLedger = Depends(get_ledger)) -> ItemResponse:
    return ItemResponse.from_item(ledger.require(item_id))


@router.get("/{item_id}/preview", response_model=PreviewResponse)
def get_preview(item_id: str, mediator: AccessMediator = Depends(get_mediator)) -> PreviewResponse:
    """Free excerpt. No identity or payment needed."""
    return PreviewResponse.from_output(mediator.preview(item_id))


@router.get(
    "/{item_id}/content",
    response_model=ContentResponse,
    responses={402: {"model": PaymentRequiredResponse}},
)
def get_content(
    item_id: str,
    request: Request,
    user_address: str | None = Query(default=None, alias="userAddress"),
    x_payment: str | None = Header(default=None, alias="X-PAYMENT"),
    ctx: ServiceContext = Depends(get_context),
) -> Any:
    """
    Paid content. Every call is verified on its own: without a payment the
    response is 402 with fresh challenge terms.
    """
    resource = str(request.url.replace(query=""))
    output = ctx.mediator.content(
        ContentRequest(
            item_id=item_id,
            requester=user_address,
            payment_header=x_payment,
            resource=resource,
        )
    )
    if output.state == "GRANTED":
        return ContentResponse.from_output(output)
    return _payment_required(output, resource, ctx)


def _payment_required(output: ContentOutput, resource: str, ctx: ServiceContext) -> JSONResponse:
    challenge = output.challenge
    if challenge is None:
        raise ValueError(f"Content output for {output.item_id} has no challenge")

    terms = challenge.price_terms
    requirements = payment_requirements(
        terms,
        resource,
        asset_decimals=ctx.rules.pricing.asset_decimals,
        description=f"Access to {output.title}",
        max_timeout_seconds=ctx.rules.payment.challenge_ttl_seconds,
    )
    body = PaymentRequiredResponse(
        item_id=output.item_id,
        title=output.title,
        price_terms=PriceTermsModel.from_terms(terms),
        challenge=ChallengeModel(
            nonce=challenge.nonce,
            expires_at=challenge.expires_at,
            reason=challenge.reason,
        ),
        accepts=[requirements],
        payment_details={
            "price": str(terms.amount),
            "currency": terms.currency,
            "paymentAddress": terms.payout_address,
            "assetAddress": terms.asset,
            "network": terms.network,
            "nonce": challenge.nonce,
            "expiresAt": challenge.expires_at.isoformat(),
        },
    )
    return JSONResponse(status_code=402, content=body.model_dump(mode="json", by_alias=True))


@router.delete("/{item_id}", response_model=DeleteResponse)
def delete_item(item_id: str, mediator: AccessMediator = Depends(get_mediator)) -> Any:
    result = mediator.delete(DeleteInput(item_id=item_id))
    if not result.success:
        body = DeleteResponse(success=False, message="Item not found")
        return JSONResponse(status_code=404, content=body.model_dump(mode="json", by_alias=True))
    return DeleteResponse(
        success=True,
        message="Item deleted",
        remote_deleted=result.remote_deleted,
    )
