from fastapi import APIRouter, Depends

from blobgate.api.deps import get_pipeline
from blobgate.api.schemas import ItemResponse, PriceTermsModel, UploadRequest, UploadResponse
from blobgate.components.ingest import IngestionPipeline, PublishInput

router = APIRouter()


@router.post("", response_model=UploadResponse)
def upload(
    body: UploadRequest,
    pipeline: IngestionPipeline = Depends(get_pipeline),
) -> UploadResponse:
    """
    Encrypt and store new content, then register it.

    Fails as a whole: a storage error (502) or registry error (500) leaves no
    item behind.
    """
    result = pipeline.publish(
        PublishInput(
            title=body.title,
            content=body.content,
            owner=body.owner_address,
            description=body.description,
            tags=tuple(body.tags),
            is_public=body.is_public,
            price=body.price,
        )
    )
    return UploadResponse(
        item_id=result.item_id,
        price_terms=PriceTermsModel.from_terms(result.price_terms),
        blob_info=ItemResponse.from_item(result.item),
    )
