from fastapi import APIRouter, Depends

from blobgate.adapters.clock import SystemClock
from blobgate.api.deps import get_context
from blobgate.api.schemas import HealthDatabase, HealthResponse, StatsResponse
from blobgate.app_shell.context import ServiceContext

router = APIRouter()


@router.get("/stats", response_model=StatsResponse)
def stats(ctx: ServiceContext = Depends(get_context)) -> StatsResponse:
    return StatsResponse.from_stats(ctx.ledger.stats())


@router.get("/health", response_model=HealthResponse)
def health(ctx: ServiceContext = Depends(get_context)) -> HealthResponse:
    """Liveness plus the configuration a client needs to know about."""
    stats = ctx.ledger.stats()
    return HealthResponse(
        timestamp=SystemClock().now(),
        storage_backend=ctx.settings.storage_backend,
        payment_backend=ctx.settings.payment_backend,
        encryption_key_configured=ctx.secret_configured,
        database=HealthDatabase(total_items=stats.total_items, last_updated=stats.last_updated),
    )
