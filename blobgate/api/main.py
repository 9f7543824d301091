import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from blobgate import __version__
from blobgate.api.deps import get_context, get_rules, get_settings
from blobgate.api.errors import register_error_handlers
from blobgate.app_shell.config import validate_ops_rules
from blobgate.domain.errors import BlobgateError

logger = logging.getLogger("blobgate.api")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    logging.basicConfig(level=logging.INFO)
    settings = get_settings()

    # Load rules, validate and load the registry on startup (fail-fast)
    try:
        rules = get_rules()
        validate_ops_rules(rules, settings)
        ctx = get_context()
    except (BlobgateError, FileNotFoundError, ValueError) as e:
        logger.critical("Startup failed: %s", e)
        sys.exit(1)

    logger.info(
        "Rules loaded from %s; %d items in registry",
        settings.rules_path,
        ctx.ledger.stats().total_items,
    )
    yield


app = FastAPI(
    title="blobgate API",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

register_error_handlers(app)

# --- Routers ---
from blobgate.api.routes import blobs, system, upload  # noqa: E402

app.include_router(upload.router, prefix="/api/upload", tags=["Upload"])
app.include_router(blobs.router, prefix="/api/blobs", tags=["Blobs"])
app.include_router(system.router, prefix="/api", tags=["System"])


# CORS (Allow Frontend)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
