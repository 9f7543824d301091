from functools import lru_cache

from fastapi import Depends

from blobgate.app_shell.config import Settings
from blobgate.app_shell.context import ServiceContext
from blobgate.components.access import AccessMediator
from blobgate.components.ingest import IngestionPipeline
from blobgate.components.ledger import BlobLedger
from blobgate.rules.loader import load_rules
from blobgate.rules.models import Rules


# --- Settings ---
@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules() -> Rules:
    return load_rules(get_settings().rules_path)


# --- Context ---
# One ledger per process: it owns the in-memory registry and its lock.
@lru_cache
def get_context() -> ServiceContext:
    return ServiceContext.create(get_settings(), get_rules())


# --- Components ---
def get_ledger(ctx: ServiceContext = Depends(get_context)) -> BlobLedger:
    return ctx.ledger


def get_mediator(ctx: ServiceContext = Depends(get_context)) -> AccessMediator:
    return ctx.mediator


def get_pipeline(ctx: ServiceContext = Depends(get_context)) -> IngestionPipeline:
    return ctx.pipeline


__all__ = [
    "Settings",
    "get_context",
    "get_ledger",
    "get_mediator",
    "get_pipeline",
    "get_rules",
    "get_settings",
]
