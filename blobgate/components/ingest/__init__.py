"""Ingest component - validate, encrypt, store and register new content."""

from blobgate.components.ingest.component import (
    IngestionPipeline,
    build_preview_text,
    validate_publish_input,
)
from blobgate.components.ingest.models import PublishInput, PublishOutput
from blobgate.components.ingest.ports import ClockPort, LedgerPort, StoragePort

__all__ = [
    # Component
    "IngestionPipeline",
    # Functions
    "build_preview_text",
    "validate_publish_input",
    # Models
    "PublishInput",
    "PublishOutput",
    # Ports
    "ClockPort",
    "LedgerPort",
    "StoragePort",
]
