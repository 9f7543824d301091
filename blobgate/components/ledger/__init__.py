"""Ledger component - durable registry of encrypted content metadata."""

from blobgate.components.ledger._migrate import migrate_record, to_record
from blobgate.components.ledger.component import BlobLedger
from blobgate.components.ledger.models import LedgerStats, MigrationDefaults
from blobgate.components.ledger.ports import ClockPort, RawRecord, RegistryStorePort

__all__ = [
    # Component
    "BlobLedger",
    # Codec
    "migrate_record",
    "to_record",
    # Models
    "LedgerStats",
    "MigrationDefaults",
    # Ports
    "ClockPort",
    "RawRecord",
    "RegistryStorePort",
]
