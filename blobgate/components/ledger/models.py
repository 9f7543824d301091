"""Ledger component models."""

from dataclasses import dataclass, field
from datetime import datetime

from blobgate.domain.entities import PriceTerms


@dataclass(frozen=True)
class MigrationDefaults:
    """Values used to fill substructures missing from older persisted records."""

    price_terms: PriceTerms
    preview_max_chars: int | None = None


@dataclass(frozen=True)
class LedgerStats:
    """Aggregate view over the registry."""

    total_items: int
    total_size: int
    encrypted_items: int
    legacy_items: int
    total_grants: int
    status_counts: dict[str, int] = field(default_factory=dict)
    last_updated: datetime | None = None
