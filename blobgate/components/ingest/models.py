"""Ingest component models - frozen dataclass inputs and outputs."""

from dataclasses import dataclass, field
from decimal import Decimal

from blobgate.domain.entities import Item, PriceTerms


@dataclass(frozen=True)
class PublishInput:
    """Input for publishing one piece of content."""

    title: str
    content: str
    owner: str
    description: str = ""
    tags: tuple[str, ...] = field(default_factory=tuple)
    is_public: bool = True
    price: Decimal | None = None  # None means the configured default


@dataclass(frozen=True)
class PublishOutput:
    """Output for a successful publish."""

    item_id: str
    price_terms: PriceTerms
    item: Item
