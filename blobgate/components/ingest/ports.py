"""Ingest component port definitions - protocols for dependencies."""

from typing import Protocol

from blobgate.core.ports.clock import ClockPort
from blobgate.core.ports.storage import StoragePort, StoredBlob
from blobgate.domain.entities import Item


class LedgerPort(Protocol):
    """Protocol for registering a new item."""

    def create(self, item: Item) -> Item:
        """Persist a new item keyed by its storage content reference."""
        ...


__all__ = ["ClockPort", "LedgerPort", "StoragePort", "StoredBlob"]
