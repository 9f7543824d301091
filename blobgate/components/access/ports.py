"""Access component port definitions - protocols for dependencies."""

from decimal import Decimal
from typing import Protocol

from blobgate.core.ports.clock import ClockPort
from blobgate.core.ports.payment import PaymentGatewayPort
from blobgate.core.ports.storage import StoragePort
from blobgate.domain.entities import Item


class LedgerPort(Protocol):
    """Protocol for the ledger operations the mediator needs."""

    def get(self, item_id: str) -> Item | None:
        """Retrieve an item by id."""
        ...

    def list(self) -> list[Item]:
        """List all items."""
        ...

    def record_access(
        self, item_id: str, requester: str, grant_id: str, amount: Decimal
    ) -> bool:
        """Upsert one audit entry."""
        ...

    def delete(self, item_id: str) -> bool:
        """Remove an item."""
        ...


__all__ = ["ClockPort", "LedgerPort", "PaymentGatewayPort", "StoragePort"]
