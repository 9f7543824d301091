"""
Blob Ledger component.

Durable registry of item metadata: identity, ownership, price terms, storage
pointers, encryption parameters and the payment audit log.

Invariants:
- The item id is the storage content reference supplied by the caller; the
  ledger never assigns ids.
- Every mutation is one load-mutate-persist cycle under a lock and ends in a
  full rewrite of the registry. A failed rewrite leaves memory unchanged.
- The access log is audit only; nothing here grants access.
"""

from __future__ import annotations

import logging
import threading
from collections import Counter
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from typing import TypeVar

from blobgate.domain.entities import AccessRecord, Item, utcnow
from blobgate.domain.errors import NotFoundError, PersistenceError, ValidationError

from ._migrate import migrate_record, to_record
from .models import LedgerStats, MigrationDefaults
from .ports import ClockPort, RegistryStorePort

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BlobLedger:
    """
    Lock-guarded item registry backed by a whole-file registry store.
    """

    def __init__(
        self,
        store: RegistryStorePort,
        defaults: MigrationDefaults,
        clock: ClockPort | None = None,
    ) -> None:
        self._store = store
        self._defaults = defaults
        self._clock = clock
        self._lock = threading.RLock()
        self._items: dict[str, Item] = {}
        self._last_updated: datetime | None = None
        self.reload()

    def _now(self) -> datetime:
        return self._clock.now() if self._clock else utcnow()

    # --- Persistence ---

    def reload(self) -> int:
        """
        Load the registry from the store, migrating every record.

        Returns:
            Number of items loaded (unrecoverable records are skipped)
        """
        with self._lock:
            raw = self._store.load()
            items: dict[str, Item] = {}
            for key, record in raw.items():
                item = migrate_record(record, key, self._defaults)
                if item is not None:
                    items[item.id] = item
            skipped = len(raw) - len(items)
            self._items = items
            logger.info("Registry loaded: %d items (%d skipped)", len(items), skipped)
            return len(items)

    def _persist(self) -> None:
        self._store.save({item_id: to_record(item) for item_id, item in self._items.items()})
        self._last_updated = self._now()

    def _mutate(self, fn: Callable[[dict[str, Item]], T]) -> T:
        with self._lock:
            snapshot = dict(self._items)
            result = fn(self._items)
            try:
                self._persist()
            except PersistenceError:
                self._items = snapshot
                raise
            return result

    # --- Writes ---

    def create(self, item: Item) -> Item:
        """
        Register a new item under its storage content reference.

        Raises:
            ValidationError: If the id is blank or already registered
            PersistenceError: If the registry could not be rewritten
        """
        if not item.id.strip():
            raise ValidationError.single("id_required", "Item id is required", "id")

        stored = item.model_copy(update={"access_log": {}})

        def _create(items: dict[str, Item]) -> Item:
            if stored.id in items:
                raise ValidationError.single(
                    "duplicate_id", f"Item {stored.id} is already registered", "id"
                )
            items[stored.id] = stored
            return stored

        created = self._mutate(_create)
        logger.info("Item created: %s (owner=%s)", created.id, created.owner)
        return created

    def record_access(
        self, item_id: str, requester: str, grant_id: str, amount: Decimal
    ) -> bool:
        """
        Upsert the audit entry for ``requester`` on ``item_id``.

        Returns:
            False if the item is unknown
        """

        def _record(items: dict[str, Item]) -> bool:
            item = items.get(item_id)
            if item is None:
                return False
            log = dict(item.access_log)
            log[requester] = AccessRecord(grant_id=grant_id, amount=amount, timestamp=self._now())
            items[item_id] = item.model_copy(update={"access_log": log})
            return True

        with self._lock:
            if item_id not in self._items:
                return False
            return self._mutate(_record)

    def delete(self, item_id: str) -> bool:
        """Remove the ledger entry. Remote storage is not touched."""
        with self._lock:
            if item_id not in self._items:
                return False
            self._mutate(lambda items: items.pop(item_id))
        logger.info("Item deleted: %s", item_id)
        return True

    # --- Reads ---

    def get(self, item_id: str) -> Item | None:
        with self._lock:
            return self._items.get(item_id)

    def require(self, item_id: str) -> Item:
        item = self.get(item_id)
        if item is None:
            raise NotFoundError(f"Item {item_id} not found")
        return item

    def list(self) -> list[Item]:
        with self._lock:
            return list(self._items.values())

    def list_by_owner(self, owner: str) -> list[Item]:
        return [item for item in self.list() if item.owner == owner]

    def list_by_status(self, status: str) -> list[Item]:
        return [item for item in self.list() if item.overall_status == status]

    def list_public(self) -> list[Item]:
        return [item for item in self.list() if item.is_public]

    def search(self, query: str) -> list[Item]:
        """Case-insensitive substring match over title and tags."""
        needle = query.strip().lower()
        if not needle:
            raise ValidationError.single("query_required", "Search query is required", "q")
        return [
            item
            for item in self.list()
            if needle in item.title.lower() or any(needle in tag.lower() for tag in item.tags)
        ]

    def stats(self) -> LedgerStats:
        items = self.list()
        statuses = Counter(item.overall_status for item in items)
        encrypted = sum(1 for item in items if item.is_encrypted)
        return LedgerStats(
            total_items=len(items),
            total_size=sum(item.original_size for item in items),
            encrypted_items=encrypted,
            legacy_items=len(items) - encrypted,
            total_grants=sum(len(item.access_log) for item in items),
            status_counts=dict(statuses),
            last_updated=self._last_updated,
        )
