"""
Registry persistence port.

The ledger persists the whole registry as one map of item id to raw record.
Every save is a full rewrite; there are no partial or append writes.
"""

from __future__ import annotations

from typing import Any, Protocol

RawRecord = dict[str, Any]


class RegistryStorePort(Protocol):
    def load(self) -> dict[str, RawRecord]:
        """Return every persisted record keyed by item id (empty if none)."""
        ...

    def save(self, records: dict[str, RawRecord]) -> None:
        """
        Replace the persisted registry with ``records``.

        Raises:
            PersistenceError: If the rewrite did not complete
        """
        ...
