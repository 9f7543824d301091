"""
JSON file registry store.

Persists the whole registry as one JSON document:

    {"items": {item_id: record, ...}, "lastUpdated": "<iso>"}

Every save rewrites the file atomically (temp file in the same directory,
fsync, os.replace), so a crash mid-write leaves the previous registry intact.
Files written by earlier releases keep their records under ``blobs``; both
keys are read.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from datetime import UTC, datetime
from pathlib import Path

from blobgate.core.ports.registry import RawRecord
from blobgate.domain.errors import PersistenceError

logger = logging.getLogger(__name__)

REGISTRY_FILENAME = "registry.json"
BACKUP_PREFIX = "registry-"


class JsonRegistryStore:
    """RegistryStorePort over a single JSON file."""

    def __init__(
        self,
        path: str | Path,
        *,
        backup_dir: str | Path | None = None,
        retention_count: int = 5,
    ) -> None:
        self.path = Path(path)
        self.backup_dir = Path(backup_dir) if backup_dir else self.path.parent / "backup"
        self.retention_count = retention_count

    def load(self) -> dict[str, RawRecord]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Registry {self.path} could not be read", detail=str(e)) from e

        if not isinstance(data, dict):
            raise PersistenceError(f"Registry {self.path} is not a JSON object")

        records = data.get("items")
        if records is None:
            records = data.get("blobs", {})
        if not isinstance(records, dict):
            raise PersistenceError(f"Registry {self.path} has a malformed item map")
        return records

    def save(self, records: dict[str, RawRecord]) -> None:
        document = {"items": records, "lastUpdated": datetime.now(UTC).isoformat()}
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_name = f.name
                json.dump(document, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Registry {self.path} could not be written", detail=str(e)) from e
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)

    # --- Backups ---

    def backup(self) -> Path | None:
        """
        Copy the current registry into the backup directory.

        Returns:
            Path of the new backup, or None if there is no registry yet
        """
        if not self.path.exists():
            return None

        timestamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%S%fZ")
        target = self.backup_dir / f"{BACKUP_PREFIX}{timestamp}.json"
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            shutil.copy2(self.path, target)
        except OSError as e:
            raise PersistenceError("Registry backup failed", detail=str(e)) from e

        logger.info("Registry backup created: %s", target)
        self.cleanup_backups(self.retention_count)
        return target

    def list_backups(self) -> list[Path]:
        """Backups, newest first."""
        if not self.backup_dir.exists():
            return []
        return sorted(self.backup_dir.glob(f"{BACKUP_PREFIX}*.json"), reverse=True)

    def cleanup_backups(self, keep: int = 5) -> int:
        """Delete all but the newest ``keep`` backups. Returns the number removed."""
        removed = 0
        for old in self.list_backups()[keep:]:
            try:
                old.unlink()
                removed += 1
            except OSError as e:
                logger.warning("Old backup %s not removed: %s", old, e)
        if removed:
            logger.info("Removed %d old registry backups", removed)
        return removed
