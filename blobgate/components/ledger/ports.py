"""Ledger component port definitions - protocols for dependencies."""

from blobgate.core.ports.clock import ClockPort
from blobgate.core.ports.registry import RawRecord, RegistryStorePort

__all__ = ["ClockPort", "RawRecord", "RegistryStorePort"]
