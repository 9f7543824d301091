# blobgate: Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from blobgate.core.ports.clock import ClockPort
from blobgate.core.ports.payment import (
    PaymentGatewayPort,
    PaymentRequest,
    PaymentVerdict,
    Settled,
    SettlementResult,
    Unpaid,
    Verified,
)
from blobgate.core.ports.registry import RawRecord, RegistryStorePort
from blobgate.core.ports.storage import StoragePort, StoredBlob

__all__ = [
    # Clock
    "ClockPort",
    # Payment
    "PaymentGatewayPort",
    "PaymentRequest",
    "PaymentVerdict",
    "Settled",
    "SettlementResult",
    "Unpaid",
    "Verified",
    # Registry
    "RawRecord",
    "RegistryStorePort",
    # Storage
    "StoragePort",
    "StoredBlob",
]
