from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from blobgate.adapters.clock import FixedClock
from blobgate.adapters.memory import InMemoryBlobStorage, InMemoryRegistryStore
from blobgate.adapters.payment_stub import PaymentStubGateway
from blobgate.api.deps import get_context
from blobgate.api.main import app
from blobgate.app_shell.config import Settings
from blobgate.app_shell.context import ServiceContext
from blobgate.rules.loader import load_rules
from blobgate.rules.models import Rules

ROOT = Path(__file__).resolve().parents[1]

SECRET_HEX = "00112233445566778899aabbccddeeff00112233445566778899aabbccddeeff"
SECRET = bytes.fromhex(SECRET_HEX)


@pytest.fixture
def rules() -> Rules:
    # Load REAL rules from project root
    return load_rules(ROOT / "rules.yaml")


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2025, 3, 1, 12, 0, 0, tzinfo=UTC))


@pytest.fixture
def blob_storage() -> InMemoryBlobStorage:
    return InMemoryBlobStorage()


@pytest.fixture
def registry() -> InMemoryRegistryStore:
    return InMemoryRegistryStore()


@pytest.fixture
def payments() -> PaymentStubGateway:
    return PaymentStubGateway()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        environ={
            "BLOBGATE_DATA_DIR": str(tmp_path / "data"),
            "BLOBGATE_RULES_PATH": str(ROOT / "rules.yaml"),
            "BLOBGATE_ENCRYPTION_KEY": SECRET_HEX,
        }
    )


@pytest.fixture
def ctx(
    settings: Settings,
    rules: Rules,
    blob_storage: InMemoryBlobStorage,
    registry: InMemoryRegistryStore,
    payments: PaymentStubGateway,
    clock: FixedClock,
) -> ServiceContext:
    """
    Fully wired service context over in-memory adapters.
    """
    return ServiceContext.create(
        settings,
        rules,
        storage=blob_storage,
        payments=payments,
        registry=registry,
        clock=clock,
        secret=SECRET,
    )


@pytest.fixture
def client(ctx: ServiceContext) -> Iterator[TestClient]:
    app.dependency_overrides[get_context] = lambda: ctx
    yield TestClient(app)
    app.dependency_overrides.clear()
