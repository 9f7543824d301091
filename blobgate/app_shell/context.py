from __future__ import annotations

import logging
from dataclasses import dataclass

from blobgate.adapters.clock import SystemClock
from blobgate.adapters.json_registry import JsonRegistryStore
from blobgate.adapters.local_storage import LocalBlobStorage
from blobgate.adapters.payment_stub import PaymentStubGateway
from blobgate.adapters.walrus_storage import WalrusHttpStorage
from blobgate.adapters.x402_gateway import X402FacilitatorGateway
from blobgate.app_shell.config import Settings, load_content_secret
from blobgate.components.access import AccessMediator
from blobgate.components.ingest import IngestionPipeline
from blobgate.components.ledger import BlobLedger, MigrationDefaults
from blobgate.core.ports import ClockPort, PaymentGatewayPort, RegistryStorePort, StoragePort
from blobgate.domain.entities import PriceTerms
from blobgate.domain.errors import ConfigError
from blobgate.rules.models import Rules

logger = logging.getLogger(__name__)


def build_storage(settings: Settings, rules: Rules) -> StoragePort:
    if settings.storage_backend == "local":
        return LocalBlobStorage(settings.blobs_dir)
    if settings.storage_backend == "walrus":
        return WalrusHttpStorage(settings.walrus_publisher_url, settings.walrus_aggregator_url)
    raise ConfigError(f"Unknown storage backend {settings.storage_backend!r}")


def build_payments(settings: Settings, rules: Rules) -> PaymentGatewayPort:
    if settings.payment_backend == "stub":
        if settings.stub_accept_any_header:
            logger.warning("Stub payment gateway accepts any X-PAYMENT header (dev mode)")
        return PaymentStubGateway(accept_any_header=settings.stub_accept_any_header)
    if settings.payment_backend == "x402":
        return X402FacilitatorGateway(
            settings.x402_facilitator_url,
            asset_decimals=rules.pricing.asset_decimals,
            timeout=rules.payment.verify_timeout_seconds,
        )
    raise ConfigError(f"Unknown payment backend {settings.payment_backend!r}")


def default_price_terms(rules: Rules, payout_address: str | None) -> PriceTerms:
    pricing = rules.pricing
    return PriceTerms(
        amount=pricing.default_amount,
        currency=pricing.currency,
        payout_address=payout_address or "",
        asset=pricing.asset,
        network=pricing.network,
    )


@dataclass
class ServiceContext:
    """Wired components and adapters shared by the API and the CLI."""

    settings: Settings
    rules: Rules
    clock: ClockPort
    storage: StoragePort
    payments: PaymentGatewayPort
    registry: RegistryStorePort
    ledger: BlobLedger
    mediator: AccessMediator
    pipeline: IngestionPipeline
    secret_configured: bool = False

    @classmethod
    def create(
        cls,
        settings: Settings,
        rules: Rules,
        *,
        storage: StoragePort | None = None,
        payments: PaymentGatewayPort | None = None,
        registry: RegistryStorePort | None = None,
        clock: ClockPort | None = None,
        secret: bytes | None = None,
    ) -> ServiceContext:
        """
        Build the full object graph. Any adapter may be injected (tests);
        the rest are chosen from settings.
        """
        clock = clock or SystemClock()
        storage = storage or build_storage(settings, rules)
        payments = payments or build_payments(settings, rules)
        registry = registry or JsonRegistryStore(
            settings.registry_path,
            backup_dir=settings.data_dir / rules.ops.backups.backup_dir_name,
            retention_count=rules.ops.backups.retention_count,
        )
        if secret is None:
            secret = load_content_secret(settings.encryption_key)

        ledger = BlobLedger(
            registry,
            MigrationDefaults(
                price_terms=default_price_terms(rules, settings.payout_address),
                preview_max_chars=rules.preview.max_chars,
            ),
            clock=clock,
        )
        mediator = AccessMediator(
            ledger,
            storage,
            payments,
            secret=secret,
            challenge_ttl_seconds=rules.payment.challenge_ttl_seconds,
            require_payer_match=rules.payment.require_payer_match,
            clock=clock,
        )
        pipeline = IngestionPipeline(
            ledger,
            storage,
            rules,
            secret=secret,
            payout_address=settings.payout_address,
            clock=clock,
        )
        return cls(
            settings=settings,
            rules=rules,
            clock=clock,
            storage=storage,
            payments=payments,
            registry=registry,
            ledger=ledger,
            mediator=mediator,
            pipeline=pipeline,
            secret_configured=secret is not None,
        )
