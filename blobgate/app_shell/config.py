import logging
import os
from collections.abc import Mapping
from pathlib import Path

from blobgate.components.cipher import parse_secret
from blobgate.domain.errors import ConfigError
from blobgate.rules.models import Rules

logger = logging.getLogger(__name__)

STORAGE_BACKENDS = ("local", "walrus")
PAYMENT_BACKENDS = ("stub", "x402")

_TRUE = {"1", "true", "yes", "on"}


class Settings:
    """Process configuration read from ``BLOBGATE_*`` environment variables."""

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        env = os.environ if environ is None else environ
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(env.get("BLOBGATE_DATA_DIR", "./data"))
        self.registry_path = self.data_dir / "registry.json"
        self.blobs_dir = self.data_dir / "blobs"
        self.rules_path = Path(env.get("BLOBGATE_RULES_PATH", str(self.base_dir / "rules.yaml")))

        self.encryption_key = env.get("BLOBGATE_ENCRYPTION_KEY") or None
        self.payout_address = env.get("BLOBGATE_PAYOUT_ADDRESS") or None

        self.storage_backend = env.get("BLOBGATE_STORAGE_BACKEND", "local").lower()
        self.walrus_publisher_url = env.get(
            "BLOBGATE_WALRUS_PUBLISHER_URL", "https://publisher.walrus-testnet.walrus.space"
        )
        self.walrus_aggregator_url = env.get(
            "BLOBGATE_WALRUS_AGGREGATOR_URL", "https://aggregator.walrus-testnet.walrus.space"
        )

        self.payment_backend = env.get("BLOBGATE_PAYMENT_BACKEND", "stub").lower()
        self.x402_facilitator_url = env.get(
            "BLOBGATE_X402_FACILITATOR_URL", "https://x402.org/facilitator"
        )
        self.stub_accept_any_header = (
            env.get("BLOBGATE_STUB_ACCEPT_ANY_HEADER", "").lower() in _TRUE
        )

        origins = env.get("BLOBGATE_CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")
        self.cors_origins = [o.strip() for o in origins.split(",") if o.strip()]


def validate_ops_rules(rules: Rules, settings: Settings) -> None:
    """
    Validate operational requirements before startup.

    Raises:
        ConfigError: On missing required env or an unknown backend
    """
    missing = [name for name in rules.ops.required_env if name not in os.environ]
    if missing:
        raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")

    if settings.storage_backend not in STORAGE_BACKENDS:
        raise ConfigError(
            f"Unknown storage backend {settings.storage_backend!r}; "
            f"expected one of {', '.join(STORAGE_BACKENDS)}"
        )
    if settings.payment_backend not in PAYMENT_BACKENDS:
        raise ConfigError(
            f"Unknown payment backend {settings.payment_backend!r}; "
            f"expected one of {', '.join(PAYMENT_BACKENDS)}"
        )

    logger.info(
        "Configuration validated (storage=%s, payments=%s)",
        settings.storage_backend,
        settings.payment_backend,
    )


def load_content_secret(value: str | None) -> bytes | None:
    """
    Decode the configured content key.

    A missing or malformed key is a warning, not a startup failure: the
    service still serves previews, while publish and paid reads fail with
    ConfigError until a key is configured.
    """
    if not value:
        logger.warning("BLOBGATE_ENCRYPTION_KEY is not set; publishing and paid reads are disabled")
        return None
    try:
        return parse_secret(value)
    except ConfigError as e:
        logger.warning("BLOBGATE_ENCRYPTION_KEY ignored: %s", e.message)
        return None
