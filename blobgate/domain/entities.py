from datetime import UTC, datetime
from decimal import Decimal
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

# --- Enums / Literals ---
BlobStatus = Literal["pending", "success", "failed", "local-only"]
OverallStatus = Literal["pending", "success", "failed", "partial", "local-only"]
AccessState = Literal["PREVIEW_ONLY", "PAYMENT_REQUIRED", "GRANTED"]

IV_SIZE = 16


def utcnow() -> datetime:
    return datetime.now(UTC)


# --- Payment terms ---

class PriceTerms(BaseModel):
    amount: Decimal
    currency: str = "USDC"
    payout_address: str
    asset: str
    network: str

    model_config = ConfigDict(frozen=True)

    @field_validator("amount")
    @classmethod
    def _positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("amount must be positive")
        return v


# --- Storage pointer ---

class EncryptedCipher(BaseModel):
    """Content was encrypted with AES-256-CBC under this IV."""

    kind: Literal["aes-256-cbc"] = "aes-256-cbc"
    iv: bytes

    model_config = ConfigDict(frozen=True)

    @field_validator("iv", mode="before")
    @classmethod
    def _decode_hex(cls, v: Any) -> Any:
        if isinstance(v, str):
            return bytes.fromhex(v)
        return v

    @field_validator("iv")
    @classmethod
    def _iv_size(cls, v: bytes) -> bytes:
        if len(v) != IV_SIZE:
            raise ValueError(f"iv must be {IV_SIZE} bytes, got {len(v)}")
        return v

    @field_serializer("iv")
    def _encode_hex(self, v: bytes) -> str:
        return v.hex()


class PlainCipher(BaseModel):
    """Legacy item: the stored blob is UTF-8 plaintext."""

    kind: Literal["plain"] = "plain"

    model_config = ConfigDict(frozen=True)


CipherSpec = Annotated[EncryptedCipher | PlainCipher, Field(discriminator="kind")]


class StoragePointer(BaseModel):
    content_ref: str | None = None
    epochs: int | None = None
    certified: bool = False
    status: BlobStatus = "local-only"
    uploaded_at: datetime | None = None
    error_message: str | None = None
    cipher: CipherSpec = Field(default_factory=PlainCipher)

    model_config = ConfigDict(frozen=True)


# --- Audit ---

class AccessRecord(BaseModel):
    grant_id: str
    amount: Decimal
    timestamp: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(frozen=True)


# --- Item ---

class Item(BaseModel):
    id: str
    title: str
    description: str = ""
    owner: str
    created_at: datetime = Field(default_factory=utcnow)
    tags: list[str] = Field(default_factory=list)
    is_public: bool = True
    original_size: int = 0
    preview_text: str = ""
    price_terms: PriceTerms
    storage: StoragePointer = Field(default_factory=StoragePointer)
    # Audit only. Never consulted for access decisions.
    access_log: dict[str, AccessRecord] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @property
    def is_encrypted(self) -> bool:
        return isinstance(self.storage.cipher, EncryptedCipher)

    @property
    def overall_status(self) -> OverallStatus:
        return self.storage.status
