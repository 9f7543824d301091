"""
Error taxonomy shared by every component.

Each error carries a stable ``kind`` so the HTTP shell (and any other caller)
can decide whether to retry without parsing messages. Collaborator failures
keep the collaborator-reported message in ``detail``.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    """A single field-level validation failure."""

    code: str
    message: str
    field: str | None = None


class BlobgateError(Exception):
    """Base class for all blobgate errors."""

    kind = "error"

    def __init__(self, message: str, *, detail: str | None = None) -> None:
        self.message = message
        self.detail = detail
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        body: dict[str, object] = {"kind": self.kind, "message": self.message}
        if self.detail:
            body["details"] = self.detail
        return body


class ValidationError(BlobgateError):
    """Bad input. Not retried."""

    kind = "validation"

    def __init__(
        self,
        message: str,
        errors: list[FieldError] | None = None,
        *,
        detail: str | None = None,
    ) -> None:
        self.errors = list(errors or [])
        super().__init__(message, detail=detail)

    @classmethod
    def single(cls, code: str, message: str, field: str | None = None) -> ValidationError:
        return cls(message, [FieldError(code=code, message=message, field=field)])

    def to_dict(self) -> dict[str, object]:
        body = super().to_dict()
        body["errors"] = [
            {"code": e.code, "message": e.message, "field": e.field} for e in self.errors
        ]
        return body


class ConfigError(BlobgateError):
    """Missing or malformed configuration (secret, keys, rules)."""

    kind = "config"


class StorageError(BlobgateError):
    """Storage collaborator I/O failure."""

    kind = "storage"


class NotFoundError(BlobgateError):
    """Unknown item or blob."""

    kind = "not_found"


class CryptoError(BlobgateError):
    """Key, IV or padding mismatch during encrypt/decrypt."""

    kind = "crypto"


class PersistenceError(BlobgateError):
    """Registry file could not be read or written."""

    kind = "persistence"


class PaymentGatewayError(BlobgateError):
    """Payment-verification collaborator failed."""

    kind = "payment_gateway"


class PaymentTimeoutError(PaymentGatewayError):
    """Verification did not complete in time. Always treated as "no grant"."""

    kind = "payment_timeout"
