"""blobgate - payment-gated encrypted content ledger."""

__version__ = "0.1.0"
