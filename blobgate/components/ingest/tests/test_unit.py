"""
Ingest component unit tests.

Tests for publish validation, preview derivation and the encrypt, store and
register pipeline, including orphan cleanup.
"""

from __future__ import annotations

import hashlib
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path

import pydantic
import pytest

from blobgate.components.cipher import decrypt
from blobgate.components.ingest import (
    IngestionPipeline,
    PublishInput,
    build_preview_text,
    validate_publish_input,
)
from blobgate.core.ports.storage import StoredBlob
from blobgate.domain.entities import EncryptedCipher, Item
from blobgate.domain.errors import (
    ConfigError,
    PersistenceError,
    StorageError,
    ValidationError,
)
from blobgate.rules.loader import load_rules
from blobgate.rules.models import Rules

SECRET = bytes(range(32))
RULES_PATH = Path(__file__).resolve().parents[4] / "rules.yaml"

# --- Mock Implementations ---


class MockLedger:
    def __init__(self) -> None:
        self.items: dict[str, Item] = {}
        self.fail_with: Exception | None = None

    def create(self, item: Item) -> Item:
        if self.fail_with is not None:
            raise self.fail_with
        if item.id in self.items:
            raise ValidationError.single("duplicate_id", "already registered", "id")
        self.items[item.id] = item
        return item


class MockStorage:
    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}
        self.writes: list[int] = []
        self.fail_writes = False

    def write_blob(self, data: bytes, *, epochs: int = 1) -> StoredBlob:
        if self.fail_writes:
            raise StorageError("publisher unreachable")
        self.writes.append(epochs)
        ref = hashlib.sha256(data).hexdigest()
        self.blobs[ref] = data
        return StoredBlob(content_ref=ref, size_bytes=len(data), epochs=epochs, certified=True)

    def read_blob(self, content_ref: str) -> bytes:
        return self.blobs[content_ref]

    def delete_blob(self, content_ref: str) -> bool:
        return self.blobs.pop(content_ref, None) is not None


class MockClockPort:
    def now(self) -> datetime:
        return datetime(2025, 3, 1, 12, 0, 0, tzinfo=UTC)


# --- Fixtures ---


@pytest.fixture
def rules() -> Rules:
    return load_rules(RULES_PATH)


@pytest.fixture
def ledger() -> MockLedger:
    return MockLedger()


@pytest.fixture
def storage() -> MockStorage:
    return MockStorage()


@pytest.fixture
def pipeline(ledger: MockLedger, storage: MockStorage, rules: Rules) -> IngestionPipeline:
    return IngestionPipeline(
        ledger, storage, rules, secret=SECRET, payout_address="0xOPERATOR", clock=MockClockPort()
    )


def make_input(**overrides: object) -> PublishInput:
    values: dict[str, object] = {
        "title": "A",
        "content": "hello world",
        "owner": "0xAuthor",
    }
    values.update(overrides)
    return PublishInput(**values)  # type: ignore[arg-type]


# --- Validation ---


class TestValidatePublishInput:
    def test_valid_input(self, rules: Rules) -> None:
        assert validate_publish_input(make_input(), rules) == []

    def test_required_fields(self, rules: Rules) -> None:
        errors = validate_publish_input(make_input(title=" ", content="", owner=""), rules)
        assert {e.code for e in errors} == {"title_required", "content_required", "owner_required"}

    def test_title_too_long(self, rules: Rules) -> None:
        errors = validate_publish_input(make_input(title="t" * (rules.content.title_max + 1)), rules)
        assert [e.code for e in errors] == ["title_too_long"]

    def test_content_too_large_counts_bytes(self, rules: Rules) -> None:
        too_big = "é" * (rules.storage.max_content_bytes // 2 + 1)
        errors = validate_publish_input(make_input(content=too_big), rules)
        assert [e.code for e in errors] == ["content_too_large"]

    def test_too_many_tags(self, rules: Rules) -> None:
        tags = tuple(f"t{i}" for i in range(rules.content.tags_max + 1))
        errors = validate_publish_input(make_input(tags=tags), rules)
        assert [e.code for e in errors] == ["too_many_tags"]

    def test_non_positive_price(self, rules: Rules) -> None:
        errors = validate_publish_input(make_input(price=Decimal("0")), rules)
        assert [e.code for e in errors] == ["price_invalid"]


# --- Preview ---


class TestBuildPreviewText:
    def test_never_contains_full_content(self, rules: Rules) -> None:
        preview = build_preview_text("A", "", "hello world", rules.preview)
        assert preview
        assert "hello world" not in preview
        assert preview.startswith("A")

    def test_uses_first_paragraph(self, rules: Rules) -> None:
        content = "Intro paragraph.\n\n" + "Body " * 200
        preview = build_preview_text("Title", "Desc", content, rules.preview)
        assert "Intro paragraph." in preview
        assert "Body" not in preview

    def test_bounded(self, rules: Rules) -> None:
        preview = build_preview_text("T" * 150, "D" * 500, "x" * 5000, rules.preview)
        assert len(preview) <= rules.preview.max_chars


# --- Pipeline ---


class TestPublish:
    def test_publish_encrypts_stores_and_registers(
        self, pipeline: IngestionPipeline, ledger: MockLedger, storage: MockStorage
    ) -> None:
        result = pipeline.publish(make_input())

        item = ledger.items[result.item_id]
        assert item.id == result.item_id
        assert item.storage.content_ref == result.item_id
        assert item.storage.status == "success"
        assert item.original_size == len(b"hello world")
        assert isinstance(item.storage.cipher, EncryptedCipher)

        stored = storage.blobs[result.item_id]
        assert b"hello world" not in stored
        assert decrypt(stored, item.storage.cipher.iv, SECRET) == b"hello world"

    def test_price_terms(self, pipeline: IngestionPipeline, rules: Rules) -> None:
        result = pipeline.publish(make_input(price=Decimal("0.25")))
        assert result.price_terms.amount == Decimal("0.25")
        assert result.price_terms.payout_address == "0xOPERATOR"
        assert result.price_terms.network == rules.pricing.network

    def test_default_price_pays_author_without_operator(
        self, ledger: MockLedger, storage: MockStorage, rules: Rules
    ) -> None:
        pipeline = IngestionPipeline(ledger, storage, rules, secret=SECRET)
        result = pipeline.publish(make_input())
        assert result.price_terms.amount == rules.pricing.default_amount
        assert result.price_terms.payout_address == "0xAuthor"

    def test_uses_configured_epochs(
        self, pipeline: IngestionPipeline, storage: MockStorage, rules: Rules
    ) -> None:
        pipeline.publish(make_input())
        assert storage.writes == [rules.storage.epochs]

    def test_validation_error_before_io(
        self, pipeline: IngestionPipeline, storage: MockStorage
    ) -> None:
        with pytest.raises(ValidationError) as exc:
            pipeline.publish(make_input(title=""))
        assert exc.value.errors[0].code == "title_required"
        assert storage.writes == []

    def test_missing_secret_before_io(
        self, ledger: MockLedger, storage: MockStorage, rules: Rules
    ) -> None:
        pipeline = IngestionPipeline(ledger, storage, rules, secret=None)
        with pytest.raises(ConfigError):
            pipeline.publish(make_input())
        assert storage.writes == []
        assert ledger.items == {}

    def test_storage_failure_registers_nothing(
        self, pipeline: IngestionPipeline, ledger: MockLedger, storage: MockStorage
    ) -> None:
        storage.fail_writes = True
        with pytest.raises(StorageError):
            pipeline.publish(make_input())
        assert ledger.items == {}

    def test_registration_failure_removes_orphan(
        self, pipeline: IngestionPipeline, ledger: MockLedger, storage: MockStorage
    ) -> None:
        ledger.fail_with = PersistenceError("disk full")
        with pytest.raises(PersistenceError):
            pipeline.publish(make_input())
        assert storage.blobs == {}

    def test_duplicate_registration_keeps_existing_blob(
        self, pipeline: IngestionPipeline, ledger: MockLedger, storage: MockStorage
    ) -> None:
        existing = pipeline.publish(make_input())
        ledger.fail_with = ValidationError.single("duplicate_id", "already registered", "id")
        with pytest.raises(ValidationError):
            pipeline.publish(make_input())
        assert existing.item_id in storage.blobs

    def test_unbuildable_item_removes_orphan(
        self, pipeline: IngestionPipeline, ledger: MockLedger, storage: MockStorage
    ) -> None:
        write = storage.write_blob

        def malformed_write(data: bytes, *, epochs: int = 1) -> StoredBlob:
            stored = write(data, epochs=epochs)
            return StoredBlob(
                content_ref=stored.content_ref,
                size_bytes=stored.size_bytes,
                epochs="forever",  # type: ignore[arg-type]
            )

        storage.write_blob = malformed_write  # type: ignore[method-assign]
        with pytest.raises(pydantic.ValidationError):
            pipeline.publish(make_input())
        assert storage.blobs == {}
        assert ledger.items == {}

    def test_same_content_twice_gives_distinct_items(
        self, pipeline: IngestionPipeline, ledger: MockLedger
    ) -> None:
        first = pipeline.publish(make_input())
        second = pipeline.publish(make_input())
        assert first.item_id != second.item_id
        assert len(ledger.items) == 2
