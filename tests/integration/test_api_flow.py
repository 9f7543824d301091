"""
End-to-end API scenarios over in-memory adapters.

publish -> preview -> 402 -> pay -> 200, listings, deletion and error mapping.
"""

from decimal import Decimal
from typing import Any

import pytest
from fastapi.testclient import TestClient

from blobgate.adapters.memory import InMemoryBlobStorage, InMemoryRegistryStore
from blobgate.adapters.payment_stub import PaymentStubGateway
from blobgate.app_shell.context import ServiceContext

READER = "0xReader"


def upload(client: TestClient, **overrides: Any) -> dict[str, Any]:
    body = {"title": "A", "content": "hello world", "ownerAddress": "0xAuthor"}
    body.update(overrides)
    response = client.post("/api/upload", json=body)
    assert response.status_code == 200, response.text
    return response.json()


class TestUpload:
    def test_upload_returns_item(self, client: TestClient, blob_storage: InMemoryBlobStorage) -> None:
        data = upload(client, tags=["notes"], price="0.05")
        assert data["success"] is True
        item_id = data["itemId"]
        assert item_id in blob_storage.blobs
        assert data["priceTerms"]["amount"] == "0.05"
        assert data["priceTerms"]["currency"] == "USDC"
        assert data["blobInfo"]["id"] == item_id
        assert data["blobInfo"]["encrypted"] is True
        assert data["blobInfo"]["walrus"]["blobId"] == item_id
        assert "content" not in data["blobInfo"]

    def test_upload_validation(self, client: TestClient, blob_storage: InMemoryBlobStorage) -> None:
        response = client.post("/api/upload", json={"title": "A", "content": "x"})
        assert response.status_code == 400
        body = response.json()
        assert body["kind"] == "validation"
        assert body["errors"][0]["field"] == "ownerAddress"
        assert blob_storage.blobs == {}

    def test_storage_outage_is_502(
        self, client: TestClient, blob_storage: InMemoryBlobStorage, registry: InMemoryRegistryStore
    ) -> None:
        blob_storage.fail_writes = True
        response = client.post(
            "/api/upload", json={"title": "A", "content": "x", "ownerAddress": "0xA"}
        )
        assert response.status_code == 502
        assert response.json()["kind"] == "storage"
        assert registry.records == {}

    def test_registry_failure_is_500_and_cleans_up(
        self, client: TestClient, blob_storage: InMemoryBlobStorage, registry: InMemoryRegistryStore
    ) -> None:
        registry.fail_saves = True
        response = client.post(
            "/api/upload", json={"title": "A", "content": "x", "ownerAddress": "0xA"}
        )
        assert response.status_code == 500
        assert response.json()["kind"] == "persistence"
        assert blob_storage.blobs == {}
        assert client.get("/api/blobs").json() == []

    def test_missing_secret_is_500(
        self,
        settings: Any,
        rules: Any,
        blob_storage: InMemoryBlobStorage,
        registry: InMemoryRegistryStore,
        payments: PaymentStubGateway,
    ) -> None:
        from blobgate.api.deps import get_context
        from blobgate.api.main import app

        settings.encryption_key = None
        ctx = ServiceContext.create(
            settings, rules, storage=blob_storage, payments=payments, registry=registry
        )
        assert ctx.secret_configured is False
        app.dependency_overrides[get_context] = lambda: ctx
        try:
            response = TestClient(app).post(
                "/api/upload", json={"title": "A", "content": "x", "ownerAddress": "0xA"}
            )
        finally:
            app.dependency_overrides.clear()
        assert response.status_code == 500
        assert response.json()["kind"] == "config"
        assert blob_storage.blobs == {}


class TestPayPerRead:
    def test_publish_preview_pay_read(
        self, client: TestClient, payments: PaymentStubGateway, ctx: ServiceContext
    ) -> None:
        item_id = upload(client)["itemId"]

        preview = client.get(f"/api/blobs/{item_id}/preview")
        assert preview.status_code == 200
        body = preview.json()
        assert body["title"] == "A"
        assert body["contentPreview"]
        assert "hello world" not in body["contentPreview"]
        assert body["priceTerms"]["amount"] == "0.01"

        unpaid = client.get(f"/api/blobs/{item_id}/content", params={"userAddress": READER})
        assert unpaid.status_code == 402
        challenge = unpaid.json()
        assert challenge["priceTerms"]["amount"] == "0.01"
        assert challenge["challenge"]["nonce"]
        assert challenge["paymentDetails"]["price"] == "0.01"
        assert challenge["paymentDetails"]["paymentAddress"] == "0xAuthor"
        assert challenge["accepts"][0]["maxAmountRequired"] == "10000"
        assert challenge["accepts"][0]["resource"].endswith(f"/api/blobs/{item_id}/content")
        assert "content" not in challenge

        grant = payments.approve_next(item_id, READER)
        paid = client.get(
            f"/api/blobs/{item_id}/content",
            params={"userAddress": READER},
            headers={"X-PAYMENT": "signed-payment"},
        )
        assert paid.status_code == 200
        content = paid.json()
        assert content["content"] == "hello world"
        assert content["title"] == "A"
        assert content["metadata"]["ownerAddress"] == "0xAuthor"
        assert content["metadata"]["originalFileSize"] == 11
        assert content["metadata"]["payment"]["grantId"] == grant
        assert payments.requests[-1].payment_header == "signed-payment"

        assert ctx.ledger.require(item_id).access_log[READER].grant_id == grant

        again = client.get(f"/api/blobs/{item_id}/content", params={"userAddress": READER})
        assert again.status_code == 402

    def test_missing_user_address_is_400(self, client: TestClient) -> None:
        item_id = upload(client)["itemId"]
        response = client.get(f"/api/blobs/{item_id}/content")
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "userAddress"

    def test_unknown_item_is_404(self, client: TestClient) -> None:
        response = client.get("/api/blobs/missing/content", params={"userAddress": READER})
        assert response.status_code == 404
        assert client.get("/api/blobs/missing").status_code == 404
        assert client.get("/api/blobs/missing/preview").status_code == 404

    def test_timeout_is_402(self, client: TestClient, payments: PaymentStubGateway) -> None:
        item_id = upload(client)["itemId"]
        payments.simulate_timeout = True
        response = client.get(
            f"/api/blobs/{item_id}/content",
            params={"userAddress": READER},
            headers={"X-PAYMENT": "p"},
        )
        assert response.status_code == 402
        assert response.json()["challenge"]["reason"] == "verification_timeout"

    def test_underpayment_is_402(self, client: TestClient, payments: PaymentStubGateway) -> None:
        item_id = upload(client)["itemId"]
        payments.approve_next(item_id, READER, amount=Decimal("0.001"))
        response = client.get(f"/api/blobs/{item_id}/content", params={"userAddress": READER})
        assert response.status_code == 402
        assert response.json()["challenge"]["reason"] == "insufficient_amount"


class TestListings:
    @pytest.fixture
    def ids(self, client: TestClient) -> dict[str, str]:
        return {
            "a": upload(client, title="Deep Sea", ownerAddress="0xA", tags=["ocean"])["itemId"],
            "b": upload(client, title="Kelp", ownerAddress="0xB", isPublic=False)["itemId"],
        }

    def test_list_all(self, client: TestClient, ids: dict[str, str]) -> None:
        assert {i["id"] for i in client.get("/api/blobs").json()} == set(ids.values())

    def test_previews(self, client: TestClient, ids: dict[str, str]) -> None:
        previews = client.get("/api/blobs/preview").json()
        assert {p["itemId"] for p in previews} == set(ids.values())
        assert all("content" not in p for p in previews)

    def test_search(self, client: TestClient, ids: dict[str, str]) -> None:
        assert [i["id"] for i in client.get("/api/blobs/search", params={"q": "OCEAN"}).json()] == [ids["a"]]
        assert client.get("/api/blobs/search").status_code == 400

    def test_by_owner(self, client: TestClient, ids: dict[str, str]) -> None:
        assert [i["id"] for i in client.get("/api/blobs/owner/0xB").json()] == [ids["b"]]

    def test_public(self, client: TestClient, ids: dict[str, str]) -> None:
        assert [i["id"] for i in client.get("/api/blobs/public").json()] == [ids["a"]]

    def test_by_status(self, client: TestClient, ids: dict[str, str]) -> None:
        assert len(client.get("/api/blobs/status/success").json()) == 2
        assert client.get("/api/blobs/status/failed").json() == []

    def test_ownership(self, client: TestClient, ids: dict[str, str]) -> None:
        owned = client.get("/api/blobs/ownership/owned", params={"address": "0xA"}).json()
        assert [i["id"] for i in owned] == [ids["a"]]
        assert client.get("/api/blobs/ownership/owned").status_code == 400
        assert len(client.get("/api/blobs/ownership/all").json()) == 2

    def test_get_item(self, client: TestClient, ids: dict[str, str]) -> None:
        item = client.get(f"/api/blobs/{ids['a']}").json()
        assert item["title"] == "Deep Sea"
        assert item["ownerAddress"] == "0xA"
        assert item["accessCount"] == 0


class TestDelete:
    def test_delete_flow(self, client: TestClient, blob_storage: InMemoryBlobStorage) -> None:
        item_id = upload(client)["itemId"]

        response = client.delete(f"/api/blobs/{item_id}")
        assert response.status_code == 200
        assert response.json()["success"] is True
        assert item_id not in blob_storage.blobs

        assert client.get(f"/api/blobs/{item_id}").status_code == 404
        assert client.get(f"/api/blobs/{item_id}/content", params={"userAddress": READER}).status_code == 404

        again = client.delete(f"/api/blobs/{item_id}")
        assert again.status_code == 404
        assert again.json()["success"] is False


class TestSystem:
    def test_stats(self, client: TestClient, payments: PaymentStubGateway) -> None:
        item_id = upload(client)["itemId"]
        payments.approve_next(item_id, READER)
        client.get(f"/api/blobs/{item_id}/content", params={"userAddress": READER})

        stats = client.get("/api/stats").json()
        assert stats["totalItems"] == 1
        assert stats["encryptedItems"] == 1
        assert stats["totalGrants"] == 1
        assert stats["statusCounts"] == {"success": 1}

    def test_health(self, client: TestClient) -> None:
        health = client.get("/api/health").json()
        assert health["status"] == "OK"
        assert health["storageBackend"] == "local"
        assert health["paymentBackend"] == "stub"
        assert health["encryptionKeyConfigured"] is True
        assert health["database"]["totalItems"] == 0
