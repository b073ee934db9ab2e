"""
Tests for the HTTP API.
"""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from conftest import ACCOUNT_2, OTHER_ROOT, FakeProofStore
from reward_verifier.api.v1.endpoints.roots import get_proof_store
from reward_verifier.crypto.merkle import Leaf
from reward_verifier.main import app


@pytest.fixture
def fake_store() -> FakeProofStore:
    return FakeProofStore()


@pytest.fixture
def client(fake_store: FakeProofStore) -> Iterator[TestClient]:
    app.dependency_overrides[get_proof_store] = lambda: fake_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def publish_into(store: FakeProofStore, leaves: list[Leaf]) -> str:
    published, root = FakeProofStore.for_leaves(leaves)
    store.leaves_text = published.leaves_text
    store.records = published.records
    return root


class TestHealthEndpoints:
    """Tests for health and liveness endpoints."""

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_live(self, client: TestClient) -> None:
        response = client.get("/live")

        assert response.status_code == 200
        assert response.text == "alive"


class TestVerifyRoot:
    """Tests for POST /api/v1/roots/verify."""

    def test_valid_root(
        self, client: TestClient, fake_store: FakeProofStore, two_leaves: list[Leaf]
    ) -> None:
        root = publish_into(fake_store, two_leaves)

        response = client.post("/api/v1/roots/verify", json={"root": root[2:].upper()})

        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is True
        assert data["root"] == root
        assert data["leaf_sum"] == "300"
        assert data["leaf_count"] == 2
        assert data["total_claimable"].endswith("ANVL")
        assert data["not_found"] == []

    def test_invalid_root_is_not_an_error(
        self, client: TestClient, fake_store: FakeProofStore, two_leaves: list[Leaf]
    ) -> None:
        root = publish_into(fake_store, two_leaves)
        del fake_store.records[ACCOUNT_2]

        response = client.post("/api/v1/roots/verify", json={"root": root})

        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is False
        assert data["not_found"][0]["account"] == ACCOUNT_2
        assert data["not_found"][0]["amount"] == "200"

    def test_leaf_set_unavailable(self, client: TestClient, fake_store: FakeProofStore) -> None:
        fake_store.leaves_status = 404

        response = client.post("/api/v1/roots/verify", json={"root": OTHER_ROOT})

        assert response.status_code == 502
        detail = response.json()["detail"]
        assert detail["root"] == OTHER_ROOT
        assert detail["status_code"] == 404

    @pytest.mark.parametrize("root", ["0x1234", "zz" * 32, ""])
    def test_malformed_root(self, client: TestClient, root: str) -> None:
        response = client.post("/api/v1/roots/verify", json={"root": root})

        assert response.status_code == 422
