import pytest
from fastapi.testclient import TestClient

from conftest import CONTRACT_A, CONTRACT_B, WALLET, FakeAlchemy, FakeReservoir, alchemy_nft

from art_scout.api import create_app
from art_scout.errors import RegistryUnavailableError
from art_scout.storage import MemoryRegistryStore


class BrokenStore(MemoryRegistryStore):
    async def members(self):
        raise RegistryUnavailableError("redis down")


@pytest.fixture
def client(make_scout):
    alchemy = FakeAlchemy(
        {CONTRACT_A: [alchemy_nft(CONTRACT_A, 1, name="Dawn")]},
        wallets={WALLET: [[alchemy_nft(CONTRACT_B, 3)]]},
    )
    reservoir = FakeReservoir(prices={(CONTRACT_A, "1"): "0.4"})
    with TestClient(create_app(make_scout(alchemy, reservoir))) as test_client:
        yield test_client


def test_nfts_fallback_when_registry_is_empty(client):
    response = client.get("/api/nfts", params={"limit": 3})

    assert response.status_code == 200
    body = response.json()
    assert body["source"] == "fallback"
    assert len(body["items"]) == 3
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_nfts_live_after_adding_contract(client):
    client.post("/api/registry", json={"address": CONTRACT_A, "name": "Dawn Series"})

    body = client.get("/api/nfts").json()

    assert body["source"] == "live"
    assert body["items"][0]["artwork"]["name"] == "Dawn"
    assert body["items"][0]["price"]["amount"] == "0.4"
    assert "raw" not in body["items"][0]["artwork"]


def test_nfts_with_extra_contracts(client):
    body = client.get("/api/nfts", params={"contracts": f"{CONTRACT_A}, "}).json()
    assert body["source"] == "live"


def test_nfts_rejects_bad_input(client):
    assert client.get("/api/nfts", params={"limit": 0}).status_code == 400
    assert client.get("/api/nfts", params={"action": "bogus"}).status_code == 400

    response = client.get("/api/nfts", params={"contracts": "0x1234"})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_registry_round_trip(client):
    added = client.post("/api/registry", json={"address": CONTRACT_A, "name": "Alpha"}).json()
    assert added == {"success": True, "address": CONTRACT_A, "is_new": True}

    batch = client.post("/api/registry", json={"addresses": [CONTRACT_A, CONTRACT_B]}).json()
    assert batch["added"] == [CONTRACT_B]
    assert batch["existing"] == [CONTRACT_A]

    listing = client.get("/api/registry").json()
    assert listing["total"] == 2

    found = client.get("/api/registry/search", params={"q": "alpha"}).json()
    assert [entry["address"] for entry in found["contracts"]] == [CONTRACT_A]

    assert client.delete(f"/api/registry/{CONTRACT_A}").status_code == 200
    assert client.delete(f"/api/registry/{CONTRACT_A}").status_code == 404
    assert client.get("/api/registry").json()["total"] == 1


def test_registry_add_validation(client):
    assert client.post("/api/registry", json={"address": "0xabc"}).status_code == 400
    assert client.post("/api/registry", json={}).status_code == 400
    assert client.get("/api/registry/search", params={"q": ""}).status_code == 400


def test_registry_outage_is_503(make_scout):
    with TestClient(create_app(make_scout(store=BrokenStore()))) as client:
        response = client.get("/api/nfts")

    assert response.status_code == 503
    assert response.json() == {"success": False, "error": "Contract registry unavailable"}


def test_process_wallet(client):
    body = client.post("/api/process-wallet", json={"wallet_address": WALLET}).json()

    assert body["success"] is True
    assert body["method"] == "indexer"
    assert body["added"] == [CONTRACT_B]
    assert client.post("/api/process-wallet", json={"wallet_address": "nope"}).status_code == 400


def test_validate_address(client):
    body = client.get("/api/validate-address", params={"address": CONTRACT_A}).json()
    assert body["valid"] is True
    assert body["nft_count"] == 1

    assert client.get("/api/validate-address", params={"address": "0x1"}).status_code == 400


def test_platforms(client):
    names = [platform["name"] for platform in client.get("/api/platforms").json()["platforms"]]
    assert "Foundation" in names


def test_metadata(client):
    assert client.get("/api/metadata", params={"contract": CONTRACT_A, "token_id": "1"}).json()["name"] == "Dawn"
    assert client.get("/api/metadata", params={"contract": CONTRACT_A, "token_id": "2"}).status_code == 404
    assert client.get("/api/metadata", params={"contract": CONTRACT_A}).status_code == 400


def test_metadata_without_indexer_is_502(make_scout):
    with TestClient(create_app(make_scout())) as client:
        response = client.get("/api/metadata", params={"contract": CONTRACT_A, "token_id": "1"})
    assert response.status_code == 502


def test_stats_and_health(client):
    client.post("/api/registry", json={"address": CONTRACT_A})

    stats = client.get("/api/stats").json()
    assert stats["total_contracts"] == 1
    assert stats["contracts_added"] == 1

    health = client.get("/health").json()
    assert health["status"] == "healthy"
    assert health["registry"]["backend"] == "MemoryRegistryStore"
