"""
HTTP-level tests through the FastAPI app with fake collaborators.

Key tests:
1. /story/anchor: 400 without cid, merge across calls
2. /story/lookup/batch: total map, 400 over the bound
3. /story/register and /story/remix envelopes, 409 for an unanchored parent
4. /ipfs/upload multipart pinning
5. /check-ip validation and /health
"""
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from remixhub.config import Settings
from remixhub.database import Database
from remixhub.dependencies import get_anchor_writer
from remixhub.errors import StoreUnavailable
from remixhub.main import create_app
from remixhub.services.hashing import cid_hash

from conftest import FakeLedger, ORIGINAL_CID, REMIX_CID

IP_ID = "0x" + "a1" * 20


@pytest.fixture
def pinning():
    client = MagicMock()
    client.pin_file.return_value = REMIX_CID
    client.pin_json.return_value = ORIGINAL_CID
    client.fetch_json.return_value = {"title": "Poster"}
    return client


@pytest.fixture
def story_api():
    return MagicMock()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def client(pinning, story_api, sleeps):
    app = create_app(
        settings=Settings(database_url="sqlite://"),
        database=Database("sqlite://", poolclass=StaticPool),
        pinning=pinning,
        ledger=FakeLedger(),
        story_api=story_api,
        event_scanner=MagicMock(),
        sleep=sleeps.append,
    )
    with TestClient(app) as test_client:
        yield test_client


# =============================================================================
# ANCHOR + BATCH LOOKUP
# =============================================================================

class TestAnchorEndpoint:

    def test_missing_cid(self, client):
        response = client.post("/story/anchor", json={"ipId": "0x123"})

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["success"] is False
        assert detail["code"] == "validation_error"

    def test_partial_calls_merge(self, client):
        first = client.post("/story/anchor", json={"cid": "QmAbc", "cidHash": "0xdead"})
        assert first.status_code == 200
        assert first.json()["record"]["ipId"] is None

        second = client.post(
            "/story/anchor",
            json={"cid": "QmAbc", "ipId": "0x123", "anchorTxHash": "0xtx1"},
        )
        record = second.json()["record"]

        assert second.json()["success"] is True
        assert record["cid"] == "QmAbc"
        assert record["cidHash"] == "0xdead"
        assert record["ipId"] == "0x123"
        assert record["anchorTransactionHash"] == "0xtx1"
        assert record["anchorConfirmedAt"] is not None


class TestBatchLookupEndpoint:

    def test_total_map(self, client):
        client.post("/story/anchor", json={"cid": ORIGINAL_CID, "ipId": "0x1", "title": "Poster"})
        known = cid_hash(ORIGINAL_CID)
        unknown = cid_hash(REMIX_CID)

        response = client.post("/story/lookup/batch", json={"cidHashes": [known, known.upper().replace("0X", "0x"), unknown]})

        assert response.status_code == 200
        result = response.json()["map"]
        assert set(result) == {known, unknown}
        assert result[known] == {"cid": ORIGINAL_CID, "ipId": "0x1", "title": "Poster", "txHash": None}
        assert result[unknown] is None

    @pytest.mark.parametrize("body", [{}, {"cidHashes": []}, {"cidHashes": "0xabc"}])
    def test_malformed(self, client, body):
        assert client.post("/story/lookup/batch", json=body).status_code == 400

    def test_over_limit(self, client):
        hashes = [f"0x{i:064x}" for i in range(201)]
        response = client.post("/story/lookup/batch", json={"cidHashes": hashes})

        assert response.status_code == 400
        assert "200" in response.json()["detail"]["error"]


# =============================================================================
# FLOWS
# =============================================================================

class TestRegisterEndpoint:

    def test_register(self, client):
        response = client.post("/story/register", json={"cid": ORIGINAL_CID, "title": "Poster"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["cidHash"] == cid_hash(ORIGINAL_CID)
        assert body["explorer"].endswith(f"/ip/{body['ipId']}")
        assert body["warnings"] == []
        assert body["cacheConsistent"] is True

    def test_cache_failure_reported_not_raised(self, client):
        writer = MagicMock()
        writer.anchor.side_effect = StoreUnavailable("database is down")
        client.app.dependency_overrides[get_anchor_writer] = lambda: writer

        response = client.post("/story/register", json={"cid": ORIGINAL_CID})

        assert response.status_code == 200
        body = response.json()
        assert body["cacheConsistent"] is False
        assert body["warnings"][0]["stage"] == "register"

    def test_invalid_cid(self, client):
        response = client.post("/story/register", json={"cid": "nope"})
        assert response.status_code == 400


class TestRemixEndpoint:

    def test_parent_never_published(self, client, sleeps):
        response = client.post("/story/remix", json={"originalCid": ORIGINAL_CID, "remixCid": REMIX_CID})

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["reason"] == "never_published"
        assert detail["parentCid"] == ORIGINAL_CID
        assert detail["attempts"] == 5
        assert sleeps == [2.0, 2.0, 2.0, 2.0]

    def test_parent_not_confirmed(self, client):
        client.post("/story/anchor", json={"cid": ORIGINAL_CID, "title": "pending"})

        response = client.post("/story/remix", json={"originalCid": ORIGINAL_CID, "remixCid": REMIX_CID})

        assert response.status_code == 409
        assert response.json()["detail"]["reason"] == "not_confirmed"

    def test_remix_registered(self, client):
        client.post("/story/anchor", json={"cid": ORIGINAL_CID, "ipId": IP_ID, "anchorTxHash": "0xtx"})

        response = client.post("/story/remix", json={"originalCid": ORIGINAL_CID, "remixCid": REMIX_CID})

        assert response.status_code == 200
        body = response.json()
        assert body["parentIpId"] == IP_ID
        assert body["cid"] == REMIX_CID

        lineage = client.get(f"/designs/{REMIX_CID}/lineage").json()
        assert [node["cid"] for node in lineage["lineage"]] == [REMIX_CID, ORIGINAL_CID]

    def test_missing_fields(self, client):
        assert client.post("/story/remix", json={"originalCid": ORIGINAL_CID}).status_code == 400


class TestUploadEndpoint:

    def test_upload_with_file(self, client, pinning):
        response = client.post(
            "/ipfs/upload",
            data={"title": "Poster", "figmaUrl": "https://figma.com/file/1"},
            files={"file": ("poster.fig", b"fig-bytes", "application/octet-stream")},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["cid"] == ORIGINAL_CID
        assert body["fileCid"] == REMIX_CID
        assert body["cidHash"] == cid_hash(ORIGINAL_CID)
        assert body["metadata"]["figmaUrl"] == "https://figma.com/file/1"

        design = client.get(f"/designs/{ORIGINAL_CID}").json()
        assert design["record"]["title"] == "Poster"
        assert design["record"]["ipId"] is None


# =============================================================================
# MISC
# =============================================================================

class TestCheckIp:

    def test_missing(self, client):
        response = client.get("/check-ip")
        assert response.status_code == 400
        assert response.json()["exists"] is False

    def test_malformed(self, client):
        assert client.get("/check-ip", params={"ipId": "0x123"}).status_code == 400

    def test_exists(self, client, story_api):
        story_api.get_asset.return_value = {"ipId": IP_ID}
        body = client.get("/check-ip", params={"ipId": IP_ID}).json()
        assert body["exists"] is True

    def test_unknown(self, client, story_api):
        story_api.get_asset.return_value = None
        body = client.get("/check-ip", params={"ipId": IP_ID}).json()
        assert body["exists"] is False


class TestHealth:

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"

    def test_unknown_design(self, client):
        assert client.get(f"/designs/{ORIGINAL_CID}").status_code == 404
