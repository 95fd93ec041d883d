import pytest

import app as app_module
from conftest import addr
from holder_snapshot.errors import ExhaustedStrategiesError
from holder_snapshot.orchestrator import SnapshotResult
from holder_snapshot.registry import HolderRegistry


def fake_result():
    registry = HolderRegistry()
    registry.add(addr(1), 1)
    registry.add(addr(1), 2)
    registry.add(addr(2), 3)
    return SnapshotResult(name="Fake Apes", symbol="FAPE", holders=registry, strategies=["direct queries"])


@pytest.fixture
def client(monkeypatch):
    requested = []

    async def fake_snapshot(address, config=None, report=None):
        requested.append(address)
        if address == addr(0xDEAD):
            raise ExhaustedStrategiesError("Failed to retrieve token holders.")
        return fake_result()

    monkeypatch.setattr(app_module, "snapshot_contract", fake_snapshot)
    app_module.app.config["TESTING"] = True
    with app_module.app.test_client() as client:
        client.requested = requested
        yield client


def test_health(client):
    assert client.get("/health").get_json() == {"status": "ok"}


def test_snapshot_returns_holders(client):
    resp = client.post("/api/snapshot", data={"contract": addr(0x721).lower()})

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["error"] is None
    assert body["totalHolders"] == 2
    assert body["totalTokens"] == 3
    assert body["strategies"] == ["direct queries"]
    assert body["holders"][0] == {"address": addr(1), "tokenCount": 2, "tokenIds": ["1", "2"]}
    assert client.requested == [addr(0x721)]


def test_snapshot_rejects_bad_address(client):
    resp = client.post("/api/snapshot", data={"contract": "not-an-address"})

    assert resp.status_code == 400
    assert resp.get_json()["holders"] == []
    assert client.requested == []


def test_snapshot_reports_exhaustion(client):
    resp = client.post("/api/snapshot", data={"contract": addr(0xDEAD)})

    assert resp.status_code == 502
    assert resp.get_json()["error"] == "Failed to retrieve token holders."


def test_csv_download(client):
    resp = client.get(f"/api/snapshot/{addr(0x721)}.csv?detailed=1")

    assert resp.status_code == 200
    assert resp.mimetype == "text/csv"
    assert "FAPE_holders_detailed_" in resp.headers["Content-Disposition"]
    lines = resp.get_data(as_text=True).splitlines()
    assert lines[0] == "Wallet Address,Token Count,Token IDs"
    assert lines[1] == f'{addr(1)},2,"1, 2"'


def test_csv_summary_by_default(client):
    resp = client.get(f"/api/snapshot/{addr(0x721)}.csv")
    assert resp.get_data(as_text=True).splitlines() == [
        "Wallet Address,Token Count",
        f"{addr(1)},2",
        f"{addr(2)},1",
    ]
