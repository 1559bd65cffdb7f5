"""
API tests: sync trigger contract, preflight, tables, logs and health.

The app's default engine points at the temp DB configured in conftest; the
source is swapped for an in-memory one per test.
"""
import pytest
from fastapi.testclient import TestClient

from tally_sync.etl import orchestrator
from tally_sync.etl.ordering import SYNC_ORDER
from tally_sync.main import app


@pytest.fixture(scope="module")
def client():
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c


@pytest.fixture
def source(monkeypatch, make_source):
    src = make_source(
        group_table=[
            {"id": "g1", "name": "Assets", "parent": None},
            {"id": "g2", "name": "Cash", "parent": "g1"},
        ]
    )
    monkeypatch.setattr(orchestrator, "_default_source", src)
    return src


class TestSyncEndpoint:
    def test_full_sync_default_body(self, client, source):
        r = client.post("/api/sync", json={})
        assert r.status_code == 200
        data = r.json()
        assert data["success"] is True
        assert [t["table"] for t in data["results"]] == SYNC_ORDER
        groups = next(t for t in data["results"] if t["table"] == "groups")
        assert groups["synced"] == 2
        assert groups["errorDetails"] == []
        assert data["totalRecords"] >= 2
        assert data["totalErrors"] == 0

    def test_empty_body_is_full_sync(self, client, source):
        r = client.post("/api/sync", content=b"")
        assert r.status_code == 200
        assert len(r.json()["results"]) == len(SYNC_ORDER)

    def test_sync_single_table(self, client, source):
        r = client.post("/api/sync", json={"action": "sync_table", "tableName": "groups"})
        assert r.status_code == 200
        data = r.json()
        assert [t["table"] for t in data["results"]] == ["groups"]
        assert data["totalRecords"] == 2

    def test_unknown_table_is_a_table_error(self, client, source):
        r = client.post("/api/sync", json={"action": "sync_table", "tableName": "nope"})
        assert r.status_code == 200
        data = r.json()
        assert data["success"] is False
        assert data["totalErrors"] == 1

    def test_table_errors_still_200(self, client, source):
        del source.tables["tally.ledger"]
        r = client.post("/api/sync", json={"action": "full_sync"})
        assert r.status_code == 200
        data = r.json()
        assert data["success"] is False
        ledgers = next(t for t in data["results"] if t["table"] == "ledgers")
        assert ledgers["errors"] == 1

    @pytest.mark.parametrize(
        "body",
        [
            b"not json",
            b'{"action": "drop_everything"}',
            b'{"batchSize": 0}',
            b'{"action": "sync_table"}',
        ],
    )
    def test_bad_requests_are_500(self, client, source, body):
        r = client.post("/api/sync", content=body, headers={"Content-Type": "application/json"})
        assert r.status_code == 500
        data = r.json()
        assert data["success"] is False
        assert data["results"] == []
        assert data["totalRecords"] == 0
        assert data["totalErrors"] == 1
        assert data["message"]

    def test_plain_options(self, client):
        r = client.options("/api/sync")
        assert r.status_code == 200
        assert r.content == b""

    def test_cors_preflight(self, client):
        r = client.options(
            "/api/sync",
            headers={
                "Origin": "http://dashboard.local",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "content-type",
            },
        )
        assert r.status_code == 200
        assert r.headers["access-control-allow-origin"] in ("*", "http://dashboard.local")
        assert r.content == b""

    def test_cors_on_response(self, client, source):
        r = client.post("/api/sync", json={}, headers={"Origin": "http://dashboard.local"})
        assert r.headers["access-control-allow-origin"] == "*"


class TestInfoEndpoints:
    def test_tables(self, client):
        r = client.get("/api/sync/tables")
        assert r.status_code == 200
        assert r.json() == SYNC_ORDER

    def test_logs(self, client, source):
        client.post("/api/sync", json={"action": "sync_table", "tableName": "groups"})
        r = client.get("/api/sync/logs?limit=5")
        assert r.status_code == 200
        logs = r.json()
        assert 1 <= len(logs) <= 5
        latest = logs[0]
        assert latest["action"] == "sync_table"
        assert latest["table_name"] == "groups"
        assert latest["results"][0]["table"] == "groups"

    def test_logs_limit_validated(self, client):
        assert client.get("/api/sync/logs?limit=0").status_code == 422

    def test_health(self, client):
        r = client.get("/api/health")
        assert r.status_code == 200
        data = r.json()
        assert data["status"] == "ok"
        assert data["db"] == "ok"
        assert data["version"] == "1.0.0"
