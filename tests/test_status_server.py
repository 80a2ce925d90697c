"""Status server tests: GET / payload, 500 on query failure, OPTIONS preflight, 404, CORS headers."""

import re
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from mint_service.connector.base import RemoteEndpoint
from mint_service.core.errors import RemoteQueryError
from mint_service.engine.state import StatusState
from mint_service.status_server.app import CORS_HEADERS, create_app, iso_utc

from fakes import CONTRACT, FakeEndpoint

ISO_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


@pytest.fixture
def state() -> StatusState:
    return StatusState(started_at=datetime.now(timezone.utc) - timedelta(minutes=10))


@pytest.fixture
def client(state: StatusState) -> TestClient:
    return TestClient(create_app(FakeEndpoint(), state, CONTRACT))


def _assert_cors(response) -> None:
    for key, value in CORS_HEADERS.items():
        assert response.headers.get(key) == value


class TestGetStatus:
    def test_initial_status(self, client: TestClient, state: StatusState):
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("application/json")
        body = resp.json()
        assert list(body) == [
            "status",
            "timestamp",
            "contract",
            "holdersCount",
            "lastMintTime",
            "timeSinceLastMint",
            "totalMints",
        ]
        assert body["status"] == "ok"
        assert body["contract"] == CONTRACT
        assert body["holdersCount"] == "2"
        assert body["totalMints"] == 0
        assert body["lastMintTime"] == iso_utc(state.started_at)
        assert ISO_RE.match(body["timestamp"])
        assert re.match(r"^\d+ seconds$", body["timeSinceLastMint"])
        _assert_cors(resp)

    def test_reflects_recorded_mints(self, client: TestClient, state: StatusState):
        mint_time = datetime.now(timezone.utc) - timedelta(seconds=125)
        state.record_success(mint_time)
        body = client.get("/").json()
        assert body["totalMints"] == 1
        assert body["lastMintTime"] == iso_utc(mint_time)
        seconds = int(body["timeSinceLastMint"].split()[0])
        assert 125 <= seconds < 130

    def test_request_does_not_mutate_state(self, client: TestClient, state: StatusState):
        before = state.snapshot()
        client.get("/")
        client.get("/")
        assert state.snapshot() == before

    def test_holder_query_failure_returns_500(self, state: StatusState):
        endpoint = AsyncMock(spec=RemoteEndpoint)
        endpoint.holder_count.side_effect = RemoteQueryError("getHoldersCount() failed: connection refused")
        client = TestClient(create_app(endpoint, state, CONTRACT))
        resp = client.get("/")
        assert resp.status_code == 500
        body = resp.json()
        assert body["status"] == "error"
        assert "connection refused" in body["message"]
        assert ISO_RE.match(body["timestamp"])
        _assert_cors(resp)


class TestRouting:
    @pytest.mark.parametrize("path", ["/", "/anything", "/deep/path?x=1"])
    def test_options_is_204_without_body(self, client: TestClient, path: str):
        resp = client.options(path)
        assert resp.status_code == 204
        assert resp.content == b""
        _assert_cors(resp)

    @pytest.mark.parametrize("path", ["/status", "/health", "/docs", "/openapi.json"])
    def test_unknown_path_is_404(self, client: TestClient, path: str):
        resp = client.get(path)
        assert resp.status_code == 404
        assert resp.json() == {"status": "error", "message": "Not found"}
        _assert_cors(resp)

    @pytest.mark.parametrize("method", ["POST", "PUT", "DELETE", "PATCH"])
    def test_other_methods_on_root_are_404(self, client: TestClient, method: str):
        resp = client.request(method, "/")
        assert resp.status_code == 404
        assert resp.json() == {"status": "error", "message": "Not found"}


def test_iso_utc_format():
    dt = datetime(2024, 5, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)
    assert iso_utc(dt) == "2024-05-01T12:00:00.123Z"
    other_tz = dt.astimezone(timezone(timedelta(hours=2)))
    assert iso_utc(other_tz) == "2024-05-01T12:00:00.123Z"
