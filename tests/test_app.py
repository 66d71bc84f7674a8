"""Tests for the HTTP surface wrapping the orchestrator."""

from __future__ import annotations

import httpx
from starlette.testclient import TestClient

from fin_gateway.config.settings import Settings
from fin_gateway.main import create_app


def _settings() -> Settings:
    return Settings(_env_file=None, fmp_api_key="k")


def _client(handler) -> TestClient:
    return TestClient(create_app(_settings(), transport=httpx.MockTransport(handler)))


def test_health_check() -> None:
    with _client(lambda request: httpx.Response(500)) as client:
        response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "fin-gateway", "version": "1.0.0"}


def test_prefix_is_stripped_before_calling_primary() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    with _client(handler) as client:
        response = client.get("/synth/quote/AAPL", params=[("limit", "1"), ("limit", "5")])

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")
    assert response.json() == {"ok": True}
    assert seen[0].url.path == "/quote/AAPL"
    assert dict(seen[0].url.params) == {"limit": "5"}


def test_fallback_response_is_reshaped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.synthfinance.com":
            return httpx.Response(404, json={"error": "not found"})
        return httpx.Response(200, json=[{"symbol": "AAPL", "companyName": "Apple Inc."}])

    with _client(handler) as client:
        response = client.get("/synth/tickers/AAPL")

    assert response.status_code == 200
    assert response.json() == {"symbol": "AAPL", "type": "profile", "data": {"ticker": "AAPL", "name": "Apple Inc."}}


def test_double_failure_returns_503_json() -> None:
    with _client(lambda request: httpx.Response(500, text="down")) as client:
        response = client.post("/synth/search?q=x", content=b'{"q": "x"}')

    assert response.status_code == 503
    assert response.headers["content-type"].startswith("application/json")
    assert response.json()["endpoint"] == "/search"
