"""Tests for health endpoint and request tracing."""

from fastapi.testclient import TestClient


def test_health_ok(client: TestClient):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["service"] == "repairdesk-engine"


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-42"})
    assert response.headers["X-Request-ID"] == "req-42"


def test_request_id_is_generated(client: TestClient):
    response = client.get("/health")
    assert response.headers["X-Request-ID"]


def test_unknown_route_uses_error_envelope(client: TestClient):
    response = client.get("/nope")
    assert response.status_code == 404
    assert "error" in response.json()
