from __future__ import annotations

from fastapi.testclient import TestClient


def test_health_returns_ok(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["checks"]["database"] == "ok"
    # In tests, Redis is not configured; should report as such
    assert data["checks"]["redis"] == "not_configured"


def test_ready_returns_200(client: TestClient) -> None:
    resp = client.get("/ready")
    assert resp.status_code == 200


def test_health_needs_no_auth(client: TestClient) -> None:
    assert client.get("/health").status_code == 200
    assert client.get("/api/courses").status_code == 401
