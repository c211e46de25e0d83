from __future__ import annotations

from fastapi.testclient import TestClient

# ---- 404: undefined routes ----


def test_undefined_route_returns_404(client: TestClient) -> None:
    resp = client.get("/nonexistent")
    assert resp.status_code == 404
    assert resp.json() == {"detail": "Not Found"}


def test_unprefixed_api_route_returns_404(client: TestClient) -> None:
    resp = client.get("/courses")
    assert resp.status_code == 404


# ---- 405: wrong HTTP method on existing routes ----


def test_delete_course_returns_405(client: TestClient, admin_headers) -> None:
    resp = client.delete(
        "/api/courses/00000000-0000-0000-0000-000000000000", headers=admin_headers
    )
    assert resp.status_code == 405


def test_put_health_returns_405(client: TestClient) -> None:
    resp = client.put("/health", json={"status": "bad"})
    assert resp.status_code == 405


# ---- 400: malformed input ----


def test_malformed_path_id_returns_400(client: TestClient, admin_headers) -> None:
    resp = client.get("/api/courses/not-a-uuid", headers=admin_headers)
    assert resp.status_code == 400
    assert "detail" in resp.json()


def test_malformed_json_returns_400(client: TestClient) -> None:
    resp = client.post(
        "/api/auth/register",
        content="{not json",
        headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 400
