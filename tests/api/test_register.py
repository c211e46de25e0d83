"""POST /api/auth/register."""

from __future__ import annotations

from fastapi.testclient import TestClient

from tests.conftest import register_user


def test_register_returns_created_user(client: TestClient) -> None:
    resp = client.post(
        "/api/auth/register",
        json={
            "email": "  Ada@Example.com ",
            "password": "analytical-engine",
            "fullName": "Ada Lovelace",
        },
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["email"] == "ada@example.com"
    assert body["username"] == "ada"
    assert body["fullName"] == "Ada Lovelace"
    assert body["role"] == "student"
    assert "password" not in body
    assert "passwordHash" not in body


def test_register_uses_explicit_username(client: TestClient) -> None:
    user = register_user(client, email="grace@example.com", username="amazing-grace")
    assert user["username"] == "amazing-grace"


def test_duplicate_email_conflicts_without_creating_a_second_user(
    client: TestClient, admin_headers: dict[str, str]
) -> None:
    register_user(client, email="dup@example.com")

    resp = client.post(
        "/api/auth/register",
        json={"email": "DUP@example.com", "password": "another-password"},
    )
    assert resp.status_code == 409

    users = client.get("/api/admin/users", headers=admin_headers).json()
    assert [u["email"] for u in users].count("dup@example.com") == 1


def test_missing_required_field_is_400(client: TestClient) -> None:
    resp = client.post("/api/auth/register", json={"email": "x@example.com"})
    assert resp.status_code == 400
    assert any("password" in err["loc"] for err in resp.json()["detail"])


def test_short_password_is_400(client: TestClient) -> None:
    resp = client.post(
        "/api/auth/register", json={"email": "x@example.com", "password": "short"}
    )
    assert resp.status_code == 400


def test_invalid_email_is_400(client: TestClient) -> None:
    resp = client.post(
        "/api/auth/register", json={"email": "not-an-email", "password": "long-enough"}
    )
    assert resp.status_code == 400


def test_register_is_rate_limited(client: TestClient) -> None:
    statuses = [
        client.post(
            "/api/auth/register",
            json={"email": f"burst{i}@example.com", "password": "long-enough"},
        ).status_code
        for i in range(12)
    ]
    assert statuses[:10] == [201] * 10
    assert statuses[-1] == 429
