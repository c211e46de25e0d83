from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import jwt
from argon2 import PasswordHasher
from fastapi.testclient import TestClient

from lms.services import token_service
from lms.services.auth_service import hash_password
from tests.conftest import auth, mint_token


def _signed(claims: dict) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": str(uuid4()),
        "iss": token_service.ISSUER,
        "aud": token_service.AUDIENCE,
        "exp": now + timedelta(minutes=5),
        "iat": now,
        "jti": str(uuid4()),
        **claims,
    }
    return jwt.encode(payload, token_service._private_key, algorithm="ES256")


def test_missing_token_is_401(client: TestClient) -> None:
    resp = client.get("/api/courses")
    assert resp.status_code == 401


def test_garbage_token_is_401(client: TestClient) -> None:
    resp = client.get("/api/courses", headers=auth("total-garbage"))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid token"


def test_expired_token_is_401(client: TestClient) -> None:
    past = datetime.now(UTC) - timedelta(minutes=30)
    token = _signed({"exp": past + timedelta(minutes=15), "iat": past})
    resp = client.get("/api/courses", headers=auth(token))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Token expired"


def test_wrong_audience_is_401(client: TestClient) -> None:
    token = _signed({"aud": "someone-else"})
    assert client.get("/api/courses", headers=auth(token)).status_code == 401


def test_non_uuid_subject_is_401(client: TestClient) -> None:
    token = _signed({"sub": "tee"})
    assert client.get("/api/courses", headers=auth(token)).status_code == 401


def test_valid_token_is_accepted(client: TestClient) -> None:
    resp = client.get("/api/courses", headers=auth(mint_token()))
    assert resp.status_code == 200
    assert resp.json() == []


def test_admin_routes_need_admin_role(client: TestClient) -> None:
    student = auth(mint_token(roles=["student"]))
    instructor = auth(mint_token(roles=["instructor"]))
    admin = auth(mint_token(roles=["admin"]))
    assert client.get("/api/admin/users", headers=student).status_code == 403
    assert client.get("/api/admin/users", headers=instructor).status_code == 403
    assert client.get("/api/admin/users", headers=admin).status_code == 200


def test_passwords_are_stored_as_argon2_hashes() -> None:
    stored = hash_password("correct-horse")
    assert stored.startswith("$argon2")
    assert PasswordHasher().verify(stored, "correct-horse")
