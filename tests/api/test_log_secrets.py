"""Assert that passwords and bearer tokens never appear in log output."""

from __future__ import annotations

import logging

import pytest
from fastapi.testclient import TestClient

from tests.conftest import auth, mint_token

TEST_PASSWORD = "super-s3cret-p@ssw0rd!"


def test_registration_does_not_log_password(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.DEBUG):
        resp = client.post(
            "/api/auth/register",
            json={"email": "secrets-test@example.com", "password": TEST_PASSWORD},
        )
    assert resp.status_code == 201
    assert TEST_PASSWORD not in caplog.text


def test_rejected_registration_does_not_log_password(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.DEBUG):
        client.post(
            "/api/auth/register",
            json={"email": "not-an-email", "password": TEST_PASSWORD},
        )
    assert TEST_PASSWORD not in caplog.text


def test_bearer_token_is_not_logged(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    token = mint_token(roles=["student"])
    with caplog.at_level(logging.DEBUG):
        client.get("/api/courses", headers=auth(token))
        client.get("/api/courses", headers=auth(token + "tampered"))
    assert token not in caplog.text
