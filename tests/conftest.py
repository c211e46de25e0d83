from __future__ import annotations

import os

# Must be set before lms.main is imported: settings are read at import.
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ.pop("REDIS_URL", None)

from collections.abc import Iterator  # noqa: E402
from uuid import uuid4  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from lms.main import app  # noqa: E402
from lms.services import token_service  # noqa: E402


@pytest.fixture
def client() -> Iterator[TestClient]:
    """A client bound to a fresh in-memory database.

    Entering the TestClient runs the lifespan, which builds a new
    Database (and a new rate limiter) for every test.
    """
    with TestClient(app) as c:
        yield c


def mint_token(
    sub: str | None = None,
    roles: list[str] | None = None,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=sub or str(uuid4()), roles=roles)


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return auth(mint_token(roles=["admin"]))


# ---------------------------------------------------------------------------
# Seeding helpers (all go through the public API)
# ---------------------------------------------------------------------------


def register_user(
    client: TestClient,
    email: str = "learner@example.com",
    password: str = "correct-horse",
    **extra: str,
) -> dict:
    resp = client.post(
        "/api/auth/register", json={"email": email, "password": password, **extra}
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def login_as(user: dict, roles: list[str] | None = None) -> dict[str, str]:
    """Bearer headers for a registered user (as the session issuer would mint)."""
    return auth(mint_token(sub=user["id"], roles=roles or [user["role"]]))


def create_course(
    client: TestClient,
    headers: dict[str, str],
    *,
    title: str = "Intro to Testing",
    published: bool = True,
    lesson_count: int = 0,
    lesson_duration: int | None = 600,
    **fields,
) -> tuple[dict, list[dict]]:
    resp = client.post(
        "/api/courses",
        json={"title": title, "published": published, **fields},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    course = resp.json()

    lessons = []
    for i in range(1, lesson_count + 1):
        resp = client.post(
            f"/api/courses/{course['id']}/lessons",
            json={"title": f"Lesson {i}", "durationSeconds": lesson_duration},
            headers=headers,
        )
        assert resp.status_code == 201, resp.text
        lessons.append(resp.json())
    return course, lessons


def enroll(client: TestClient, headers: dict[str, str], course_id: str) -> dict:
    resp = client.post(f"/api/courses/{course_id}/enroll", headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def complete_lesson(client: TestClient, headers: dict[str, str], lesson_id: str):
    return client.post(
        f"/api/lessons/{lesson_id}/progress",
        json={"watchedSeconds": 600, "completed": True},
        headers=headers,
    )


def create_quiz(
    client: TestClient,
    headers: dict[str, str],
    lesson_id: str,
    questions: list[dict],
    passing_score: int | None = None,
) -> dict:
    body: dict = {"title": "Checkpoint", "questions": questions}
    if passing_score is not None:
        body["passingScore"] = passing_score
    resp = client.post(f"/api/lessons/{lesson_id}/quiz", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.fixture
def student(client: TestClient) -> tuple[dict, dict[str, str]]:
    """A registered student and their bearer headers."""
    user = register_user(client)
    return user, login_as(user)
