"""Rate limiting tests.

Verifies the token bucket rate limiter behind the limited routes:
1. Requests within the bucket capacity succeed
2. Requests exceeding capacity get 429 with a Retry-After header
3. Buckets are per identity
4. Rate limit headers are present on limited responses
"""

from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient

from lms.services.rate_limiter import InMemoryRateLimiter, RateLimitConfig
from tests.conftest import (
    complete_lesson,
    create_course,
    enroll,
    login_as,
    register_user,
)


def test_429_includes_retry_after_header(client: TestClient) -> None:
    last_resp = None
    for i in range(12):
        last_resp = client.post(
            "/api/auth/register",
            json={"email": f"retry{i}@example.com", "password": "short"},
        )
    assert last_resp is not None
    assert last_resp.status_code == 429
    assert int(last_resp.headers["retry-after"]) > 0
    assert last_resp.headers["x-ratelimit-remaining"] == "0"


def test_progress_writes_report_remaining_budget(
    client: TestClient, student, admin_headers
) -> None:
    _, headers = student
    course, lessons = create_course(client, admin_headers, lesson_count=1)
    enroll(client, headers, course["id"])

    first = complete_lesson(client, headers, lessons[0]["id"])
    second = complete_lesson(client, headers, lessons[0]["id"])
    assert first.headers["x-ratelimit-limit"] == "120"
    assert int(second.headers["x-ratelimit-remaining"]) < int(
        first.headers["x-ratelimit-remaining"]
    )


def test_different_users_have_separate_buckets(
    client: TestClient, admin_headers
) -> None:
    """Each user gets their own token bucket."""
    course, lessons = create_course(client, admin_headers, lesson_count=1)
    a = login_as(register_user(client, email="a@example.com"))
    b = login_as(register_user(client, email="b@example.com"))
    enroll(client, a, course["id"])
    enroll(client, b, course["id"])

    for _ in range(3):
        complete_lesson(client, a, lessons[0]["id"])
    resp = complete_lesson(client, b, lessons[0]["id"])
    assert resp.headers["x-ratelimit-remaining"] == "119"


def test_in_memory_bucket_refuses_when_empty() -> None:
    limiter = InMemoryRateLimiter()
    config = RateLimitConfig(capacity=2, refill_rate=0.001)

    async def run() -> list[bool]:
        return [(await limiter.check("k", config)).allowed for _ in range(3)]

    assert asyncio.run(run()) == [True, True, False]


def test_in_memory_reset_refills_bucket() -> None:
    limiter = InMemoryRateLimiter()
    config = RateLimitConfig(capacity=1, refill_rate=0.001)

    async def run() -> tuple[bool, bool]:
        await limiter.check("k", config)
        blocked = (await limiter.check("k", config)).allowed
        await limiter.reset("k")
        return blocked, (await limiter.check("k", config)).allowed

    assert asyncio.run(run()) == (False, True)
