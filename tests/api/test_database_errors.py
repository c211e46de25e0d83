"""Unclassified persistence failures surface as a generic 500."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from lms.repos.course_repo import CourseRepo
from lms.repos.progress_repo import UserProgressRepo
from tests.conftest import complete_lesson, create_course, enroll


def _database_down(*args, **kwargs):
    raise OperationalError("SELECT 1", {}, Exception("connection lost"))


async def _async_database_down(*args, **kwargs):
    _database_down()


def test_database_error_returns_generic_500(
    client: TestClient, student, monkeypatch: pytest.MonkeyPatch
) -> None:
    _, headers = student
    monkeypatch.setattr(CourseRepo, "list_courses", _async_database_down)

    resp = client.get("/api/courses", headers=headers)
    assert resp.status_code == 500
    assert resp.json() == {"detail": "Internal server error"}


def test_failed_recompute_rolls_back_lesson_write(
    client: TestClient, student, admin_headers, monkeypatch: pytest.MonkeyPatch
) -> None:
    _, headers = student
    course, lessons = create_course(client, admin_headers, lesson_count=2)
    enroll(client, headers, course["id"])

    # The lesson row is written first; the course-progress write then fails.
    monkeypatch.setattr(UserProgressRepo, "save", _async_database_down)
    resp = complete_lesson(client, headers, lessons[0]["id"])
    assert resp.status_code == 500
    assert resp.json() == {"detail": "Internal server error"}

    monkeypatch.undo()
    progress = client.get(f"/api/lessons/{lessons[0]['id']}/progress", headers=headers)
    assert progress.json() == {"progress": None}
    detail = client.get(f"/api/courses/{course['id']}", headers=headers).json()
    assert detail["progressPercentage"] == 0
    assert [lesson["completed"] for lesson in detail["lessons"]] == [False, False]
