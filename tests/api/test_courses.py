"""Catalog reads, course authoring and enrollment."""

from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient

from tests.conftest import (
    complete_lesson,
    create_course,
    enroll,
    login_as,
    register_user,
)


def test_catalog_lists_published_courses_with_instructor_and_tags(
    client: TestClient, student, admin_headers: dict[str, str]
) -> None:
    _, headers = student
    instructor = register_user(client, email="prof@example.com", fullName="Prof Plum")
    create_course(
        client,
        admin_headers,
        title="Botany",
        instructorId=instructor["id"],
        tags=["science", "plants", "science"],
        difficultyLevel="beginner",
    )
    create_course(client, admin_headers, title="Draft", published=False)

    resp = client.get("/api/courses", headers=headers)
    assert resp.status_code == 200
    courses = resp.json()
    assert [c["title"] for c in courses] == ["Botany"]
    assert courses[0]["instructor"]["name"] == "Prof Plum"
    assert courses[0]["tags"] == ["plants", "science"]
    assert courses[0]["difficultyLevel"] == "beginner"


def test_students_cannot_list_drafts(
    client: TestClient, student, admin_headers: dict[str, str]
) -> None:
    _, headers = student
    create_course(client, admin_headers, title="Draft", published=False)
    resp = client.get("/api/courses", params={"publishedOnly": "false"}, headers=headers)
    assert resp.json() == []

    resp = client.get(
        "/api/courses", params={"publishedOnly": "false"}, headers=admin_headers
    )
    assert [c["title"] for c in resp.json()] == ["Draft"]


def test_only_authors_can_create_courses(client: TestClient, student) -> None:
    _, headers = student
    resp = client.post("/api/courses", json={"title": "Mine"}, headers=headers)
    assert resp.status_code == 403


def test_instructor_becomes_instructor_of_own_course(client: TestClient) -> None:
    instructor = register_user(client, email="prof@example.com")
    headers = login_as(instructor, roles=["instructor"])
    course, _ = create_course(client, headers, title="Pottery")
    assert course["instructor"]["id"] == instructor["id"]
    assert course["instructor"]["name"] == "prof"


def test_invalid_difficulty_is_rejected(
    client: TestClient, admin_headers: dict[str, str]
) -> None:
    resp = client.post(
        "/api/courses",
        json={"title": "X", "difficultyLevel": "impossible"},
        headers=admin_headers,
    )
    assert resp.status_code == 400


def test_patch_publishes_and_retags(client: TestClient, admin_headers: dict[str, str]) -> None:
    course, _ = create_course(client, admin_headers, published=False, tags=["old"])
    resp = client.patch(
        f"/api/courses/{course['id']}",
        json={"published": True, "tags": ["new"], "durationMinutes": 45},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["published"] is True
    assert body["tags"] == ["new"]
    assert body["durationMinutes"] == 45
    assert body["title"] == course["title"]


def test_patch_unknown_course_is_404(client: TestClient, admin_headers: dict[str, str]) -> None:
    resp = client.patch(
        f"/api/courses/{uuid4()}", json={"published": True}, headers=admin_headers
    )
    assert resp.status_code == 404


def test_lessons_are_appended_in_position_order(
    client: TestClient, admin_headers: dict[str, str]
) -> None:
    _, lessons = create_course(client, admin_headers, lesson_count=3)
    assert [l["position"] for l in lessons] == [1, 2, 3]


def test_enroll_creates_zero_percent_progress(
    client: TestClient, student, admin_headers: dict[str, str]
) -> None:
    user, headers = student
    course, _ = create_course(client, admin_headers, lesson_count=2)

    enrollment = enroll(client, headers, course["id"])
    assert enrollment["userId"] == user["id"]
    assert enrollment["courseId"] == course["id"]

    detail = client.get(f"/api/courses/{course['id']}", headers=headers).json()
    assert detail["enrolled"] is True
    assert detail["progressPercentage"] == 0
    assert [l["completed"] for l in detail["lessons"]] == [False, False]


def test_enroll_twice_conflicts(
    client: TestClient, student, admin_headers: dict[str, str]
) -> None:
    _, headers = student
    course, _ = create_course(client, admin_headers)
    enroll(client, headers, course["id"])
    resp = client.post(f"/api/courses/{course['id']}/enroll", headers=headers)
    assert resp.status_code == 409


def test_cannot_enroll_in_draft_or_missing_course(
    client: TestClient, student, admin_headers: dict[str, str]
) -> None:
    _, headers = student
    draft, _ = create_course(client, admin_headers, published=False)
    assert client.post(f"/api/courses/{draft['id']}/enroll", headers=headers).status_code == 404
    assert client.post(f"/api/courses/{uuid4()}/enroll", headers=headers).status_code == 404


def test_draft_detail_hidden_from_students(
    client: TestClient, student, admin_headers: dict[str, str]
) -> None:
    _, headers = student
    draft, _ = create_course(client, admin_headers, published=False)
    assert client.get(f"/api/courses/{draft['id']}", headers=headers).status_code == 404
    assert client.get(f"/api/courses/{draft['id']}", headers=admin_headers).status_code == 200


def test_catalog_partitions_enrolled_and_available(
    client: TestClient, student, admin_headers: dict[str, str]
) -> None:
    _, headers = student
    taken, lessons = create_course(client, admin_headers, title="Taken", lesson_count=4)
    done, done_lessons = create_course(client, admin_headers, title="Done", lesson_count=1)
    create_course(client, admin_headers, title="Open")
    create_course(client, admin_headers, title="Hidden", published=False)

    enroll(client, headers, taken["id"])
    enroll(client, headers, done["id"])
    complete_lesson(client, headers, lessons[0]["id"])
    complete_lesson(client, headers, done_lessons[0]["id"])

    resp = client.get("/api/catalog", headers=headers)
    assert resp.status_code == 200
    body = resp.json()
    progress = {e["course"]["title"]: e["progressPercentage"] for e in body["enrolled"]}
    assert progress == {"Taken": 25, "Done": 100}
    assert [c["title"] for c in body["available"]] == ["Open"]
    assert body["completedCount"] == 1


def test_catalog_for_another_user_requires_admin(
    client: TestClient, student, admin_headers: dict[str, str]
) -> None:
    user, _ = student
    other = register_user(client, email="other@example.com")
    resp = client.get(
        "/api/catalog", params={"userId": user["id"]}, headers=login_as(other)
    )
    assert resp.status_code == 403

    resp = client.get("/api/catalog", params={"userId": user["id"]}, headers=admin_headers)
    assert resp.status_code == 200
