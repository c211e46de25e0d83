"""Service-level tests against a throwaway in-memory database.

These drive the services directly (no HTTP) to pin down the
transactional behaviour of enrollment and course-progress recomputation.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.engine import Database
from lms.repos.progress_repo import UserProgressRepo
from lms.services import (
    catalog_service,
    enrollment_service,
    progress_service,
    users_service,
)
from lms.services.errors import ConflictError, NotEnrolledError, NotFoundError

T = TypeVar("T")


def run(scenario: Callable[[Database], Awaitable[T]]) -> T:
    async def _main() -> T:
        db = Database("sqlite+aiosqlite://")
        await db.create_schema()
        try:
            return await scenario(db)
        finally:
            await db.dispose()

    return asyncio.run(_main())


async def _seed(session: AsyncSession, lesson_count: int = 2):
    user = await users_service.register_user(
        session, email="learner@example.com", password="correct-horse"
    )
    course = await catalog_service.create_course(session, title="Botany", published=True)
    lessons = [
        await catalog_service.add_lesson(
            session, course.id, title=f"Lesson {i}", duration_seconds=600
        )
        for i in range(1, lesson_count + 1)
    ]
    return user, course, lessons


def test_enroll_starts_progress_at_zero() -> None:
    async def scenario(db: Database):
        async with db.session() as session:
            user, course, _ = await _seed(session)
            await enrollment_service.enroll(session, user_id=user.id, course_id=course.id)
        async with db.session() as session:
            return await UserProgressRepo(session).get(user.id, course.id)

    progress = run(scenario)
    assert progress is not None
    assert progress.progress_percentage == 0
    assert progress.completed_at is None


def test_duplicate_enrollment_conflicts() -> None:
    async def scenario(db: Database) -> None:
        async with db.session() as session:
            user, course, _ = await _seed(session)
            await enrollment_service.enroll(session, user_id=user.id, course_id=course.id)
            with pytest.raises(ConflictError):
                await enrollment_service.enroll(
                    session, user_id=user.id, course_id=course.id
                )

    run(scenario)


def test_draft_course_cannot_be_enrolled() -> None:
    async def scenario(db: Database) -> None:
        async with db.session() as session:
            user, _, _ = await _seed(session)
            draft = await catalog_service.create_course(session, title="Draft")
            with pytest.raises(NotFoundError):
                await enrollment_service.enroll(
                    session, user_id=user.id, course_id=draft.id
                )

    run(scenario)


def test_completion_recomputes_and_ratchets() -> None:
    async def scenario(db: Database):
        async with db.session() as session:
            user, course, lessons = await _seed(session)
            await enrollment_service.enroll(session, user_id=user.id, course_id=course.id)

        async with db.session() as session:
            first = await progress_service.record_lesson_progress(
                session, user_id=user.id, lesson_id=lessons[0].id, completed=True
            )
            again = await progress_service.record_lesson_progress(
                session, user_id=user.id, lesson_id=lessons[0].id, completed=False
            )
            last = await progress_service.record_lesson_progress(
                session,
                user_id=user.id,
                lesson_id=lessons[1].id,
                completed=True,
                completed_at=1_700_000_000,
            )
        return first, again, last

    first, again, last = run(scenario)
    assert first.newly_completed is True
    assert first.course_progress.progress_percentage == 50
    assert again.newly_completed is False
    assert again.lesson_progress.completed is True
    assert again.lesson_progress.completed_at == first.lesson_progress.completed_at
    assert last.course_progress.progress_percentage == 100
    assert last.course_progress.completed_at is not None
    assert last.lesson_progress.completed_at == 1_700_000_000


def test_progress_write_without_enrollment_is_refused() -> None:
    async def scenario(db: Database) -> None:
        async with db.session() as session:
            user, _, lessons = await _seed(session)
            with pytest.raises(NotEnrolledError):
                await progress_service.record_lesson_progress(
                    session, user_id=user.id, lesson_id=lessons[0].id, completed=True
                )

    run(scenario)


def test_recompute_for_course_without_lessons_is_zero() -> None:
    async def scenario(db: Database):
        async with db.session() as session:
            user, course, _ = await _seed(session, lesson_count=0)
            return await progress_service.recompute_course_progress(
                session, user_id=user.id, course_id=course.id
            )

    progress = run(scenario)
    assert progress.progress_percentage == 0
    assert progress.completed_at is None


def test_profile_stats_counts_completed_courses() -> None:
    async def scenario(db: Database):
        async with db.session() as session:
            user, course, lessons = await _seed(session, lesson_count=1)
            await enrollment_service.enroll(session, user_id=user.id, course_id=course.id)
            await progress_service.record_lesson_progress(
                session, user_id=user.id, lesson_id=lessons[0].id, completed=True
            )
            return await users_service.profile_stats(session, user.id)

    stats = run(scenario)
    assert stats.enrolled_courses == 1
    assert stats.completed_courses == 1
    assert stats.average_quiz_score is None
