"""Lesson completion and course-progress aggregation.

Every completion trigger (video player writes, quiz passes) goes through
record_lesson_progress, which upserts the LessonProgress row and then
recomputes the course-level UserProgress inside the caller's transaction.
The progress rows are read FOR UPDATE, so concurrent completions for the
same user serialize on PostgreSQL rather than overwrite each other.

Completion is a ratchet: a write with completed=false never clears a
lesson that is already completed, and the original completed_at is kept.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.metrics import COURSE_COMPLETIONS, LESSON_COMPLETIONS
from lms.models.course import Course, Lesson
from lms.models.progress import LessonProgress, UserProgress
from lms.models.quiz import Quiz, QuizAttempt
from lms.repos.course_repo import CourseRepo, LessonRepo
from lms.repos.enrollment_repo import EnrollmentRepo
from lms.repos.progress_repo import LessonProgressRepo, UserProgressRepo
from lms.repos.quiz_repo import QuizAttemptRepo, QuizRepo
from lms.services.errors import NotEnrolledError, NotFoundError
from lms.services.progress import (
    compute_course_progress,
    is_watch_complete,
    neighbours,
)

logger = logging.getLogger(__name__)


def _now() -> int:
    return int(time.time())


@dataclass(frozen=True, slots=True)
class RecordedProgress:
    lesson_progress: LessonProgress
    course_progress: UserProgress | None
    newly_completed: bool


@dataclass(frozen=True, slots=True)
class LessonView:
    lesson: Lesson
    course: Course
    enrolled: bool
    progress: LessonProgress | None
    quiz: Quiz | None
    attempts: list[QuizAttempt]
    previous_lesson: Lesson | None
    next_lesson: Lesson | None

    @property
    def completed(self) -> bool:
        if self.progress is not None and self.progress.completed:
            return True
        return any(a.passed for a in self.attempts)


async def _get_lesson(session: AsyncSession, lesson_id: UUID) -> Lesson:
    lesson = await LessonRepo(session).get(lesson_id)
    if lesson is None:
        raise NotFoundError("lesson not found")
    return lesson


async def get_lesson_progress(
    session: AsyncSession, user_id: UUID, lesson_id: UUID
) -> LessonProgress | None:
    await _get_lesson(session, lesson_id)
    return await LessonProgressRepo(session).get(user_id, lesson_id)


async def record_lesson_progress(
    session: AsyncSession,
    *,
    user_id: UUID,
    lesson_id: UUID,
    completed: bool,
    watched_seconds: int | None = None,
    completed_at: int | None = None,
    duration_seconds: int | None = None,
    source: str = "video",
    require_enrollment: bool = True,
) -> RecordedProgress:
    """Upsert the user's progress on a lesson.

    watched_seconds=None keeps the stored value.  When duration_seconds
    is given, watching past the completion threshold completes the lesson
    even if completed is false.  Recomputes the course percentage
    whenever the lesson ends up completed.
    """
    lesson = await _get_lesson(session, lesson_id)
    if require_enrollment:
        enrolled = await EnrollmentRepo(session).is_enrolled(user_id, lesson.course_id)
        if not enrolled:
            logger.warning(
                "Progress write without enrollment user=%s lesson=%s",
                user_id,
                lesson_id,
            )
            raise NotEnrolledError("not enrolled in this course")

    repo = LessonProgressRepo(session)
    current = await repo.get(user_id, lesson_id, for_update=True)
    if current is None:
        current = LessonProgress.new(user_id=user_id, lesson_id=lesson_id)

    watched = current.watched_seconds if watched_seconds is None else watched_seconds
    wants_completion = completed or (
        duration_seconds is not None and is_watch_complete(watched, duration_seconds)
    )

    newly_completed = wants_completion and not current.completed
    if not wants_completion and current.completed:
        logger.info(
            "Ignoring completion reset user=%s lesson=%s", user_id, lesson_id
        )

    updated = replace(
        current,
        watched_seconds=watched,
        completed=current.completed or wants_completion,
        completed_at=(
            (completed_at or _now()) if newly_completed else current.completed_at
        ),
    )
    await repo.save(updated)

    if newly_completed:
        LESSON_COMPLETIONS.labels(source=source).inc()
        logger.info(
            "Lesson completed user=%s lesson=%s source=%s", user_id, lesson_id, source
        )

    course_progress = None
    if updated.completed:
        course_progress = await recompute_course_progress(
            session, user_id=user_id, course_id=lesson.course_id
        )

    return RecordedProgress(
        lesson_progress=updated,
        course_progress=course_progress,
        newly_completed=newly_completed,
    )


async def recompute_course_progress(
    session: AsyncSession, *, user_id: UUID, course_id: UUID
) -> UserProgress:
    """Rebuild the user's course percentage from their lesson rows."""
    lessons = await LessonRepo(session).list_by_course(course_id)
    completed_ids = await LessonProgressRepo(session).completed_lesson_ids(
        user_id, [lesson.id for lesson in lessons]
    )
    percentage = compute_course_progress(lessons, completed_ids)

    repo = UserProgressRepo(session)
    now = _now()
    current = await repo.get(user_id, course_id, for_update=True)
    if current is None:
        current = UserProgress.new(user_id=user_id, course_id=course_id, now=now)

    if percentage == 100:
        completed_at = current.completed_at or now
        if current.completed_at is None:
            COURSE_COMPLETIONS.inc()
            logger.info("Course completed user=%s course=%s", user_id, course_id)
    else:
        completed_at = None

    updated = replace(
        current, progress_percentage=percentage, completed_at=completed_at
    )
    await repo.save(updated)
    logger.debug(
        "Recomputed progress user=%s course=%s completed=%d/%d pct=%d",
        user_id,
        course_id,
        len(completed_ids),
        len(lessons),
        percentage,
    )
    return updated


async def get_lesson_view(
    session: AsyncSession, user_id: UUID, lesson_id: UUID
) -> LessonView:
    lesson = await _get_lesson(session, lesson_id)
    course = await CourseRepo(session).get(lesson.course_id)
    if course is None:
        raise NotFoundError("course not found")

    siblings = await LessonRepo(session).list_by_course(lesson.course_id)
    previous, following = neighbours(siblings, lesson_id)

    quiz = await QuizRepo(session).get_by_lesson(lesson_id)
    attempts: list[QuizAttempt] = []
    if quiz is not None:
        attempts = await QuizAttemptRepo(session).list_for_user_quiz(user_id, quiz.id)

    return LessonView(
        lesson=lesson,
        course=course,
        enrolled=await EnrollmentRepo(session).is_enrolled(user_id, lesson.course_id),
        progress=await LessonProgressRepo(session).get(user_id, lesson_id),
        quiz=quiz,
        attempts=attempts,
        previous_lesson=previous,
        next_lesson=following,
    )
