"""Lesson view and lesson-progress endpoints.

GET  /api/lessons/{lesson_id}           lesson page data
GET  /api/lessons/{lesson_id}/progress  the user's progress on the lesson
POST /api/lessons/{lesson_id}/progress  video player write; recomputes the
                                        course percentage on completion

The player posts every ten seconds while playing and once more on
pause/seek/end, so writes are rate limited per user with a large burst.
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import Field

from lms.api.access import acting_user, http_error
from lms.api.dependencies import DbSession, require_user
from lms.api.ratelimit import PROGRESS_WRITE_LIMIT, require_rate_limit
from lms.api.schemas import (
    AttemptOut,
    CamelModel,
    CourseProgressOut,
    LessonOut,
    LessonProgressOut,
    LessonRefOut,
    QuizSummaryOut,
    attempt_out,
    course_progress_out,
    lesson_out,
    lesson_progress_out,
    lesson_ref_out,
    quiz_summary_out,
)
from lms.models.principal import Principal
from lms.services import progress_service
from lms.services.errors import LmsError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/lessons", tags=["lessons"])


class ProgressIn(CamelModel):
    user_id: UUID | None = None
    watched_seconds: int = Field(ge=0)
    completed: bool
    completed_at: int | None = None
    duration_seconds: int | None = Field(default=None, gt=0)


class ProgressReadOut(CamelModel):
    progress: LessonProgressOut | None


class ProgressWriteOut(CamelModel):
    success: bool
    progress: LessonProgressOut
    course_progress: CourseProgressOut | None


class LessonCourseOut(CamelModel):
    id: UUID
    title: str


class LessonViewOut(CamelModel):
    lesson: LessonOut
    course: LessonCourseOut
    enrolled: bool
    completed: bool
    progress: LessonProgressOut | None
    quiz: QuizSummaryOut | None
    attempts: list[AttemptOut]
    previous_lesson: LessonRefOut | None
    next_lesson: LessonRefOut | None


@router.get("/{lesson_id}", response_model=LessonViewOut)
async def get_lesson(
    lesson_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
    session: DbSession,
    user_id: Annotated[UUID | None, Query(alias="userId")] = None,
) -> LessonViewOut:
    target = acting_user(principal, user_id)
    try:
        view = await progress_service.get_lesson_view(session, target, lesson_id)
    except LmsError as e:
        raise http_error(e) from None

    return LessonViewOut(
        lesson=lesson_out(view.lesson),
        course=LessonCourseOut(id=view.course.id, title=view.course.title),
        enrolled=view.enrolled,
        completed=view.completed,
        progress=lesson_progress_out(view.progress),
        quiz=quiz_summary_out(view.quiz),
        attempts=[attempt_out(a) for a in view.attempts],
        previous_lesson=lesson_ref_out(view.previous_lesson),
        next_lesson=lesson_ref_out(view.next_lesson),
    )


@router.get("/{lesson_id}/progress", response_model=ProgressReadOut)
async def get_progress(
    lesson_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
    session: DbSession,
    user_id: Annotated[UUID | None, Query(alias="userId")] = None,
) -> ProgressReadOut:
    target = acting_user(principal, user_id)
    try:
        progress = await progress_service.get_lesson_progress(session, target, lesson_id)
    except LmsError as e:
        raise http_error(e) from None
    return ProgressReadOut(progress=lesson_progress_out(progress))


@router.post(
    "/{lesson_id}/progress",
    response_model=ProgressWriteOut,
    dependencies=[Depends(require_rate_limit(PROGRESS_WRITE_LIMIT))],
)
async def record_progress(
    lesson_id: UUID,
    body: ProgressIn,
    principal: Annotated[Principal, Depends(require_user)],
    session: DbSession,
) -> ProgressWriteOut:
    target = acting_user(principal, body.user_id)
    try:
        recorded = await progress_service.record_lesson_progress(
            session,
            user_id=target,
            lesson_id=lesson_id,
            watched_seconds=body.watched_seconds,
            completed=body.completed,
            completed_at=body.completed_at,
            duration_seconds=body.duration_seconds,
        )
    except LmsError as e:
        raise http_error(e) from None

    return ProgressWriteOut(
        success=True,
        progress=lesson_progress_out(recorded.lesson_progress),
        course_progress=course_progress_out(recorded.course_progress),
    )
