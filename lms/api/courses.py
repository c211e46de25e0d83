"""Catalog, course authoring and enrollment endpoints.

GET   /api/courses                      catalog reader
POST  /api/courses                      create (admin/instructor)
GET   /api/courses/{course_id}          detail with the caller's overlay
PATCH /api/courses/{course_id}          edit, publish, retag (admin/instructor)
POST  /api/courses/{course_id}/lessons  add a lesson (admin/instructor)
POST  /api/courses/{course_id}/enroll   enroll the caller
GET   /api/catalog                      enrolled/available partition
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field

from lms.api.access import acting_user, http_error
from lms.api.dependencies import AUTHOR_ROLES, DbSession, require_any_role, require_user
from lms.api.schemas import (
    CamelModel,
    CourseOut,
    LessonOut,
    course_out,
    lesson_out,
)
from lms.models.principal import Principal
from lms.services import catalog_service, enrollment_service
from lms.services.errors import LmsError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["courses"])


class CourseIn(CamelModel):
    title: str
    description: str | None = None
    image_url: str | None = None
    difficulty_level: str | None = None
    duration_minutes: int = Field(default=0, ge=0)
    published: bool = False
    instructor_id: UUID | None = None
    tags: list[str] = Field(default_factory=list)


class CoursePatchIn(CamelModel):
    title: str | None = None
    description: str | None = None
    image_url: str | None = None
    difficulty_level: str | None = None
    duration_minutes: int | None = Field(default=None, ge=0)
    published: bool | None = None
    instructor_id: UUID | None = None
    tags: list[str] | None = None


class LessonIn(CamelModel):
    title: str
    description: str | None = None
    video_url: str | None = None
    duration_seconds: int | None = Field(default=None, ge=0)
    position: int | None = Field(default=None, ge=1)


class CourseLessonOut(LessonOut):
    completed: bool


class CourseDetailOut(CamelModel):
    course: CourseOut
    lessons: list[CourseLessonOut]
    enrolled: bool
    progress_percentage: int


class EnrollmentOut(CamelModel):
    id: UUID
    user_id: UUID
    course_id: UUID
    enrolled_at: int


class EnrolledCourseOut(CamelModel):
    course: CourseOut
    progress_percentage: int
    enrolled_at: int


class CatalogOut(CamelModel):
    enrolled: list[EnrolledCourseOut]
    available: list[CourseOut]
    completed_count: int


@router.get("/courses", response_model=list[CourseOut])
async def list_courses(
    principal: Annotated[Principal, Depends(require_user)],
    session: DbSession,
    published_only: Annotated[bool, Query(alias="publishedOnly")] = True,
) -> list[CourseOut]:
    # Drafts are only visible to admins.
    if not principal.is_admin():
        published_only = True
    courses = await catalog_service.list_courses(session, published_only=published_only)
    return [course_out(c) for c in courses]


@router.post("/courses", response_model=CourseOut, status_code=status.HTTP_201_CREATED)
async def create_course(
    body: CourseIn,
    principal: Annotated[Principal, Depends(require_any_role(AUTHOR_ROLES))],
    session: DbSession,
) -> CourseOut:
    instructor_id = body.instructor_id
    if instructor_id is None and principal.has_role("instructor"):
        instructor_id = principal.user_uuid
    try:
        course = await catalog_service.create_course(
            session,
            title=body.title,
            description=body.description,
            image_url=body.image_url,
            difficulty_level=body.difficulty_level,
            duration_minutes=body.duration_minutes,
            published=body.published,
            instructor_id=instructor_id,
            tags=body.tags,
        )
    except LmsError as e:
        raise http_error(e) from None
    return course_out(course)


@router.get("/courses/{course_id}", response_model=CourseDetailOut)
async def get_course(
    course_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
    session: DbSession,
) -> CourseDetailOut:
    try:
        detail = await catalog_service.get_course_detail(
            session,
            course_id,
            principal.user_uuid,
            include_unpublished=principal.has_any_role(AUTHOR_ROLES),
        )
    except LmsError as e:
        raise http_error(e) from None

    return CourseDetailOut(
        course=course_out(detail.course),
        lessons=[
            CourseLessonOut(
                **lesson_out(lesson).model_dump(),
                completed=lesson.id in detail.completed_lesson_ids,
            )
            for lesson in detail.lessons
        ],
        enrolled=detail.enrolled,
        progress_percentage=detail.progress_percentage,
    )


@router.patch("/courses/{course_id}", response_model=CourseOut)
async def update_course(
    course_id: UUID,
    body: CoursePatchIn,
    _principal: Annotated[Principal, Depends(require_any_role(AUTHOR_ROLES))],
    session: DbSession,
) -> CourseOut:
    changes = body.model_dump(exclude_unset=True, exclude={"tags"})
    try:
        course = await catalog_service.update_course(
            session, course_id, changes, tags=body.tags
        )
    except LmsError as e:
        raise http_error(e) from None
    return course_out(course)


@router.post(
    "/courses/{course_id}/lessons",
    response_model=LessonOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_lesson(
    course_id: UUID,
    body: LessonIn,
    _principal: Annotated[Principal, Depends(require_any_role(AUTHOR_ROLES))],
    session: DbSession,
) -> LessonOut:
    try:
        lesson = await catalog_service.add_lesson(
            session,
            course_id,
            title=body.title,
            description=body.description,
            video_url=body.video_url,
            duration_seconds=body.duration_seconds,
            position=body.position,
        )
    except LmsError as e:
        raise http_error(e) from None
    return lesson_out(lesson)


@router.post(
    "/courses/{course_id}/enroll",
    response_model=EnrollmentOut,
    status_code=status.HTTP_201_CREATED,
)
async def enroll_in_course(
    course_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
    session: DbSession,
) -> EnrollmentOut:
    try:
        enrollment = await enrollment_service.enroll(
            session, user_id=principal.user_uuid, course_id=course_id
        )
    except LmsError as e:
        raise http_error(e) from None

    return EnrollmentOut(
        id=enrollment.id,
        user_id=enrollment.user_id,
        course_id=enrollment.course_id,
        enrolled_at=enrollment.enrolled_at,
    )


@router.get("/catalog", response_model=CatalogOut)
async def get_catalog(
    principal: Annotated[Principal, Depends(require_user)],
    session: DbSession,
    user_id: Annotated[UUID | None, Query(alias="userId")] = None,
) -> CatalogOut:
    target = acting_user(principal, user_id)
    catalog = await catalog_service.catalog_for_user(session, target)
    return CatalogOut(
        enrolled=[
            EnrolledCourseOut(
                course=course_out(e.course),
                progress_percentage=e.progress_percentage,
                enrolled_at=e.enrolled_at,
            )
            for e in catalog.enrolled
        ],
        available=[course_out(c) for c in catalog.available],
        completed_count=catalog.completed_count,
    )
