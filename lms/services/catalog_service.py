"""Catalog reads and course authoring.

Reads join each course with its instructor and tags (see CourseRepo).
The per-user overlay (enrolled flag, course percentage, completed
lessons) is computed per request; nothing is cached.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from lms.models.course import Course, Lesson
from lms.repos.course_repo import CourseRepo, LessonRepo
from lms.repos.enrollment_repo import EnrollmentRepo
from lms.repos.progress_repo import LessonProgressRepo, UserProgressRepo
from lms.repos.user_repo import UserRepo
from lms.services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

DIFFICULTY_LEVELS = ("beginner", "intermediate", "advanced")

COURSE_FIELDS = (
    "title",
    "description",
    "image_url",
    "difficulty_level",
    "duration_minutes",
    "published",
    "instructor_id",
)


@dataclass(frozen=True, slots=True)
class EnrolledCourse:
    course: Course
    progress_percentage: int
    enrolled_at: int


@dataclass(frozen=True, slots=True)
class Catalog:
    enrolled: list[EnrolledCourse]
    available: list[Course]

    @property
    def completed_count(self) -> int:
        return sum(1 for e in self.enrolled if e.progress_percentage >= 100)


@dataclass(frozen=True, slots=True)
class CourseDetail:
    course: Course
    lessons: list[Lesson]
    enrolled: bool
    progress_percentage: int
    completed_lesson_ids: frozenset[UUID]


def _now() -> int:
    return int(time.time())


def _check_difficulty(level: str | None) -> None:
    if level is not None and level not in DIFFICULTY_LEVELS:
        raise ValidationError(
            f"difficultyLevel must be one of {', '.join(DIFFICULTY_LEVELS)}"
        )


async def _check_instructor(session: AsyncSession, instructor_id: UUID | None) -> None:
    if instructor_id is None:
        return
    if await UserRepo(session).get_by_id(instructor_id) is None:
        raise ValidationError("instructor does not exist")


async def _get_course(session: AsyncSession, course_id: UUID) -> Course:
    course = await CourseRepo(session).get(course_id)
    if course is None:
        raise NotFoundError("course not found")
    return course


async def list_courses(
    session: AsyncSession, *, published_only: bool = True
) -> list[Course]:
    return await CourseRepo(session).list_courses(published_only=published_only)


async def catalog_for_user(session: AsyncSession, user_id: UUID) -> Catalog:
    """Partition published courses into enrolled (with progress) and available."""
    courses = await CourseRepo(session).list_courses(published_only=True)
    enrollments = {
        e.course_id: e for e in await EnrollmentRepo(session).list_by_user(user_id)
    }
    progress = await UserProgressRepo(session).list_for_user(user_id)

    enrolled: list[EnrolledCourse] = []
    available: list[Course] = []
    for course in courses:
        enrollment = enrollments.get(course.id)
        if enrollment is None:
            available.append(course)
            continue
        p = progress.get(course.id)
        enrolled.append(
            EnrolledCourse(
                course=course,
                progress_percentage=p.progress_percentage if p else 0,
                enrolled_at=enrollment.enrolled_at,
            )
        )

    enrolled.sort(key=lambda e: e.enrolled_at, reverse=True)
    return Catalog(enrolled=enrolled, available=available)


async def get_course_detail(
    session: AsyncSession,
    course_id: UUID,
    user_id: UUID,
    *,
    include_unpublished: bool = False,
) -> CourseDetail:
    course = await CourseRepo(session).get(course_id)
    if course is None or (not course.published and not include_unpublished):
        raise NotFoundError("course not found")

    lessons = await LessonRepo(session).list_by_course(course_id)
    completed = await LessonProgressRepo(session).completed_lesson_ids(
        user_id, [lesson.id for lesson in lessons]
    )
    enrolled = await EnrollmentRepo(session).is_enrolled(user_id, course_id)
    progress = await UserProgressRepo(session).get(user_id, course_id)

    return CourseDetail(
        course=course,
        lessons=lessons,
        enrolled=enrolled,
        progress_percentage=progress.progress_percentage if progress else 0,
        completed_lesson_ids=frozenset(completed),
    )


async def create_course(
    session: AsyncSession,
    *,
    title: str,
    description: str | None = None,
    image_url: str | None = None,
    difficulty_level: str | None = None,
    duration_minutes: int = 0,
    published: bool = False,
    instructor_id: UUID | None = None,
    tags: list[str] | None = None,
) -> Course:
    title = title.strip()
    if not title:
        raise ValidationError("title must be non-empty")
    _check_difficulty(difficulty_level)
    await _check_instructor(session, instructor_id)

    course = Course.new(
        title=title,
        description=description,
        image_url=image_url,
        difficulty_level=difficulty_level,
        duration_minutes=duration_minutes,
        published=published,
        instructor_id=instructor_id,
        now=_now(),
    )
    repo = CourseRepo(session)
    await repo.add(course)
    if tags:
        await repo.set_tags(course.id, tags)

    logger.info("Created course id=%s title=%r published=%s", course.id, title, published)
    return await _get_course(session, course.id)


async def update_course(
    session: AsyncSession,
    course_id: UUID,
    changes: dict,
    *,
    tags: list[str] | None = None,
) -> Course:
    """Apply the non-None fields in changes; tags, when given, replace the set."""
    fields = {k: v for k, v in changes.items() if k in COURSE_FIELDS and v is not None}
    if "title" in fields:
        fields["title"] = fields["title"].strip()
        if not fields["title"]:
            raise ValidationError("title must be non-empty")
    _check_difficulty(fields.get("difficulty_level"))
    await _check_instructor(session, fields.get("instructor_id"))

    repo = CourseRepo(session)
    await _get_course(session, course_id)

    if fields:
        await repo.update(course_id, fields, _now())
    if tags is not None:
        await repo.set_tags(course_id, tags)

    logger.info(
        "Updated course id=%s fields=%s tags=%s",
        course_id,
        sorted(fields),
        tags is not None,
    )
    return await _get_course(session, course_id)


async def add_lesson(
    session: AsyncSession,
    course_id: UUID,
    *,
    title: str,
    description: str | None = None,
    video_url: str | None = None,
    duration_seconds: int | None = None,
    position: int | None = None,
) -> Lesson:
    """Append a lesson to the course (or place it at an explicit position)."""
    if await CourseRepo(session).get(course_id) is None:
        raise NotFoundError("course not found")
    title = title.strip()
    if not title:
        raise ValidationError("title must be non-empty")

    repo = LessonRepo(session)
    if position is None:
        position = await repo.next_position(course_id)

    lesson = Lesson.new(
        course_id=course_id,
        title=title,
        description=description,
        video_url=video_url,
        duration_seconds=duration_seconds,
        position=position,
        now=_now(),
    )
    await repo.add(lesson)
    logger.info("Added lesson id=%s course=%s position=%d", lesson.id, course_id, position)
    return lesson
