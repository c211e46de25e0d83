from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class InstructorRef:
    id: UUID
    name: str
    avatar_url: str | None = None


@dataclass(frozen=True, slots=True)
class Course:
    id: UUID
    title: str
    created_at: int
    updated_at: int
    description: str | None = None
    image_url: str | None = None
    difficulty_level: str | None = None
    duration_minutes: int = 0
    published: bool = False
    instructor_id: UUID | None = None
    # Read-side joins, filled in by the catalog reader.
    instructor: InstructorRef | None = None
    tags: tuple[str, ...] = ()

    @staticmethod
    def new(
        *,
        title: str,
        now: int,
        description: str | None = None,
        image_url: str | None = None,
        difficulty_level: str | None = None,
        duration_minutes: int = 0,
        published: bool = False,
        instructor_id: UUID | None = None,
    ) -> Course:
        return Course(
            id=uuid4(),
            title=title,
            description=description,
            image_url=image_url,
            difficulty_level=difficulty_level,
            duration_minutes=duration_minutes,
            published=published,
            instructor_id=instructor_id,
            created_at=now,
            updated_at=now,
        )


@dataclass(frozen=True, slots=True)
class Lesson:
    id: UUID
    course_id: UUID
    title: str
    position: int
    created_at: int
    updated_at: int
    description: str | None = None
    video_url: str | None = None
    duration_seconds: int | None = None

    @staticmethod
    def new(
        *,
        course_id: UUID,
        title: str,
        position: int,
        now: int,
        description: str | None = None,
        video_url: str | None = None,
        duration_seconds: int | None = None,
    ) -> Lesson:
        return Lesson(
            id=uuid4(),
            course_id=course_id,
            title=title,
            position=position,
            description=description,
            video_url=video_url,
            duration_seconds=duration_seconds,
            created_at=now,
            updated_at=now,
        )


@dataclass(frozen=True, slots=True)
class Enrollment:
    id: UUID
    user_id: UUID
    course_id: UUID
    enrolled_at: int

    @staticmethod
    def new(*, user_id: UUID, course_id: UUID, now: int) -> Enrollment:
        return Enrollment(
            id=uuid4(), user_id=user_id, course_id=course_id, enrolled_at=now
        )
