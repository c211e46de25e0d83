from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class LessonProgress:
    """Watch/completion state for one (user, lesson) pair.  Upserted."""

    id: UUID
    user_id: UUID
    lesson_id: UUID
    completed: bool = False
    watched_seconds: int = 0
    completed_at: int | None = None

    @staticmethod
    def new(*, user_id: UUID, lesson_id: UUID) -> LessonProgress:
        return LessonProgress(id=uuid4(), user_id=user_id, lesson_id=lesson_id)


@dataclass(frozen=True, slots=True)
class UserProgress:
    """Course-level projection, derived from LessonProgress.

    Never authoritative: recomputed from the lesson rows whenever a lesson
    completes.
    """

    id: UUID
    user_id: UUID
    course_id: UUID
    started_at: int
    progress_percentage: int = 0
    completed_at: int | None = None

    @staticmethod
    def new(*, user_id: UUID, course_id: UUID, now: int) -> UserProgress:
        return UserProgress(
            id=uuid4(), user_id=user_id, course_id=course_id, started_at=now
        )
