"""Request/response schemas shared by several routers.

JSON uses camelCase on the wire; Python attributes stay snake_case.
Response models are serialized by alias (FastAPI's default), and request
models accept either spelling.
"""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from lms.models.course import Course, InstructorRef, Lesson
from lms.models.progress import LessonProgress, UserProgress
from lms.models.quiz import Quiz, QuizAttempt
from lms.models.user import User


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Users ------------------------------------------------------------------


class UserOut(CamelModel):
    id: UUID
    email: str
    username: str
    full_name: str | None
    role: str


class ProfileOut(UserOut):
    bio: str | None
    avatar_url: str | None
    created_at: int
    updated_at: int


def user_out(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        email=user.email,
        username=user.username,
        full_name=user.full_name,
        role=user.role,
    )


def profile_out(user: User) -> ProfileOut:
    return ProfileOut(
        id=user.id,
        email=user.email,
        username=user.username,
        full_name=user.full_name,
        role=user.role,
        bio=user.bio,
        avatar_url=user.avatar_url,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


# --- Catalog ----------------------------------------------------------------


class InstructorOut(CamelModel):
    id: UUID
    name: str
    avatar_url: str | None


class CourseOut(CamelModel):
    id: UUID
    title: str
    description: str | None
    image_url: str | None
    difficulty_level: str | None
    duration_minutes: int
    published: bool
    instructor: InstructorOut | None
    tags: list[str]
    created_at: int
    updated_at: int


class LessonOut(CamelModel):
    id: UUID
    course_id: UUID
    title: str
    description: str | None
    video_url: str | None
    duration_seconds: int | None
    position: int


class LessonRefOut(CamelModel):
    id: UUID
    title: str
    position: int


def _instructor_out(ref: InstructorRef | None) -> InstructorOut | None:
    if ref is None:
        return None
    return InstructorOut(id=ref.id, name=ref.name, avatar_url=ref.avatar_url)


def course_out(course: Course) -> CourseOut:
    return CourseOut(
        id=course.id,
        title=course.title,
        description=course.description,
        image_url=course.image_url,
        difficulty_level=course.difficulty_level,
        duration_minutes=course.duration_minutes,
        published=course.published,
        instructor=_instructor_out(course.instructor),
        tags=list(course.tags),
        created_at=course.created_at,
        updated_at=course.updated_at,
    )


def lesson_out(lesson: Lesson) -> LessonOut:
    return LessonOut(
        id=lesson.id,
        course_id=lesson.course_id,
        title=lesson.title,
        description=lesson.description,
        video_url=lesson.video_url,
        duration_seconds=lesson.duration_seconds,
        position=lesson.position,
    )


def lesson_ref_out(lesson: Lesson | None) -> LessonRefOut | None:
    if lesson is None:
        return None
    return LessonRefOut(id=lesson.id, title=lesson.title, position=lesson.position)


# --- Progress ---------------------------------------------------------------


class LessonProgressOut(CamelModel):
    id: UUID
    user_id: UUID
    lesson_id: UUID
    completed: bool
    watched_seconds: int
    completed_at: int | None


class CourseProgressOut(CamelModel):
    course_id: UUID
    progress_percentage: int
    started_at: int
    completed_at: int | None


def lesson_progress_out(progress: LessonProgress | None) -> LessonProgressOut | None:
    if progress is None:
        return None
    return LessonProgressOut(
        id=progress.id,
        user_id=progress.user_id,
        lesson_id=progress.lesson_id,
        completed=progress.completed,
        watched_seconds=progress.watched_seconds,
        completed_at=progress.completed_at,
    )


def course_progress_out(progress: UserProgress | None) -> CourseProgressOut | None:
    if progress is None:
        return None
    return CourseProgressOut(
        course_id=progress.course_id,
        progress_percentage=progress.progress_percentage,
        started_at=progress.started_at,
        completed_at=progress.completed_at,
    )


# --- Quizzes ----------------------------------------------------------------


class QuizResponseOut(CamelModel):
    question_id: UUID
    selected_option_id: UUID | None
    is_correct: bool


class AttemptOut(CamelModel):
    id: UUID
    user_id: UUID
    quiz_id: UUID
    score: int
    passed: bool
    started_at: int
    completed_at: int | None
    responses: list[QuizResponseOut]


class QuizSummaryOut(CamelModel):
    id: UUID
    title: str
    passing_score: int
    question_count: int


def attempt_out(attempt: QuizAttempt) -> AttemptOut:
    return AttemptOut(
        id=attempt.id,
        user_id=attempt.user_id,
        quiz_id=attempt.quiz_id,
        score=attempt.score,
        passed=attempt.passed,
        started_at=attempt.started_at,
        completed_at=attempt.completed_at,
        responses=[
            QuizResponseOut(
                question_id=r.question_id,
                selected_option_id=r.selected_option_id,
                is_correct=r.is_correct,
            )
            for r in attempt.responses
        ],
    )


def quiz_summary_out(quiz: Quiz | None) -> QuizSummaryOut | None:
    if quiz is None:
        return None
    return QuizSummaryOut(
        id=quiz.id,
        title=quiz.title,
        passing_score=quiz.effective_passing_score,
        question_count=len(quiz.questions),
    )
