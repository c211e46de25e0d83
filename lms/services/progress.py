"""Pure progress and scoring rules.

Every trigger site (video progress writes, quiz passes, enrollment) goes
through these functions, so the course percentage is computed one way
only.  Nothing in this module touches the database.

Rounding is half-up on integers (12.5 -> 13), matching what the browser
client displays, rather than Python's round-half-to-even.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from uuid import UUID

from lms.models.course import Lesson
from lms.models.quiz import DEFAULT_PASSING_SCORE, QuizQuestion

# A lesson counts as watched once this share of the video has played.
WATCH_COMPLETION_THRESHOLD = 90


def percent(part: int, whole: int) -> int:
    """Integer percentage of part/whole, rounded half-up.  0 when whole <= 0."""
    if whole <= 0:
        return 0
    return (200 * part + whole) // (2 * whole)


def compute_course_progress(
    lessons: Iterable[Lesson], completed_lesson_ids: Iterable[UUID]
) -> int:
    """Course completion percentage for one user.

    Only lessons of the course count; completed ids outside it are
    ignored and duplicates collapse.  A course with no lessons is 0%.
    """
    lesson_ids = {lesson.id for lesson in lessons}
    completed = lesson_ids & set(completed_lesson_ids)
    return percent(len(completed), len(lesson_ids))


def is_watch_complete(watched_seconds: int, duration_seconds: int | None) -> bool:
    if not duration_seconds or duration_seconds <= 0:
        return False
    return percent(watched_seconds, duration_seconds) >= WATCH_COMPLETION_THRESHOLD


def is_passing(score: int, passing_score: int | None) -> bool:
    # 0 counts as unset, like a missing threshold.
    return score >= (passing_score or DEFAULT_PASSING_SCORE)


def neighbours(
    lessons: Sequence[Lesson], lesson_id: UUID
) -> tuple[Lesson | None, Lesson | None]:
    """(previous, next) lesson around lesson_id in position order."""
    ordered = sorted(lessons, key=lambda lesson: lesson.position)
    ids = [lesson.id for lesson in ordered]
    if lesson_id not in ids:
        return None, None
    i = ids.index(lesson_id)
    prev_lesson = ordered[i - 1] if i > 0 else None
    next_lesson = ordered[i + 1] if i < len(ordered) - 1 else None
    return prev_lesson, next_lesson


@dataclass(frozen=True, slots=True)
class GradedResponse:
    question_id: UUID
    selected_option_id: UUID | None
    is_correct: bool


@dataclass(frozen=True, slots=True)
class QuizScore:
    achieved_points: int
    total_points: int
    score: int
    correct_answers: int
    graded: tuple[GradedResponse, ...]


def score_quiz(
    questions: Sequence[QuizQuestion],
    selections: Mapping[UUID, UUID | None],
) -> QuizScore:
    """Grade selected options against the quiz's answer key.

    selections maps question id -> selected option id.  Questions without
    a selection earn nothing; a selection that is not one of the
    question's options is wrong.  Selections for questions outside the
    quiz are ignored.
    """
    achieved = 0
    total = 0
    correct = 0
    graded: list[GradedResponse] = []

    for question in sorted(questions, key=lambda q: q.position):
        total += question.weight
        if question.id not in selections:
            continue

        selected = selections[question.id]
        option = next((o for o in question.options if o.id == selected), None)
        is_correct = option is not None and option.is_correct
        if is_correct:
            achieved += question.weight
            correct += 1
        graded.append(
            GradedResponse(
                question_id=question.id,
                selected_option_id=selected,
                is_correct=is_correct,
            )
        )

    return QuizScore(
        achieved_points=achieved,
        total_points=total,
        score=percent(achieved, total),
        correct_answers=correct,
        graded=tuple(graded),
    )
