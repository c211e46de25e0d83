"""Quiz delivery, attempts and grading.

Scores are always computed here from the stored answer key.  Clients
also send the score they displayed; it is compared and logged, never
trusted.  A passing submission completes the quiz's lesson through the
same path the video player uses.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.metrics import QUIZ_SUBMISSIONS
from lms.models.quiz import Quiz, QuizAttempt, QuizOption, QuizQuestion, QuizResponse
from lms.repos.course_repo import LessonRepo
from lms.repos.enrollment_repo import EnrollmentRepo
from lms.repos.quiz_repo import QuizAttemptRepo, QuizRepo
from lms.services import progress_service
from lms.services.errors import (
    AttemptClosedError,
    ConflictError,
    NotEnrolledError,
    NotFoundError,
    ValidationError,
)
from lms.services.progress import QuizScore, is_passing, score_quiz

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class NewOption:
    option_text: str
    is_correct: bool = False


@dataclass(frozen=True, slots=True)
class NewQuestion:
    question: str
    options: Sequence[NewOption] = field(default_factory=tuple)
    points: int | None = None
    question_type: str = "multiple_choice"


@dataclass(frozen=True, slots=True)
class SubmittedAttempt:
    attempt: QuizAttempt
    result: QuizScore
    question_count: int


def _now() -> int:
    return int(time.time())


async def get_quiz(session: AsyncSession, quiz_id: UUID) -> Quiz:
    quiz = await QuizRepo(session).get(quiz_id)
    if quiz is None:
        raise NotFoundError("quiz not found")
    return quiz


async def get_quiz_for_lesson(session: AsyncSession, lesson_id: UUID) -> Quiz | None:
    return await QuizRepo(session).get_by_lesson(lesson_id)


async def create_quiz(
    session: AsyncSession,
    lesson_id: UUID,
    *,
    title: str,
    questions: Sequence[NewQuestion],
    description: str | None = None,
    passing_score: int | None = None,
) -> Quiz:
    if await LessonRepo(session).get(lesson_id) is None:
        raise NotFoundError("lesson not found")
    title = title.strip()
    if not title:
        raise ValidationError("title must be non-empty")
    if passing_score is not None and not 0 <= passing_score <= 100:
        raise ValidationError("passingScore must be between 0 and 100")
    if not questions:
        raise ValidationError("a quiz needs at least one question")
    for i, q in enumerate(questions, start=1):
        if not q.options:
            raise ValidationError(f"question {i} has no options")
        if not any(o.is_correct for o in q.options):
            raise ValidationError(f"question {i} has no correct option")
        if q.points is not None and q.points < 0:
            raise ValidationError(f"question {i} has negative points")

    now = _now()
    quiz_id = uuid4()
    built: list[QuizQuestion] = []
    for q_pos, q in enumerate(questions, start=1):
        question_id = uuid4()
        built.append(
            QuizQuestion(
                id=question_id,
                quiz_id=quiz_id,
                question=q.question,
                question_type=q.question_type,
                position=q_pos,
                points=q.points,
                options=tuple(
                    QuizOption(
                        id=uuid4(),
                        question_id=question_id,
                        option_text=o.option_text,
                        is_correct=o.is_correct,
                        position=o_pos,
                    )
                    for o_pos, o in enumerate(q.options, start=1)
                ),
            )
        )

    quiz = Quiz(
        id=quiz_id,
        lesson_id=lesson_id,
        title=title,
        description=description,
        passing_score=passing_score,
        created_at=now,
        updated_at=now,
        questions=tuple(built),
    )
    try:
        await QuizRepo(session).add(quiz)
    except ValueError:
        raise ConflictError("lesson already has a quiz") from None

    logger.info(
        "Created quiz id=%s lesson=%s questions=%d", quiz.id, lesson_id, len(built)
    )
    return quiz


async def _require_enrollment(session: AsyncSession, user_id: UUID, quiz: Quiz) -> None:
    lesson = await LessonRepo(session).get(quiz.lesson_id)
    if lesson is None:
        raise NotFoundError("lesson not found")
    if not await EnrollmentRepo(session).is_enrolled(user_id, lesson.course_id):
        logger.warning("Quiz attempt without enrollment user=%s quiz=%s", user_id, quiz.id)
        raise NotEnrolledError("not enrolled in this course")


async def create_attempt(
    session: AsyncSession,
    *,
    user_id: UUID,
    quiz_id: UUID,
    started_at: int | None = None,
) -> QuizAttempt:
    quiz = await get_quiz(session, quiz_id)
    await _require_enrollment(session, user_id, quiz)

    attempt = QuizAttempt.new(
        user_id=user_id, quiz_id=quiz_id, started_at=started_at or _now()
    )
    await QuizAttemptRepo(session).add(attempt)
    logger.info("Started attempt id=%s user=%s quiz=%s", attempt.id, user_id, quiz_id)
    return attempt


async def submit_attempt(
    session: AsyncSession,
    *,
    user_id: UUID,
    quiz_id: UUID,
    attempt_id: UUID,
    responses: Sequence[tuple[UUID, UUID | None]],
    claimed_score: int | None = None,
    claimed_passed: bool | None = None,
    completed_at: int | None = None,
) -> SubmittedAttempt:
    """Grade and close an attempt.

    responses is an ordered list of (question_id, selected_option_id);
    when a question appears more than once the last selection counts.
    """
    quiz = await get_quiz(session, quiz_id)
    attempts = QuizAttemptRepo(session)
    attempt = await attempts.get(attempt_id, for_update=True)
    if attempt is None or attempt.quiz_id != quiz_id or attempt.user_id != user_id:
        raise NotFoundError("attempt not found")
    if attempt.is_submitted:
        logger.warning("Resubmission rejected attempt=%s user=%s", attempt_id, user_id)
        raise AttemptClosedError("attempt already submitted")

    selections = dict(responses)
    result = score_quiz(quiz.questions, selections)
    passed = is_passing(result.score, quiz.passing_score)

    if claimed_score is not None and claimed_score != result.score:
        logger.warning(
            "Client score mismatch attempt=%s claimed=%d computed=%d",
            attempt_id,
            claimed_score,
            result.score,
        )
    if claimed_passed is not None and claimed_passed != passed:
        logger.warning(
            "Client pass flag mismatch attempt=%s claimed=%s computed=%s",
            attempt_id,
            claimed_passed,
            passed,
        )

    # Selections that are not options of their question are stored as
    # unanswered so the foreign key to quiz_options holds.
    option_ids = {o.id for q in quiz.questions for o in q.options}
    stored = [
        QuizResponse(
            id=uuid4(),
            attempt_id=attempt_id,
            question_id=g.question_id,
            selected_option_id=(
                g.selected_option_id if g.selected_option_id in option_ids else None
            ),
            is_correct=g.is_correct,
        )
        for g in result.graded
    ]
    finished_at = completed_at or _now()
    await attempts.complete(
        attempt_id,
        score=result.score,
        passed=passed,
        completed_at=finished_at,
        responses=stored,
    )

    QUIZ_SUBMISSIONS.labels(result="passed" if passed else "failed").inc()
    logger.info(
        "Submitted attempt id=%s user=%s score=%d passed=%s",
        attempt_id,
        user_id,
        result.score,
        passed,
    )

    if passed:
        await progress_service.record_lesson_progress(
            session,
            user_id=user_id,
            lesson_id=quiz.lesson_id,
            completed=True,
            completed_at=finished_at,
            source="quiz",
            require_enrollment=False,
        )

    closed = replace(
        attempt,
        score=result.score,
        passed=passed,
        completed_at=finished_at,
        responses=tuple(stored),
    )
    return SubmittedAttempt(
        attempt=closed, result=result, question_count=len(quiz.questions)
    )


async def list_attempts(
    session: AsyncSession, *, user_id: UUID, quiz_id: UUID
) -> list[QuizAttempt]:
    await get_quiz(session, quiz_id)
    return await QuizAttemptRepo(session).list_for_user_quiz(user_id, quiz_id)
