"""Quiz endpoints.

POST /api/lessons/{lesson_id}/quiz                           author a quiz
GET  /api/quizzes/{quiz_id}                                  questions, no answer key
GET  /api/quizzes/{quiz_id}/attempts                         the user's submitted attempts
POST /api/quizzes/{quiz_id}/attempts                         start an attempt
POST /api/quizzes/{quiz_id}/attempts/{attempt_id}/submit     grade and close it
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field

from lms.api.access import acting_user, http_error
from lms.api.dependencies import AUTHOR_ROLES, DbSession, require_any_role, require_user
from lms.api.schemas import AttemptOut, CamelModel, attempt_out
from lms.models.principal import Principal
from lms.models.quiz import Quiz
from lms.services import quiz_service
from lms.services.errors import LmsError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["quizzes"])


# --- Authoring ----------------------------------------------------------------


class OptionIn(CamelModel):
    option_text: str
    is_correct: bool = False


class QuestionIn(CamelModel):
    question: str
    question_type: str = "multiple_choice"
    points: int | None = Field(default=None, ge=0)
    options: list[OptionIn]


class QuizIn(CamelModel):
    title: str
    description: str | None = None
    passing_score: int | None = Field(default=None, ge=0, le=100)
    questions: list[QuestionIn]


# --- Delivery -------------------------------------------------------------------


class QuizOptionOut(CamelModel):
    id: UUID
    option_text: str
    position: int


class QuizQuestionOut(CamelModel):
    id: UUID
    question: str
    question_type: str
    position: int
    points: int
    options: list[QuizOptionOut]


class QuizOut(CamelModel):
    id: UUID
    lesson_id: UUID
    title: str
    description: str | None
    passing_score: int
    questions: list[QuizQuestionOut]


class AttemptIn(CamelModel):
    user_id: UUID | None = None
    started_at: int | None = None


class ResponseIn(CamelModel):
    question_id: UUID
    selected_option_id: UUID | None = None


class SubmitIn(CamelModel):
    user_id: UUID | None = None
    responses: list[ResponseIn]
    score: int | None = None
    passed: bool | None = None
    completed_at: int | None = None


class AttemptWriteOut(CamelModel):
    success: bool
    attempt: AttemptOut


class SubmitOut(AttemptWriteOut):
    correct_answers: int
    total_questions: int
    lesson_completed: bool


def _quiz_out(quiz: Quiz) -> QuizOut:
    # The answer key (is_correct) never leaves the server.
    return QuizOut(
        id=quiz.id,
        lesson_id=quiz.lesson_id,
        title=quiz.title,
        description=quiz.description,
        passing_score=quiz.effective_passing_score,
        questions=[
            QuizQuestionOut(
                id=q.id,
                question=q.question,
                question_type=q.question_type,
                position=q.position,
                points=q.weight,
                options=[
                    QuizOptionOut(id=o.id, option_text=o.option_text, position=o.position)
                    for o in q.options
                ],
            )
            for q in quiz.questions
        ],
    )


@router.post(
    "/lessons/{lesson_id}/quiz",
    response_model=QuizOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_quiz(
    lesson_id: UUID,
    body: QuizIn,
    _principal: Annotated[Principal, Depends(require_any_role(AUTHOR_ROLES))],
    session: DbSession,
) -> QuizOut:
    try:
        quiz = await quiz_service.create_quiz(
            session,
            lesson_id,
            title=body.title,
            description=body.description,
            passing_score=body.passing_score,
            questions=[
                quiz_service.NewQuestion(
                    question=q.question,
                    question_type=q.question_type,
                    points=q.points,
                    options=[
                        quiz_service.NewOption(
                            option_text=o.option_text, is_correct=o.is_correct
                        )
                        for o in q.options
                    ],
                )
                for q in body.questions
            ],
        )
    except LmsError as e:
        raise http_error(e) from None
    return _quiz_out(quiz)


@router.get("/quizzes/{quiz_id}", response_model=QuizOut)
async def get_quiz(
    quiz_id: UUID,
    _principal: Annotated[Principal, Depends(require_user)],
    session: DbSession,
) -> QuizOut:
    try:
        quiz = await quiz_service.get_quiz(session, quiz_id)
    except LmsError as e:
        raise http_error(e) from None
    return _quiz_out(quiz)


@router.get("/quizzes/{quiz_id}/attempts", response_model=list[AttemptOut])
async def list_attempts(
    quiz_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
    session: DbSession,
    user_id: Annotated[UUID | None, Query(alias="userId")] = None,
) -> list[AttemptOut]:
    target = acting_user(principal, user_id)
    try:
        attempts = await quiz_service.list_attempts(session, user_id=target, quiz_id=quiz_id)
    except LmsError as e:
        raise http_error(e) from None
    return [attempt_out(a) for a in attempts]


@router.post("/quizzes/{quiz_id}/attempts", response_model=AttemptWriteOut)
async def start_attempt(
    quiz_id: UUID,
    body: AttemptIn,
    principal: Annotated[Principal, Depends(require_user)],
    session: DbSession,
) -> AttemptWriteOut:
    target = acting_user(principal, body.user_id)
    try:
        attempt = await quiz_service.create_attempt(
            session, user_id=target, quiz_id=quiz_id, started_at=body.started_at
        )
    except LmsError as e:
        raise http_error(e) from None
    return AttemptWriteOut(success=True, attempt=attempt_out(attempt))


@router.post(
    "/quizzes/{quiz_id}/attempts/{attempt_id}/submit",
    response_model=SubmitOut,
)
async def submit_attempt(
    quiz_id: UUID,
    attempt_id: UUID,
    body: SubmitIn,
    principal: Annotated[Principal, Depends(require_user)],
    session: DbSession,
) -> SubmitOut:
    target = acting_user(principal, body.user_id)
    try:
        submitted = await quiz_service.submit_attempt(
            session,
            user_id=target,
            quiz_id=quiz_id,
            attempt_id=attempt_id,
            responses=[(r.question_id, r.selected_option_id) for r in body.responses],
            claimed_score=body.score,
            claimed_passed=body.passed,
            completed_at=body.completed_at,
        )
    except LmsError as e:
        raise http_error(e) from None

    return SubmitOut(
        success=True,
        attempt=attempt_out(submitted.attempt),
        correct_answers=submitted.result.correct_answers,
        total_questions=submitted.question_count,
        lesson_completed=submitted.attempt.passed,
    )
