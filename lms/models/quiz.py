from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4

DEFAULT_PASSING_SCORE = 70


@dataclass(frozen=True, slots=True)
class QuizOption:
    id: UUID
    question_id: UUID
    option_text: str
    is_correct: bool
    position: int


@dataclass(frozen=True, slots=True)
class QuizQuestion:
    id: UUID
    quiz_id: UUID
    question: str
    position: int
    question_type: str = "multiple_choice"
    points: int | None = None
    options: tuple[QuizOption, ...] = ()

    @property
    def weight(self) -> int:
        # Unset (or zero) points count as one point.
        return self.points or 1


@dataclass(frozen=True, slots=True)
class Quiz:
    id: UUID
    lesson_id: UUID
    title: str
    created_at: int
    updated_at: int
    description: str | None = None
    passing_score: int | None = None
    questions: tuple[QuizQuestion, ...] = ()

    @property
    def effective_passing_score(self) -> int:
        return self.passing_score or DEFAULT_PASSING_SCORE


@dataclass(frozen=True, slots=True)
class QuizResponse:
    id: UUID
    attempt_id: UUID
    question_id: UUID
    is_correct: bool
    selected_option_id: UUID | None = None
    text_response: str | None = None


@dataclass(frozen=True, slots=True)
class QuizAttempt:
    id: UUID
    user_id: UUID
    quiz_id: UUID
    started_at: int
    score: int = 0
    passed: bool = False
    completed_at: int | None = None
    responses: tuple[QuizResponse, ...] = ()

    @property
    def is_submitted(self) -> bool:
        return self.completed_at is not None

    @staticmethod
    def new(*, user_id: UUID, quiz_id: UUID, started_at: int) -> QuizAttempt:
        return QuizAttempt(
            id=uuid4(), user_id=user_id, quiz_id=quiz_id, started_at=started_at
        )
