"""SQL persistence for quizzes and quiz attempts.

A quiz is read as one aggregate: the quiz row, its questions ordered by
position, and each question's options ordered by position.
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.tables import (
    QuizAttemptRow,
    QuizOptionRow,
    QuizQuestionRow,
    QuizResponseRow,
    QuizRow,
)
from lms.models.quiz import (
    Quiz,
    QuizAttempt,
    QuizOption,
    QuizQuestion,
    QuizResponse,
)


class QuizRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, quiz_id: UUID) -> Quiz | None:
        row = await self._session.get(QuizRow, quiz_id)
        if row is None:
            return None
        return await self._load(row)

    async def get_by_lesson(self, lesson_id: UUID) -> Quiz | None:
        stmt = select(QuizRow).where(QuizRow.lesson_id == lesson_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return await self._load(row)

    async def add(self, quiz: Quiz) -> None:
        """Insert a quiz with its questions and options.

        Raises ValueError when the lesson already has a quiz.
        """
        self._session.add(
            QuizRow(
                id=quiz.id,
                lesson_id=quiz.lesson_id,
                title=quiz.title,
                description=quiz.description,
                passing_score=quiz.passing_score,
                created_at=quiz.created_at,
                updated_at=quiz.updated_at,
            )
        )
        try:
            await self._session.flush()
        except IntegrityError:
            raise ValueError("lesson already has a quiz") from None

        for q in quiz.questions:
            self._session.add(
                QuizQuestionRow(
                    id=q.id,
                    quiz_id=quiz.id,
                    question=q.question,
                    question_type=q.question_type,
                    position=q.position,
                    points=q.points,
                )
            )
        await self._session.flush()

        for q in quiz.questions:
            for o in q.options:
                self._session.add(
                    QuizOptionRow(
                        id=o.id,
                        question_id=q.id,
                        option_text=o.option_text,
                        is_correct=o.is_correct,
                        position=o.position,
                    )
                )
        await self._session.flush()

    async def _load(self, row: QuizRow) -> Quiz:
        q_stmt = (
            select(QuizQuestionRow)
            .where(QuizQuestionRow.quiz_id == row.id)
            .order_by(QuizQuestionRow.position)
        )
        question_rows = (await self._session.execute(q_stmt)).scalars().all()

        options: dict[UUID, list[QuizOption]] = {}
        if question_rows:
            o_stmt = (
                select(QuizOptionRow)
                .where(QuizOptionRow.question_id.in_([q.id for q in question_rows]))
                .order_by(QuizOptionRow.position)
            )
            for o in (await self._session.execute(o_stmt)).scalars().all():
                options.setdefault(o.question_id, []).append(_row_to_option(o))

        questions = tuple(
            QuizQuestion(
                id=q.id,
                quiz_id=q.quiz_id,
                question=q.question,
                question_type=q.question_type,
                position=q.position,
                points=q.points,
                options=tuple(options.get(q.id, ())),
            )
            for q in question_rows
        )
        return Quiz(
            id=row.id,
            lesson_id=row.lesson_id,
            title=row.title,
            description=row.description,
            passing_score=row.passing_score,
            created_at=row.created_at,
            updated_at=row.updated_at,
            questions=questions,
        )


class QuizAttemptRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, attempt_id: UUID, *, for_update: bool = False) -> QuizAttempt | None:
        stmt = select(QuizAttemptRow).where(QuizAttemptRow.id == attempt_id)
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        responses = await self._responses([row.id])
        return _row_to_attempt(row, responses.get(row.id, ()))

    async def add(self, attempt: QuizAttempt) -> None:
        self._session.add(
            QuizAttemptRow(
                id=attempt.id,
                user_id=attempt.user_id,
                quiz_id=attempt.quiz_id,
                score=attempt.score,
                passed=attempt.passed,
                started_at=attempt.started_at,
                completed_at=attempt.completed_at,
            )
        )
        await self._session.flush()

    async def complete(
        self,
        attempt_id: UUID,
        *,
        score: int,
        passed: bool,
        completed_at: int,
        responses: Sequence[QuizResponse],
    ) -> None:
        """Record the graded outcome and the per-question responses."""
        row = await self._session.get(QuizAttemptRow, attempt_id)
        if row is None:
            raise ValueError(f"attempt {attempt_id} not found")
        row.score = score
        row.passed = passed
        row.completed_at = completed_at
        for r in responses:
            self._session.add(
                QuizResponseRow(
                    id=r.id,
                    attempt_id=attempt_id,
                    question_id=r.question_id,
                    selected_option_id=r.selected_option_id,
                    text_response=r.text_response,
                    is_correct=r.is_correct,
                )
            )
        await self._session.flush()

    async def list_for_user_quiz(self, user_id: UUID, quiz_id: UUID) -> list[QuizAttempt]:
        """Submitted attempts, most recent first."""
        stmt = (
            select(QuizAttemptRow)
            .where(
                QuizAttemptRow.user_id == user_id,
                QuizAttemptRow.quiz_id == quiz_id,
                QuizAttemptRow.completed_at.is_not(None),
            )
            .order_by(QuizAttemptRow.completed_at.desc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        responses = await self._responses([r.id for r in rows])
        return [_row_to_attempt(r, responses.get(r.id, ())) for r in rows]

    async def list_scores_for_user(self, user_id: UUID) -> list[int]:
        stmt = select(QuizAttemptRow.score).where(
            QuizAttemptRow.user_id == user_id,
            QuizAttemptRow.completed_at.is_not(None),
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def _responses(self, attempt_ids: list[UUID]) -> dict[UUID, list[QuizResponse]]:
        if not attempt_ids:
            return {}
        stmt = select(QuizResponseRow).where(QuizResponseRow.attempt_id.in_(attempt_ids))
        out: dict[UUID, list[QuizResponse]] = {}
        for r in (await self._session.execute(stmt)).scalars().all():
            out.setdefault(r.attempt_id, []).append(_row_to_response(r))
        return out


def _row_to_option(row: QuizOptionRow) -> QuizOption:
    return QuizOption(
        id=row.id,
        question_id=row.question_id,
        option_text=row.option_text,
        is_correct=row.is_correct,
        position=row.position,
    )


def _row_to_response(row: QuizResponseRow) -> QuizResponse:
    return QuizResponse(
        id=row.id,
        attempt_id=row.attempt_id,
        question_id=row.question_id,
        selected_option_id=row.selected_option_id,
        text_response=row.text_response,
        is_correct=row.is_correct,
    )


def _row_to_attempt(row: QuizAttemptRow, responses) -> QuizAttempt:
    return QuizAttempt(
        id=row.id,
        user_id=row.user_id,
        quiz_id=row.quiz_id,
        score=row.score,
        passed=row.passed,
        started_at=row.started_at,
        completed_at=row.completed_at,
        responses=tuple(responses),
    )
