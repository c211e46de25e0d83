"""SQL persistence for lesson- and course-level progress.

Both tables hold at most one row per pair, so writes are upserts:
read the row (FOR UPDATE when the caller is about to change it), then
update it in place or insert a new one.  FOR UPDATE is a no-op on SQLite.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.tables import LessonProgressRow, UserProgressRow
from lms.models.progress import LessonProgress, UserProgress


class LessonProgressRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(
        self, user_id: UUID, lesson_id: UUID, *, for_update: bool = False
    ) -> LessonProgress | None:
        row = await self._get_row(user_id, lesson_id, for_update=for_update)
        if row is None:
            return None
        return _row_to_lesson_progress(row)

    async def list_for_lessons(
        self, user_id: UUID, lesson_ids: Iterable[UUID]
    ) -> dict[UUID, LessonProgress]:
        ids = list(lesson_ids)
        if not ids:
            return {}
        stmt = select(LessonProgressRow).where(
            LessonProgressRow.user_id == user_id,
            LessonProgressRow.lesson_id.in_(ids),
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return {r.lesson_id: _row_to_lesson_progress(r) for r in rows}

    async def completed_lesson_ids(
        self, user_id: UUID, lesson_ids: Iterable[UUID]
    ) -> set[UUID]:
        ids = list(lesson_ids)
        if not ids:
            return set()
        stmt = select(LessonProgressRow.lesson_id).where(
            LessonProgressRow.user_id == user_id,
            LessonProgressRow.lesson_id.in_(ids),
            LessonProgressRow.completed.is_(True),
        )
        return set((await self._session.execute(stmt)).scalars().all())

    async def save(self, progress: LessonProgress) -> None:
        row = await self._get_row(progress.user_id, progress.lesson_id, for_update=True)
        if row is None:
            self._session.add(
                LessonProgressRow(
                    id=progress.id,
                    user_id=progress.user_id,
                    lesson_id=progress.lesson_id,
                    completed=progress.completed,
                    watched_seconds=progress.watched_seconds,
                    completed_at=progress.completed_at,
                )
            )
        else:
            row.completed = progress.completed
            row.watched_seconds = progress.watched_seconds
            row.completed_at = progress.completed_at
        await self._session.flush()

    async def _get_row(
        self, user_id: UUID, lesson_id: UUID, *, for_update: bool
    ) -> LessonProgressRow | None:
        stmt = select(LessonProgressRow).where(
            LessonProgressRow.user_id == user_id,
            LessonProgressRow.lesson_id == lesson_id,
        )
        if for_update:
            stmt = stmt.with_for_update()
        return (await self._session.execute(stmt)).scalar_one_or_none()


class UserProgressRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(
        self, user_id: UUID, course_id: UUID, *, for_update: bool = False
    ) -> UserProgress | None:
        row = await self._get_row(user_id, course_id, for_update=for_update)
        if row is None:
            return None
        return _row_to_user_progress(row)

    async def list_for_user(self, user_id: UUID) -> dict[UUID, UserProgress]:
        stmt = select(UserProgressRow).where(UserProgressRow.user_id == user_id)
        rows = (await self._session.execute(stmt)).scalars().all()
        return {r.course_id: _row_to_user_progress(r) for r in rows}

    async def save(self, progress: UserProgress) -> None:
        row = await self._get_row(progress.user_id, progress.course_id, for_update=True)
        if row is None:
            self._session.add(
                UserProgressRow(
                    id=progress.id,
                    user_id=progress.user_id,
                    course_id=progress.course_id,
                    progress_percentage=progress.progress_percentage,
                    started_at=progress.started_at,
                    completed_at=progress.completed_at,
                )
            )
        else:
            row.progress_percentage = progress.progress_percentage
            row.completed_at = progress.completed_at
        await self._session.flush()

    async def _get_row(
        self, user_id: UUID, course_id: UUID, *, for_update: bool
    ) -> UserProgressRow | None:
        stmt = select(UserProgressRow).where(
            UserProgressRow.user_id == user_id,
            UserProgressRow.course_id == course_id,
        )
        if for_update:
            stmt = stmt.with_for_update()
        return (await self._session.execute(stmt)).scalar_one_or_none()


def _row_to_lesson_progress(row: LessonProgressRow) -> LessonProgress:
    return LessonProgress(
        id=row.id,
        user_id=row.user_id,
        lesson_id=row.lesson_id,
        completed=row.completed,
        watched_seconds=row.watched_seconds,
        completed_at=row.completed_at,
    )


def _row_to_user_progress(row: UserProgressRow) -> UserProgress:
    return UserProgress(
        id=row.id,
        user_id=row.user_id,
        course_id=row.course_id,
        progress_percentage=row.progress_percentage,
        started_at=row.started_at,
        completed_at=row.completed_at,
    )
