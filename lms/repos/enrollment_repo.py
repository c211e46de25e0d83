"""SQL persistence for course enrollments."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.tables import EnrollmentRow
from lms.models.course import Enrollment


class EnrollmentRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: UUID, course_id: UUID) -> Enrollment | None:
        stmt = select(EnrollmentRow).where(
            EnrollmentRow.user_id == user_id, EnrollmentRow.course_id == course_id
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_enrollment(row)

    async def is_enrolled(self, user_id: UUID, course_id: UUID) -> bool:
        return await self.get(user_id, course_id) is not None

    async def list_by_user(self, user_id: UUID) -> list[Enrollment]:
        stmt = (
            select(EnrollmentRow)
            .where(EnrollmentRow.user_id == user_id)
            .order_by(EnrollmentRow.enrolled_at.desc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_enrollment(r) for r in rows]

    async def add(self, enrollment: Enrollment) -> None:
        """Insert an enrollment.  Raises ValueError when the pair already exists."""
        self._session.add(
            EnrollmentRow(
                id=enrollment.id,
                user_id=enrollment.user_id,
                course_id=enrollment.course_id,
                enrolled_at=enrollment.enrolled_at,
            )
        )
        try:
            await self._session.flush()
        except IntegrityError:
            raise ValueError("enrollment already exists") from None


def _row_to_enrollment(row: EnrollmentRow) -> Enrollment:
    return Enrollment(
        id=row.id,
        user_id=row.user_id,
        course_id=row.course_id,
        enrolled_at=row.enrolled_at,
    )
