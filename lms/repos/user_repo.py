"""SQL persistence for users."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.tables import UserRow
from lms.models.user import User


class UserRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: UUID) -> User | None:
        row = await self._session.get(UserRow, user_id)
        if row is None:
            return None
        return _row_to_user(row)

    async def get_by_email(self, email: str) -> User | None:
        stmt = select(UserRow).where(UserRow.email == email)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_user(row)

    async def get_many(self, user_ids: set[UUID]) -> dict[UUID, User]:
        if not user_ids:
            return {}
        stmt = select(UserRow).where(UserRow.id.in_(user_ids))
        rows = (await self._session.execute(stmt)).scalars().all()
        return {row.id: _row_to_user(row) for row in rows}

    async def list_all(self) -> list[User]:
        stmt = select(UserRow).order_by(UserRow.created_at.desc(), UserRow.email)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_user(row) for row in rows]

    async def add(self, user: User) -> None:
        """Insert a user.  Raises ValueError when the email is taken."""
        self._session.add(
            UserRow(
                id=user.id,
                email=user.email,
                password_hash=user.password_hash,
                username=user.username,
                full_name=user.full_name,
                bio=user.bio,
                avatar_url=user.avatar_url,
                role=user.role,
                created_at=user.created_at,
                updated_at=user.updated_at,
            )
        )
        try:
            await self._session.flush()
        except IntegrityError:
            raise ValueError("email already exists") from None

    async def update_profile(
        self, user_id: UUID, fields: dict[str, str | None], now: int
    ) -> User | None:
        """Apply a partial profile update.  None when the user does not exist."""
        stmt = (
            update(UserRow)
            .where(UserRow.id == user_id)
            .values(**fields, updated_at=now)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        return await self.get_by_id(user_id)


def _row_to_user(row: UserRow) -> User:
    return User(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        username=row.username,
        full_name=row.full_name,
        bio=row.bio,
        avatar_url=row.avatar_url,
        role=row.role,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
