from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4

ROLES = ("student", "admin", "instructor")


@dataclass(frozen=True, slots=True)
class User:
    id: UUID
    email: str
    password_hash: str
    username: str
    created_at: int
    updated_at: int
    full_name: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    role: str = "student"  # student|admin|instructor

    @property
    def display_name(self) -> str:
        return self.full_name or self.username

    @staticmethod
    def new(
        *,
        email: str,
        password_hash: str,
        username: str,
        now: int,
        full_name: str | None = None,
        role: str = "student",
    ) -> User:
        return User(
            id=uuid4(),
            email=email,
            password_hash=password_hash,
            username=username,
            full_name=full_name,
            role=role,
            created_at=now,
            updated_at=now,
        )
