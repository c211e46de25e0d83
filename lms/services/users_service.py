from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from lms.models.user import User
from lms.repos.enrollment_repo import EnrollmentRepo
from lms.repos.progress_repo import UserProgressRepo
from lms.repos.quiz_repo import QuizAttemptRepo
from lms.repos.user_repo import UserRepo
from lms.services.auth_service import hash_password
from lms.services.errors import ConflictError, NotFoundError, ValidationError
from lms.services.progress import percent

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8

PROFILE_FIELDS = ("username", "full_name", "bio", "avatar_url")


@dataclass(frozen=True, slots=True)
class ProfileStats:
    enrolled_courses: int
    completed_courses: int
    average_quiz_score: int | None


def _now() -> int:
    return int(time.time())


async def register_user(
    session: AsyncSession,
    *,
    email: str,
    password: str,
    username: str | None = None,
    full_name: str | None = None,
) -> User:
    email = email.strip().lower()
    if not email or "@" not in email:
        logger.warning("Rejected invalid email=%r", email)
        raise ValidationError("a valid email is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        logger.warning("Rejected short password for email=%s", email)
        raise ValidationError(
            f"password must be at least {MIN_PASSWORD_LENGTH} characters"
        )

    repo = UserRepo(session)
    if await repo.get_by_email(email) is not None:
        logger.warning("Rejected duplicate email=%s", email)
        raise ConflictError("email already registered")

    username = (username or "").strip() or email.split("@", 1)[0]
    full_name = (full_name or "").strip() or None

    user = User.new(
        email=email,
        password_hash=hash_password(password),
        username=username,
        full_name=full_name,
        now=_now(),
    )
    try:
        await repo.add(user)
    except ValueError:
        # Lost a race with a concurrent registration on the unique index.
        logger.warning("Rejected duplicate email=%s (unique index)", email)
        raise ConflictError("email already registered") from None

    logger.info("Registered user id=%s email=%s", user.id, user.email)
    return user


async def get_user(session: AsyncSession, user_id: UUID) -> User:
    user = await UserRepo(session).get_by_id(user_id)
    if user is None:
        raise NotFoundError("user not found")
    return user


async def list_users(session: AsyncSession) -> list[User]:
    return await UserRepo(session).list_all()


async def update_profile(
    session: AsyncSession, user_id: UUID, changes: dict[str, str | None]
) -> User:
    """Apply the non-None profile fields in changes.  Unknown keys are dropped."""
    fields = {k: v for k, v in changes.items() if k in PROFILE_FIELDS and v is not None}
    if "username" in fields:
        fields["username"] = fields["username"].strip()
        if not fields["username"]:
            raise ValidationError("username must be non-empty")

    repo = UserRepo(session)
    if not fields:
        return await get_user(session, user_id)

    user = await repo.update_profile(user_id, fields, _now())
    if user is None:
        raise NotFoundError("user not found")
    logger.info("Updated profile user=%s fields=%s", user_id, sorted(fields))
    return user


async def profile_stats(session: AsyncSession, user_id: UUID) -> ProfileStats:
    enrollments = await EnrollmentRepo(session).list_by_user(user_id)
    progress = await UserProgressRepo(session).list_for_user(user_id)
    enrolled_ids = {e.course_id for e in enrollments}
    completed = sum(
        1
        for course_id, p in progress.items()
        if course_id in enrolled_ids and p.progress_percentage >= 100
    )

    scores = await QuizAttemptRepo(session).list_scores_for_user(user_id)
    # percent() of the score sum over n*100 is the half-up mean.
    average = percent(sum(scores), 100 * len(scores)) if scores else None

    return ProfileStats(
        enrolled_courses=len(enrollments),
        completed_courses=completed,
        average_quiz_score=average,
    )
