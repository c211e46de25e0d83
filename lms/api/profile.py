"""Profile endpoints with ownership-based access control.

GET   /api/users/{user_id}  profile + learning stats (self or admin)
PATCH /api/users/{user_id}  edit profile fields (self or admin)
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends

from lms.api.access import check_owner_or_admin, http_error
from lms.api.dependencies import DbSession, require_user
from lms.api.schemas import CamelModel, ProfileOut, profile_out
from lms.models.principal import Principal
from lms.services import users_service
from lms.services.errors import LmsError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["profile"])


class ProfileStatsOut(CamelModel):
    enrolled_courses: int
    completed_courses: int
    average_quiz_score: int | None


class ProfileWithStatsOut(ProfileOut):
    stats: ProfileStatsOut


class UpdateProfileIn(CamelModel):
    username: str | None = None
    full_name: str | None = None
    bio: str | None = None
    avatar_url: str | None = None


@router.get("/users/{user_id}", response_model=ProfileWithStatsOut)
async def get_profile(
    user_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
    session: DbSession,
) -> ProfileWithStatsOut:
    check_owner_or_admin(principal, user_id)
    try:
        user = await users_service.get_user(session, user_id)
    except LmsError as e:
        raise http_error(e) from None

    stats = await users_service.profile_stats(session, user_id)
    return ProfileWithStatsOut(
        **profile_out(user).model_dump(),
        stats=ProfileStatsOut(
            enrolled_courses=stats.enrolled_courses,
            completed_courses=stats.completed_courses,
            average_quiz_score=stats.average_quiz_score,
        ),
    )


@router.patch("/users/{user_id}", response_model=ProfileOut)
async def update_profile(
    user_id: UUID,
    body: UpdateProfileIn,
    principal: Annotated[Principal, Depends(require_user)],
    session: DbSession,
) -> ProfileOut:
    """Edit a user's profile. Self or admin only."""
    check_owner_or_admin(principal, user_id)
    try:
        updated = await users_service.update_profile(
            session, user_id, body.model_dump(exclude_unset=True)
        )
    except LmsError as e:
        raise http_error(e) from None

    return profile_out(updated)
