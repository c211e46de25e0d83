"""Registration endpoint (POST /api/auth/register).

Sessions are issued elsewhere; registration only creates the account.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status

from lms.api.access import http_error
from lms.api.dependencies import DbSession
from lms.api.ratelimit import REGISTER_LIMIT, require_rate_limit
from lms.api.schemas import CamelModel, UserOut, user_out
from lms.services import users_service
from lms.services.errors import LmsError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class RegisterIn(CamelModel):
    email: str
    password: str
    full_name: str | None = None
    username: str | None = None


@router.post(
    "/register",
    response_model=UserOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_rate_limit(REGISTER_LIMIT))],
)
async def register(payload: RegisterIn, session: DbSession) -> UserOut:
    try:
        user = await users_service.register_user(
            session,
            email=payload.email,
            password=payload.password,
            username=payload.username,
            full_name=payload.full_name,
        )
    except LmsError as e:
        raise http_error(e) from None

    return user_out(user)
