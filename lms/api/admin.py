from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from lms.api.dependencies import DbSession, require_role
from lms.api.schemas import ProfileOut, profile_out
from lms.models.principal import Principal
from lms.services import users_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users", response_model=list[ProfileOut])
async def admin_list_users(
    principal: Annotated[Principal, Depends(require_role("admin"))],
    session: DbSession,
) -> list[ProfileOut]:
    logger.info("Admin user list requested by user=%s", principal.user_id)
    users = await users_service.list_users(session)
    return [profile_out(u) for u in users]
