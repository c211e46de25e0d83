"""Ownership checks and service-error translation.

These are plain functions (not FastAPI dependencies) because they need
both the Principal and a resource identifier, which makes them awkward
as pure dependency injection.  Call them at the top of an endpoint body.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import HTTPException, status

from lms.models.principal import Principal
from lms.services.errors import (
    ConflictError,
    LmsError,
    NotEnrolledError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: list[tuple[type[LmsError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotEnrolledError, status.HTTP_403_FORBIDDEN),
]


def check_owner_or_admin(
    principal: Principal,
    resource_owner_id: UUID,
) -> None:
    """Raise 403 unless the principal owns the resource or is an admin.

    Compared as UUIDs, so any spelling of the token subject matches.
    """
    if principal.user_uuid == resource_owner_id:
        return
    if principal.is_admin():
        return
    logger.warning(
        "Access denied: user=%s acting on user=%s",
        principal.user_id,
        resource_owner_id,
    )
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You can only access your own resource",
    )


def acting_user(principal: Principal, requested: UUID | None) -> UUID:
    """The user a request acts on: the caller, or requested if allowed."""
    if requested is None:
        return principal.user_uuid
    check_owner_or_admin(principal, requested)
    return requested


def http_error(exc: LmsError) -> HTTPException:
    """Map a domain exception to the HTTPException the router raises."""
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            break
    else:
        code = status.HTTP_400_BAD_REQUEST
    logger.warning("Request rejected status=%d: %s", code, exc)
    return HTTPException(status_code=code, detail=str(exc))
