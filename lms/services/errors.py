"""Domain exceptions raised by the service layer.

Routers translate these into HTTP status codes; services never import
FastAPI.
"""

from __future__ import annotations


class LmsError(Exception):
    """Base class for expected, user-facing failures."""


class NotFoundError(LmsError):
    pass


class ConflictError(LmsError):
    pass


class ValidationError(LmsError):
    pass


class NotEnrolledError(LmsError):
    """The user must be enrolled in the course to do this."""


class AttemptClosedError(ConflictError):
    """The quiz attempt has already been submitted."""
