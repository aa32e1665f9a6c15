"""Application errors.

Every error the services raise on purpose derives from AppError and carries
the HTTP status the boundary handler in api/errors.py should answer with.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class AppError(Exception):
    """Base class for errors that map onto a known response."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, *, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


class RequestValidationError(AppError):
    status_code = 400
    default_message = "Validation failed"


class UnauthorizedError(AppError):
    status_code = 401
    default_message = "Unauthorized"


class ForbiddenError(AppError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(AppError):
    status_code = 409
    default_message = "Conflict"


class ServiceUnavailableError(AppError):
    status_code = 503
    default_message = "Service unavailable"


class StoreUnavailable(ServiceUnavailableError):
    """The revocation store could not be reached or answered with an error."""

    default_message = "Token store unavailable"


# Token verification failures. All of them are 401 at the boundary.

class InvalidSignatureError(UnauthorizedError):
    default_message = "Invalid token"


class TokenExpiredError(UnauthorizedError):
    default_message = "Token expired"


class MalformedTokenError(UnauthorizedError):
    default_message = "Invalid token"


class WrongTokenKindError(UnauthorizedError):
    default_message = "Invalid token type"
