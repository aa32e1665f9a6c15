"""
Per-request authorization chain, applied as view decorators:

    authenticate -> [validate_view_args] -> require_admin | require_self_or_admin

authenticate turns the Authorization header into g.current_user; the role
and ownership checks only read that context.
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import wraps
from typing import Optional

from flask import current_app, g, request
from marshmallow import Schema, ValidationError

from models.user import Role
from utils.errors import ForbiddenError, RequestValidationError, UnauthorizedError
from utils.tokens import TokenKind

AUTH_SCHEME = "Bearer"


@dataclass(frozen=True)
class AuthContext:
    user_id: str
    role: str


def parse_authorization_header(header: Optional[str]) -> str:
    """Return the token from an exact `Bearer <token>` header."""
    if not header:
        raise UnauthorizedError("No token provided")
    parts = header.split(" ")
    if len(parts) != 2 or parts[0] != AUTH_SCHEME or not parts[1]:
        raise UnauthorizedError("Invalid authorization format")
    return parts[1]


def is_admin(role: Optional[str]) -> bool:
    return role == Role.ADMIN.value


def is_self_or_admin(caller_id: Optional[str], role: Optional[str], target_id: Optional[str]) -> bool:
    if is_admin(role):
        return True
    if not target_id or not caller_id:
        return False
    return caller_id == target_id


def authenticate(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        token = parse_authorization_header(request.headers.get("Authorization"))
        payload = current_app.extensions["token_issuer"].verify(token, TokenKind.ACCESS)
        g.current_user = AuthContext(user_id=payload.subject_user_id, role=payload.role)
        return fn(*args, **kwargs)

    return wrapper


def _current_user() -> AuthContext:
    user = getattr(g, "current_user", None)
    if user is None:
        raise UnauthorizedError("Not authenticated")
    return user


def require_admin(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not is_admin(_current_user().role):
            raise ForbiddenError("Insufficient permissions")
        return fn(*args, **kwargs)

    return wrapper


def require_self_or_admin(param: str = "user_id"):
    """Allow admins, or callers whose id equals the path parameter exactly."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = _current_user()
            if not is_self_or_admin(user.user_id, user.role, kwargs.get(param)):
                raise ForbiddenError("Insufficient permissions")
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def validate_view_args(schema: Schema):
    """Reject malformed path parameters with 400 before ownership is checked."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                schema.load(kwargs)
            except ValidationError as err:
                raise RequestValidationError("Validation failed", details=err.messages)
            return fn(*args, **kwargs)

        return wrapper

    return decorator
