"""Registration, login and the refresh-token lifecycle."""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from models.revocation_store import RevocationStore
from models.user import Role, User
from models.user_store import UserStore
from services.user_service import public_projection
from utils.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
)
from utils.security import hash_password, verify_password
from utils.tokens import TokenIssuer, TokenKind

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
ACCOUNT_BLOCKED = "Account is blocked"


class AuthService:
    """Orchestrates credentials, the token issuer and the revocation store.

    Holds references only, so one instance serves concurrent requests.
    """

    def __init__(
        self,
        *,
        user_store: UserStore,
        token_issuer: TokenIssuer,
        revocation_store: RevocationStore,
    ) -> None:
        self._users = user_store
        self._tokens = token_issuer
        self._revocations = revocation_store

    def register(self, profile: Mapping[str, Any]) -> Dict[str, Any]:
        """Create a regular, active account. Email uniqueness ignores case."""
        if self._users.find_by_email(profile["email"]) is not None:
            raise ConflictError("Email already exists")

        user = User(
            full_name=profile["full_name"],
            date_of_birth=profile["date_of_birth"],
            email=profile["email"],
            password_hash=hash_password(profile["password"]),
            role=Role.USER,
            is_active=True,
        )
        self._users.create(user)
        logger.info("Registered user %s", user.id)
        return public_projection(user)

    def login(self, email: str, password: str) -> Dict[str, Any]:
        """Check existence, then active status, then the password.

        A blocked account answers 403 before the password is looked at.
        """
        user = self._users.find_by_email(email)
        if user is None:
            logger.info("Login failed: unknown email")
            raise UnauthorizedError(INVALID_CREDENTIALS)

        if not user.is_active:
            logger.info("Login refused for blocked user %s", user.id)
            raise ForbiddenError(ACCOUNT_BLOCKED)

        if not verify_password(password, user.password_hash):
            logger.info("Login failed for user %s: bad password", user.id)
            raise UnauthorizedError(INVALID_CREDENTIALS)

        pair = self._tokens.issue_pair(user.id, _role_value(user.role))
        self._revocations.record(pair.token_id, user.id)
        logger.info("User %s logged in", user.id)
        return {"user": public_projection(user), "tokens": pair.to_dict()}

    def refresh(self, refresh_token: str) -> Dict[str, str]:
        """Exchange a refresh token for a new pair, consuming the old one."""
        payload = self._tokens.verify(refresh_token, TokenKind.REFRESH)
        token_id = payload.token_id
        if not token_id:
            raise UnauthorizedError("Invalid token")

        # Only the caller that removes the entry may rotate. StoreUnavailable
        # propagates: an unconfirmed token is never valid.
        owner_id = self._revocations.consume(token_id)
        if owner_id is None:
            raise UnauthorizedError("Invalid or revoked token")

        user = self._users.find_by_id(owner_id)
        if user is None:
            raise NotFoundError("User not found")

        if not user.is_active:
            raise ForbiddenError(ACCOUNT_BLOCKED)

        pair = self._tokens.issue_pair(user.id, _role_value(user.role))
        self._revocations.record(pair.token_id, user.id)
        logger.debug("Rotated refresh token for user %s", user.id)
        return pair.to_dict()

    def logout(self, refresh_token: Optional[str]) -> None:
        """Best-effort revocation of one refresh token.

        Missing, malformed, expired or tampered tokens are not an error.
        """
        payload = self._tokens.decode_unsafe(refresh_token) if refresh_token else None
        if payload is None or not payload.token_id:
            return
        self._revocations.revoke(payload.token_id)

    def logout_all(self, user_id: str) -> None:
        self._revocations.revoke_all(user_id)
        logger.info("Revoked all refresh tokens for user %s", user_id)


def _role_value(role) -> str:
    return getattr(role, "value", role)
