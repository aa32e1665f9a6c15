"""
Token issuance and verification via PyJWT.

Two kinds of tokens are signed with the same key:
- access tokens, short lived, carry no jti
- refresh tokens, long lived, carry a fresh random jti that the revocation
  store tracks; rotated tokens share nothing but the subject
"""
from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from utils.errors import (
    InvalidSignatureError,
    MalformedTokenError,
    TokenExpiredError,
    WrongTokenKindError,
)

DEFAULT_ACCESS_TTL = timedelta(minutes=15)
DEFAULT_REFRESH_TTL = timedelta(days=7)


class TokenKind(str, enum.Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class TokenPayload:
    subject_user_id: str
    role: str
    kind: TokenKind
    issued_at: datetime
    expires_at: datetime
    token_id: Optional[str] = None


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    token_id: str

    def to_dict(self) -> Dict[str, str]:
        # token_id stays server side
        return {"accessToken": self.access_token, "refreshToken": self.refresh_token}


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _payload_from_claims(claims: Dict[str, Any]) -> TokenPayload:
    try:
        kind = TokenKind(claims["type"])
        return TokenPayload(
            subject_user_id=str(claims["sub"]),
            role=str(claims["role"]),
            kind=kind,
            issued_at=datetime.fromtimestamp(int(claims["iat"]), tz=timezone.utc),
            expires_at=datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc),
            token_id=claims.get("jti") or None,
        )
    except (KeyError, TypeError, ValueError, OverflowError) as exc:
        raise MalformedTokenError() from exc


class TokenIssuer:
    """Creates and verifies signed, time-bounded access and refresh tokens."""

    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        access_ttl: timedelta = DEFAULT_ACCESS_TTL,
        refresh_ttl: timedelta = DEFAULT_REFRESH_TTL,
        issuer: str = "user-access-api",
    ):
        if not secret:
            raise ValueError("a signing secret is required")
        self._secret = secret
        self._algorithm = algorithm
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self._issuer = issuer

    def _encode(self, user_id: str, role: str, kind: TokenKind, ttl: timedelta, jti: Optional[str] = None) -> str:
        now = _now()
        claims: Dict[str, Any] = {
            "iss": self._issuer,
            "sub": str(user_id),
            "role": str(role),
            "type": kind.value,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
        }
        if jti:
            claims["jti"] = jti
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def issue_access_token(self, user_id: str, role: str) -> str:
        return self._encode(user_id, role, TokenKind.ACCESS, self.access_ttl)

    def issue_refresh_token(self, user_id: str, role: str) -> tuple[str, str]:
        token_id = generate_jti()
        token = self._encode(user_id, role, TokenKind.REFRESH, self.refresh_ttl, jti=token_id)
        return token, token_id

    def issue_pair(self, user_id: str, role: str) -> TokenPair:
        access_token = self.issue_access_token(user_id, role)
        refresh_token, token_id = self.issue_refresh_token(user_id, role)
        return TokenPair(access_token=access_token, refresh_token=refresh_token, token_id=token_id)

    def verify(self, token: str, expected_kind: TokenKind) -> TokenPayload:
        """
        Decode and validate a token. Raises on a bad signature, expiry, a
        malformed token or a token of the other kind.
        """
        if not token or not isinstance(token, str):
            raise MalformedTokenError()
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "iat", "exp", "type"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpiredError() from exc
        except jwt.InvalidSignatureError as exc:
            raise InvalidSignatureError() from exc
        except jwt.InvalidTokenError as exc:
            raise MalformedTokenError() from exc

        if claims.get("type") != expected_kind.value:
            raise WrongTokenKindError()
        payload = _payload_from_claims(claims)
        if payload.kind is TokenKind.REFRESH and not payload.token_id:
            raise MalformedTokenError()
        if payload.kind is TokenKind.ACCESS and payload.token_id:
            raise MalformedTokenError()
        return payload

    def decode_unsafe(self, token: str) -> Optional[TokenPayload]:
        """Read a token without checking signature or expiry.

        Only for best-effort cleanup where a stale or tampered token still
        has to be inspected. Returns None when nothing usable can be read.
        """
        if not token or not isinstance(token, str):
            return None
        try:
            claims = jwt.decode(token, options={"verify_signature": False, "verify_exp": False})
        except jwt.InvalidTokenError:
            return None
        if not isinstance(claims, dict):
            return None
        try:
            return _payload_from_claims(claims)
        except MalformedTokenError:
            return None
