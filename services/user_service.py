"""User management: read, list and block accounts."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from models.revocation_store import RevocationStore
from models.schemas.user import UserOutSchema
from models.user import User
from models.user_store import UserStore
from utils.errors import NotFoundError

logger = logging.getLogger(__name__)

user_out_schema = UserOutSchema()
user_list_out_schema = UserOutSchema(many=True)


def public_projection(user: User) -> Dict[str, Any]:
    """Serialize a user without any credential material."""
    return user_out_schema.dump(user)


class UserService:
    """Role checks are the middleware's job; nothing here re-checks them."""

    def __init__(self, *, user_store: UserStore, revocation_store: RevocationStore) -> None:
        self._users = user_store
        self._revocations = revocation_store

    def get_by_id(self, user_id: str) -> Dict[str, Any]:
        user = self._users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return public_projection(user)

    def list_all(self) -> List[Dict[str, Any]]:
        return user_list_out_schema.dump(self._users.list_all())

    def block(self, user_id: str) -> Dict[str, Any]:
        """Deactivate an account for good and revoke every refresh token it holds.

        Blocking an already blocked user is a no-op on the record but still
        revokes tokens. Access tokens already handed out stay valid until
        they expire.
        """
        user = self._users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")

        if user.is_active:
            user.deactivate()
            self._users.update(user)
            logger.info("Blocked user %s", user_id)

        self._revocations.revoke_all(user_id)
        return public_projection(user)
