"""
Credential store: durable user records, keyed by id and unique by email.
"""
from __future__ import annotations

from typing import List, Optional

from sqlalchemy import func

from models.db_storage import DBStorage
from models.user import User


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserStore:
    def __init__(self, storage: DBStorage):
        self._storage = storage

    def create(self, user: User) -> User:
        user.email = normalize_email(user.email)
        self._storage.new(user)
        self._storage.save()
        return user

    def find_by_id(self, user_id: str) -> Optional[User]:
        if not user_id:
            return None
        return self._storage.get(User, user_id)

    def find_by_email(self, email: str) -> Optional[User]:
        """Case-insensitive lookup."""
        if not email:
            return None
        session = self._storage.get_session()
        return session.query(User).filter(func.lower(User.email) == normalize_email(email)).first()

    def update(self, user: User) -> User:
        self._storage.new(user)
        self._storage.save()
        return user

    def list_all(self) -> List[User]:
        session = self._storage.get_session()
        return session.query(User).order_by(User.created_at.asc()).all()
