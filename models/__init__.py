"""Persistence layer: SQLAlchemy models, the credential store and the revocation store."""
from models.base_model import Base
from models.user import Role, User

__all__ = ["Base", "Role", "User"]
