"""Authentication and user management services."""
from services.auth_service import AuthService
from services.user_service import UserService, public_projection

__all__ = ["AuthService", "UserService", "public_projection"]
