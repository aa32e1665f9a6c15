"""
Environment-aware configuration.
Values come from the process environment, optionally seeded from a .env file.
"""
import os
import re
from datetime import timedelta

from dotenv import load_dotenv

load_dotenv()  # Read .env if present

DEFAULT_JWT_SECRET = "dev-secret-change-me"

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhdw]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400, "w": 604800}


def parse_duration(value) -> timedelta:
    """Parse "15m", "7d", "3600s", "12h" or a bare number of seconds."""
    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)):
        return timedelta(seconds=value)
    match = _DURATION_RE.match(str(value).lower())
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * _DURATION_UNITS[unit])


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Tokens
    JWT_SECRET = os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET)
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "user-access-api")
    ACCESS_TOKEN_EXPIRES = parse_duration(os.getenv("ACCESS_TOKEN_EXPIRES", "15m"))
    REFRESH_TOKEN_EXPIRES = parse_duration(os.getenv("REFRESH_TOKEN_EXPIRES", "7d"))

    # Credential store
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///user-access.db")
    SQLALCHEMY_ECHO = _env_bool("SQLALCHEMY_ECHO")

    # Revocation store
    REVOCATION_BACKEND = os.getenv("REVOCATION_BACKEND", "redis")
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    REDIS_SOCKET_TIMEOUT = float(os.getenv("REDIS_SOCKET_TIMEOUT", "5"))

    # Unhandled errors expose their message unless this is set
    HIDE_INTERNAL_ERRORS = False


class DevelopmentConfig(BaseConfig):
    DEBUG = True


class TestingConfig(BaseConfig):
    TESTING = True
    APP_ENV = "test"
    JWT_SECRET = "test-secret-key-for-testing-only-0123456789"
    DATABASE_URL = "sqlite://"
    REVOCATION_BACKEND = "memory"
    LOG_LEVEL = "WARNING"


class ProductionConfig(BaseConfig):
    DEBUG = False
    HIDE_INTERNAL_ERRORS = True

    @classmethod
    def validate(cls):
        if cls.JWT_SECRET == DEFAULT_JWT_SECRET:
            raise RuntimeError("JWT_SECRET must be set in production")


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        ProductionConfig.validate()
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
