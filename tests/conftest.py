from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

import pytest

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from api import create_app  # noqa: E402
from models.user import Role, User  # noqa: E402
from models.user_store import UserStore  # noqa: E402
from utils.security import hash_password  # noqa: E402

DEFAULT_PASSWORD = "Sup3r$ecret"


@pytest.fixture()
def app():
    app = create_app("test")
    yield app
    app.extensions["storage"].close()
    app.extensions["storage"].drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def user_store(app):
    return UserStore(app.extensions["storage"])


@pytest.fixture()
def auth_service(app):
    return app.extensions["auth_service"]


@pytest.fixture()
def user_service(app):
    return app.extensions["user_service"]


@pytest.fixture()
def revocation_store(app):
    return app.extensions["revocation_store"]


@pytest.fixture()
def token_issuer(app):
    return app.extensions["token_issuer"]


def registration(email: str = "a@x.com", password: str = DEFAULT_PASSWORD, **overrides) -> dict:
    body = {
        "fullName": "Ada Lovelace",
        "dateOfBirth": "1990-04-21",
        "email": email,
        "password": password,
    }
    body.update(overrides)
    return body


def register(client, email: str = "a@x.com", password: str = DEFAULT_PASSWORD) -> dict:
    resp = client.post("/api/auth/register", json=registration(email, password))
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]


def login(client, email: str = "a@x.com", password: str = DEFAULT_PASSWORD) -> dict:
    resp = client.post("/api/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()["data"]


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def make_admin(user_store):
    def _make(email: str = "admin@x.com", password: str = DEFAULT_PASSWORD) -> User:
        return user_store.create(
            User(
                full_name="Admin",
                date_of_birth=date(1980, 1, 1),
                email=email,
                password_hash=hash_password(password),
                role=Role.ADMIN,
                is_active=True,
            )
        )

    return _make
