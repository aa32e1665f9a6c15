from __future__ import annotations

import threading
from datetime import date, timedelta

import pytest

from models.revocation_store import InMemoryRevocationStore
from services.auth_service import AuthService
from utils.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    StoreUnavailable,
    UnauthorizedError,
    WrongTokenKindError,
)
from utils.tokens import TokenKind

PASSWORD = "Sup3r$ecret"


class FlakyStore(InMemoryRevocationStore):
    """In-memory store whose operations can be switched to fail."""

    def __init__(self) -> None:
        super().__init__(timedelta(days=7))
        self.fail_consume = False

    def consume(self, token_id):
        if self.fail_consume:
            raise StoreUnavailable()
        return super().consume(token_id)


class RacingStore(InMemoryRevocationStore):
    """Holds every consume() caller at a barrier so they enter the store together."""

    def __init__(self, parties: int) -> None:
        super().__init__(timedelta(days=7))
        self.barrier = threading.Barrier(parties, timeout=5)

    def consume(self, token_id):
        self.barrier.wait()
        return super().consume(token_id)


def _profile(email: str = "a@x.com") -> dict:
    return {
        "full_name": "Ada Lovelace",
        "date_of_birth": date(1990, 4, 21),
        "email": email,
        "password": PASSWORD,
    }


@pytest.fixture()
def flaky_store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture()
def flaky_service(user_store, token_issuer, flaky_store) -> AuthService:
    return AuthService(user_store=user_store, token_issuer=token_issuer, revocation_store=flaky_store)


def test_register_returns_projection_without_password(auth_service) -> None:
    user = auth_service.register(_profile())

    assert user["email"] == "a@x.com"
    assert user["role"] == "user"
    assert user["isActive"] is True
    assert "password" not in user
    assert "password_hash" not in user
    assert "passwordHash" not in user


@pytest.mark.parametrize("email", ["a@x.com", "A@X.COM", "A@x.Com"])
def test_register_same_email_any_case_conflicts(auth_service, email: str) -> None:
    auth_service.register(_profile("a@x.com"))

    with pytest.raises(ConflictError):
        auth_service.register(_profile(email))


def test_login_issues_verifiable_pair(auth_service, token_issuer, revocation_store) -> None:
    registered = auth_service.register(_profile())

    result = auth_service.login("A@X.com", PASSWORD)

    access = token_issuer.verify(result["tokens"]["accessToken"], TokenKind.ACCESS)
    refresh = token_issuer.verify(result["tokens"]["refreshToken"], TokenKind.REFRESH)
    assert access.subject_user_id == registered["id"]
    assert access.role == "user"
    assert refresh.subject_user_id == registered["id"]
    assert refresh.token_id
    assert revocation_store.lookup_owner(refresh.token_id) == registered["id"]
    assert result["user"]["id"] == registered["id"]


def test_unknown_email_and_bad_password_fail_identically(auth_service) -> None:
    auth_service.register(_profile())

    with pytest.raises(UnauthorizedError) as unknown:
        auth_service.login("nobody@x.com", PASSWORD)
    with pytest.raises(UnauthorizedError) as wrong:
        auth_service.login("a@x.com", "Wr0ng$pass")

    assert unknown.value.message == wrong.value.message == "Invalid credentials"


def test_blocked_account_is_reported_before_password_check(auth_service, user_service) -> None:
    user = auth_service.register(_profile())
    user_service.block(user["id"])

    with pytest.raises(ForbiddenError) as right:
        auth_service.login("a@x.com", PASSWORD)
    with pytest.raises(ForbiddenError) as wrong:
        auth_service.login("a@x.com", "Wr0ng$pass")

    assert right.value.message == wrong.value.message == "Account is blocked"


def test_refresh_rotates_and_is_single_use(auth_service, token_issuer, revocation_store) -> None:
    auth_service.register(_profile())
    original = auth_service.login("a@x.com", PASSWORD)["tokens"]["refreshToken"]
    old_id = token_issuer.verify(original, TokenKind.REFRESH).token_id

    rotated = auth_service.refresh(original)

    new_id = token_issuer.verify(rotated["refreshToken"], TokenKind.REFRESH).token_id
    assert new_id != old_id
    assert revocation_store.lookup_owner(old_id) is None
    assert revocation_store.lookup_owner(new_id) is not None
    token_issuer.verify(rotated["accessToken"], TokenKind.ACCESS)

    with pytest.raises(UnauthorizedError) as exc:
        auth_service.refresh(original)
    assert exc.value.message == "Invalid or revoked token"


def test_rotated_token_can_be_refreshed_again(auth_service) -> None:
    auth_service.register(_profile())
    tokens = auth_service.login("a@x.com", PASSWORD)["tokens"]

    for _ in range(3):
        tokens = auth_service.refresh(tokens["refreshToken"])

    assert set(tokens) == {"accessToken", "refreshToken"}


def test_refresh_rejects_access_token(auth_service) -> None:
    auth_service.register(_profile())
    tokens = auth_service.login("a@x.com", PASSWORD)["tokens"]

    with pytest.raises(WrongTokenKindError):
        auth_service.refresh(tokens["accessToken"])


def test_refresh_for_blocked_user_revokes_and_forbids(auth_service, user_store, token_issuer, revocation_store) -> None:
    user = auth_service.register(_profile())
    refresh_token = auth_service.login("a@x.com", PASSWORD)["tokens"]["refreshToken"]
    token_id = token_issuer.verify(refresh_token, TokenKind.REFRESH).token_id
    # deactivate without going through block() so the entry is still live
    record = user_store.find_by_id(user["id"])
    record.deactivate()
    user_store.update(record)

    with pytest.raises(ForbiddenError):
        auth_service.refresh(refresh_token)
    assert revocation_store.lookup_owner(token_id) is None


def test_refresh_for_missing_user_cleans_up(auth_service, token_issuer, revocation_store) -> None:
    pair = token_issuer.issue_pair("9b2f6a3e-6b0e-4c1a-9d3e-000000000000", "user")
    revocation_store.record(pair.token_id, "9b2f6a3e-6b0e-4c1a-9d3e-000000000000")

    with pytest.raises(NotFoundError):
        auth_service.refresh(pair.refresh_token)
    assert revocation_store.lookup_owner(pair.token_id) is None


def test_refresh_fails_closed_when_store_unavailable(flaky_service, flaky_store) -> None:
    flaky_service.register(_profile())
    refresh_token = flaky_service.login("a@x.com", PASSWORD)["tokens"]["refreshToken"]
    flaky_store.fail_consume = True

    with pytest.raises(StoreUnavailable):
        flaky_service.refresh(refresh_token)

    # the outage left the token in place; it still rotates once the store is back
    flaky_store.fail_consume = False
    assert set(flaky_service.refresh(refresh_token)) == {"accessToken", "refreshToken"}


def test_concurrent_refresh_rotates_exactly_once(user_store, token_issuer) -> None:
    store = RacingStore(parties=2)
    service = AuthService(user_store=user_store, token_issuer=token_issuer, revocation_store=store)
    user = service.register(_profile())
    refresh_token = service.login("a@x.com", PASSWORD)["tokens"]["refreshToken"]
    results, errors = [], []

    def attempt() -> None:
        try:
            results.append(service.refresh(refresh_token))
        except UnauthorizedError as exc:
            errors.append(exc)

    threads = [threading.Thread(target=attempt) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert len(results) == 1
    assert len(errors) == 1
    assert errors[0].message == "Invalid or revoked token"
    new_id = token_issuer.verify(results[0]["refreshToken"], TokenKind.REFRESH).token_id
    assert store.live_tokens(user["id"]) == {new_id}


def test_logout_revokes_refresh_token(auth_service) -> None:
    auth_service.register(_profile())
    refresh_token = auth_service.login("a@x.com", PASSWORD)["tokens"]["refreshToken"]

    auth_service.logout(refresh_token)
    auth_service.logout(refresh_token)

    with pytest.raises(UnauthorizedError):
        auth_service.refresh(refresh_token)


@pytest.mark.parametrize("token", [None, "", "garbage", "a.b.c"])
def test_logout_never_fails_on_bad_input(auth_service, token) -> None:
    auth_service.logout(token)


def test_logout_accepts_expired_refresh_token(auth_service, revocation_store) -> None:
    from utils.tokens import TokenIssuer

    expired_issuer = TokenIssuer("any-key-will-do-0123456789abcdef0123", refresh_ttl=timedelta(seconds=-30))
    token, token_id = expired_issuer.issue_refresh_token("u1", "user")
    revocation_store.record(token_id, "u1")

    auth_service.logout(token)

    assert revocation_store.lookup_owner(token_id) is None


def test_logout_all_revokes_every_device(auth_service) -> None:
    user = auth_service.register(_profile())
    device1 = auth_service.login("a@x.com", PASSWORD)["tokens"]
    device2 = auth_service.login("a@x.com", PASSWORD)["tokens"]

    auth_service.logout_all(user["id"])

    for tokens in (device1, device2):
        with pytest.raises(UnauthorizedError):
            auth_service.refresh(tokens["refreshToken"])
