"""
Revocation store: which refresh-token ids are currently valid.

Layout (Redis):
- refresh_token:<token_id> -> owner user id, TTL = refresh token lifetime
- user_tokens:<user_id>    -> set of live token ids, TTL refreshed on record

The entry and its index membership are written and removed in one
MULTI/EXEC transaction. revoke_all reads the index before deleting it, so a
token recorded for the same user between those two round trips is left
alive until its own TTL runs out.

consume is the single-use gate for rotation: the entry is read and deleted
with one GETDEL, so of two concurrent callers exactly one gets the owner back.
The index member is removed afterwards; a stale member only names a key that
no longer exists.

"Unavailable" (StoreUnavailable) and "absent" (None) are distinct outcomes.
"""
from __future__ import annotations

import logging
import threading
import time
from datetime import timedelta
from typing import Callable, Dict, Optional, Protocol, Set, Tuple

import redis
from redis.exceptions import RedisError

from utils.errors import StoreUnavailable

logger = logging.getLogger(__name__)

TOKEN_KEY_PREFIX = "refresh_token:"
USER_INDEX_PREFIX = "user_tokens:"


def token_key(token_id: str) -> str:
    return f"{TOKEN_KEY_PREFIX}{token_id}"


def user_index_key(user_id: str) -> str:
    return f"{USER_INDEX_PREFIX}{user_id}"


class RevocationStore(Protocol):
    """Contract shared by every backend. All methods raise StoreUnavailable on backend failure."""

    def record(self, token_id: str, user_id: str) -> None: ...

    def lookup_owner(self, token_id: str) -> Optional[str]: ...

    def consume(self, token_id: str) -> Optional[str]: ...

    def revoke(self, token_id: str) -> None: ...

    def revoke_all(self, user_id: str) -> None: ...


class RedisRevocationStore:
    """Redis-backed revocation store."""

    def __init__(self, client: "redis.Redis", ttl: timedelta):
        self.client = client
        self.ttl_seconds = max(1, int(ttl.total_seconds()))

    @classmethod
    def from_url(cls, redis_url: str, ttl: timedelta, *, socket_timeout: float = 5.0) -> "RedisRevocationStore":
        client = redis.Redis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client, ttl)

    def record(self, token_id: str, user_id: str) -> None:
        try:
            pipe = self.client.pipeline(transaction=True)
            pipe.setex(token_key(token_id), self.ttl_seconds, user_id)
            pipe.sadd(user_index_key(user_id), token_id)
            pipe.expire(user_index_key(user_id), self.ttl_seconds)
            pipe.execute()
        except RedisError as exc:
            logger.error("Failed to store refresh token: %s", exc)
            raise StoreUnavailable("Failed to store refresh token") from exc

    def lookup_owner(self, token_id: str) -> Optional[str]:
        try:
            return self.client.get(token_key(token_id))
        except RedisError as exc:
            logger.error("Failed to retrieve refresh token: %s", exc)
            raise StoreUnavailable("Failed to retrieve refresh token") from exc

    def consume(self, token_id: str) -> Optional[str]:
        """Atomically take the entry; None when it was already gone."""
        try:
            owner = self.client.getdel(token_key(token_id))
        except RedisError as exc:
            logger.error("Failed to consume refresh token: %s", exc)
            raise StoreUnavailable("Failed to retrieve refresh token") from exc
        if owner is None:
            return None
        try:
            self.client.srem(user_index_key(owner), token_id)
        except RedisError as exc:
            # the entry is already gone; only the index member is left behind
            logger.warning("Failed to clean token index for user %s: %s", owner, exc)
        return owner

    def revoke(self, token_id: str) -> None:
        try:
            owner = self.client.get(token_key(token_id))
            pipe = self.client.pipeline(transaction=True)
            pipe.delete(token_key(token_id))
            if owner:
                pipe.srem(user_index_key(owner), token_id)
            pipe.execute()
        except RedisError as exc:
            logger.error("Failed to delete refresh token: %s", exc)
            raise StoreUnavailable("Failed to delete refresh token") from exc

    def revoke_all(self, user_id: str) -> None:
        index = user_index_key(user_id)
        try:
            token_ids = self.client.smembers(index)
            pipe = self.client.pipeline(transaction=True)
            if token_ids:
                pipe.delete(*[token_key(t) for t in token_ids])
            pipe.delete(index)
            pipe.execute()
        except RedisError as exc:
            logger.error("Failed to delete user tokens: %s", exc)
            raise StoreUnavailable("Failed to delete user tokens") from exc


class InMemoryRevocationStore:
    """
    Process-local revocation store with the same contract as the Redis one.
    Used for development and tests; it does not survive a restart and is not
    shared between processes.
    """

    def __init__(self, ttl: timedelta, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = max(1, int(ttl.total_seconds()))
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[str, float]] = {}
        self._index: Dict[str, Tuple[Set[str], float]] = {}

    def _purge(self, now: float) -> None:
        for key in [k for k, (_, exp) in self._entries.items() if exp <= now]:
            del self._entries[key]
        for key in [k for k, (_, exp) in self._index.items() if exp <= now]:
            del self._index[key]

    def record(self, token_id: str, user_id: str) -> None:
        with self._lock:
            now = self._clock()
            self._purge(now)
            expires = now + self.ttl_seconds
            self._entries[token_id] = (user_id, expires)
            members, _ = self._index.get(user_id, (set(), expires))
            members.add(token_id)
            self._index[user_id] = (members, expires)

    def lookup_owner(self, token_id: str) -> Optional[str]:
        with self._lock:
            self._purge(self._clock())
            entry = self._entries.get(token_id)
            return entry[0] if entry else None

    def consume(self, token_id: str) -> Optional[str]:
        with self._lock:
            self._purge(self._clock())
            return self._take(token_id)

    def revoke(self, token_id: str) -> None:
        with self._lock:
            self._purge(self._clock())
            self._take(token_id)

    def _take(self, token_id: str) -> Optional[str]:
        # caller holds the lock
        entry = self._entries.pop(token_id, None)
        if entry is None:
            return None
        owner = entry[0]
        if owner in self._index:
            self._index[owner][0].discard(token_id)
        return owner

    def revoke_all(self, user_id: str) -> None:
        with self._lock:
            members, _ = self._index.pop(user_id, (set(), 0.0))
            for token_id in members:
                self._entries.pop(token_id, None)

    def live_tokens(self, user_id: str) -> Set[str]:
        """Snapshot of the index set for a user."""
        with self._lock:
            self._purge(self._clock())
            members, _ = self._index.get(user_id, (set(), 0.0))
            return set(members)


def build_revocation_store(config) -> RevocationStore:
    """Pick the backend named by REVOCATION_BACKEND."""
    ttl = config["REFRESH_TOKEN_EXPIRES"]
    backend = (config.get("REVOCATION_BACKEND") or "redis").lower()
    if backend == "memory":
        logger.warning("Using in-memory revocation store; refresh tokens are not shared between processes")
        return InMemoryRevocationStore(ttl)
    if backend != "redis":
        raise ValueError(f"Unknown REVOCATION_BACKEND: {backend}")
    return RedisRevocationStore.from_url(
        config["REDIS_URL"],
        ttl,
        socket_timeout=config.get("REDIS_SOCKET_TIMEOUT", 5.0),
    )
