"""Persisted session snapshots: bearer token -> principal snapshot.

A page reload (a new request carrying the same token) restores the principal
from here before the backend has confirmed the token is still valid.
"""
from __future__ import annotations

import hashlib
import json
import logging
import time
from typing import Any, Protocol

from redis.exceptions import RedisError

from ..infrastructure.redis import RedisClient
from .principal import Principal

logger = logging.getLogger("yatrasathi.session.storage")

KEY_PREFIX = "yatrasathi:session:"


def session_key(token: str) -> str:
    """Tokens are never stored in clear; the key is their SHA-256 digest."""
    return KEY_PREFIX + hashlib.sha256(token.encode("utf-8")).hexdigest()


class SessionStore(Protocol):
    async def load(self, token: str) -> Principal | None: ...

    async def save(self, token: str, principal: Principal) -> None: ...

    async def clear(self, token: str) -> None: ...


def _decode(raw: str | None) -> Principal | None:
    if not raw:
        return None
    try:
        data: Any = json.loads(raw)
        return Principal.model_validate(data)
    except ValueError:
        # Corrupt snapshots are treated as absent
        logger.warning("Discarding unreadable session snapshot")
        return None


class MemorySessionStore:
    """Process-local store for single-instance deployments and tests."""

    def __init__(self, ttl_seconds: int = 86400) -> None:
        self._ttl_seconds = ttl_seconds
        self._data: dict[str, tuple[str, float]] = {}

    async def load(self, token: str) -> Principal | None:
        key = session_key(token)
        entry = self._data.get(key)
        if entry is None:
            return None
        raw, expires_at = entry
        if time.monotonic() >= expires_at:
            self._data.pop(key, None)
            return None
        return _decode(raw)

    async def save(self, token: str, principal: Principal) -> None:
        now = time.monotonic()
        expired = [key for key, (_, expires_at) in self._data.items() if now >= expires_at]
        for key in expired:
            del self._data[key]
        self._data[session_key(token)] = (principal.model_dump_json(), now + self._ttl_seconds)

    async def clear(self, token: str) -> None:
        self._data.pop(session_key(token), None)


class RedisSessionStore:
    """Shared store so every console instance sees the same sessions."""

    def __init__(self, client: RedisClient, ttl_seconds: int = 86400) -> None:
        self._client = client
        self._ttl_seconds = ttl_seconds

    async def load(self, token: str) -> Principal | None:
        try:
            raw = await self._client.get_value(session_key(token))
        except RedisError as exc:
            logger.error("Session store read failed: %s", exc)
            return None
        return _decode(raw)

    async def save(self, token: str, principal: Principal) -> None:
        try:
            await self._client.set_value(
                session_key(token), principal.model_dump_json(), ttl_seconds=self._ttl_seconds
            )
        except RedisError as exc:
            # The next request revalidates against the backend without a snapshot
            logger.error("Session store write failed: %s", exc)

    async def clear(self, token: str) -> None:
        try:
            await self._client.delete_value(session_key(token))
        except RedisError as exc:
            # Local teardown proceeds; the snapshot expires with its TTL
            logger.error("Session store delete failed: %s", exc)
