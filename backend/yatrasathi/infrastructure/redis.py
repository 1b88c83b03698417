"""Redis connection backing the shared session store.

Several console instances behind a load balancer must see the same
sessions, so session snapshots live in Redis when REDIS_URL is set. The
connection is a process-wide singleton opened by the app lifespan:

    UNINITIALIZED --init_redis--> INITIALIZED --close_redis--> CLOSED
                                       ^                          |
                                       +--------init_redis--------+
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum, auto

from redis.asyncio import Redis as AsyncRedis, from_url as async_from_url

logger = logging.getLogger("yatrasathi.redis")


class _RedisLifecycleState(Enum):
    UNINITIALIZED = auto()
    INITIALIZED = auto()
    CLOSED = auto()


class RedisClient:
    """String get/set/delete with expiry; enough for session snapshots."""

    def __init__(self, redis_url: str) -> None:
        self._redis_url = redis_url
        self._redis: AsyncRedis | None = None

    @property
    def connected(self) -> bool:
        return self._redis is not None

    async def connect(self) -> None:
        if self._redis is not None:
            return
        # from_url does not open a socket; the pool connects on first command
        self._redis = async_from_url(self._redis_url, encoding="utf-8", decode_responses=True)
        logger.info("Redis client ready")

    async def disconnect(self) -> None:
        if self._redis is None:
            return
        redis, self._redis = self._redis, None
        await redis.aclose()
        logger.info("Redis client closed")

    async def _conn(self) -> AsyncRedis:
        await self.connect()
        assert self._redis is not None
        return self._redis

    async def ping(self) -> bool:
        return bool(await (await self._conn()).ping())

    async def get_value(self, key: str) -> str | None:
        return await (await self._conn()).get(key)

    async def set_value(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        # ttl_seconds of None or 0 stores without expiry
        await (await self._conn()).set(key, value, ex=ttl_seconds or None)

    async def delete_value(self, key: str) -> None:
        await (await self._conn()).delete(key)


_redis_client: RedisClient | None = None
_redis_state: _RedisLifecycleState = _RedisLifecycleState.UNINITIALIZED
_redis_lock: asyncio.Lock = asyncio.Lock()


async def init_redis(redis_url: str) -> RedisClient:
    """Open the shared client. Calling it again while open returns the same one."""
    global _redis_client, _redis_state

    async with _redis_lock:
        if _redis_state is _RedisLifecycleState.INITIALIZED and _redis_client is not None:
            return _redis_client

        logger.info("Opening session store connection (state: %s)", _redis_state.name)
        client = RedisClient(redis_url)
        await client.connect()
        _redis_client = client
        _redis_state = _RedisLifecycleState.INITIALIZED
        return client


async def close_redis() -> None:
    """Close the shared client. A no-op unless it is open."""
    global _redis_client, _redis_state

    async with _redis_lock:
        if _redis_state is not _RedisLifecycleState.INITIALIZED:
            return
        client, _redis_client = _redis_client, None
        _redis_state = _RedisLifecycleState.CLOSED
        if client is not None:
            await client.disconnect()


def get_redis() -> RedisClient:
    """Return the shared client.

    Raises:
        RuntimeError: If the client is not open
    """
    if _redis_state is not _RedisLifecycleState.INITIALIZED or _redis_client is None:
        raise RuntimeError("Redis client not initialized; init_redis() runs in the app lifespan")
    return _redis_client


def _reset_for_testing() -> None:
    global _redis_client, _redis_state, _redis_lock
    _redis_client = None
    _redis_state = _RedisLifecycleState.UNINITIALIZED
    _redis_lock = asyncio.Lock()
