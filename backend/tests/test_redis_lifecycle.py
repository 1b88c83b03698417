"""Tests for Redis singleton lifecycle state safety.

The client is created lazily by redis.asyncio, so these tests exercise the
lifecycle without a running server.
"""

import pytest

from yatrasathi.infrastructure import redis

REDIS_URL = "redis://localhost:6379/15"


@pytest.mark.anyio
async def test_init_redis_is_idempotent() -> None:
    """Calling init_redis() twice returns the same client."""
    redis._reset_for_testing()

    try:
        client1 = await redis.init_redis(REDIS_URL)
        client2 = await redis.init_redis(REDIS_URL)

        assert client1 is client2
        assert redis._redis_state == redis._RedisLifecycleState.INITIALIZED
    finally:
        await redis.close_redis()


@pytest.mark.anyio
async def test_close_redis_is_idempotent() -> None:
    """Calling close_redis() twice is safe."""
    redis._reset_for_testing()

    try:
        await redis.init_redis(REDIS_URL)

        await redis.close_redis()
        assert redis._redis_state == redis._RedisLifecycleState.CLOSED
        assert redis._redis_client is None

        await redis.close_redis()
        assert redis._redis_state == redis._RedisLifecycleState.CLOSED
    finally:
        redis._reset_for_testing()


@pytest.mark.anyio
async def test_close_without_init_is_safe() -> None:
    redis._reset_for_testing()

    await redis.close_redis()
    assert redis._redis_state == redis._RedisLifecycleState.UNINITIALIZED


def test_get_redis_before_init_raises_error() -> None:
    redis._reset_for_testing()

    with pytest.raises(RuntimeError, match="not initialized"):
        redis.get_redis()


@pytest.mark.anyio
async def test_get_redis_after_close_raises_error() -> None:
    redis._reset_for_testing()

    try:
        await redis.init_redis(REDIS_URL)
        assert redis.get_redis() is not None

        await redis.close_redis()
        with pytest.raises(RuntimeError, match="not initialized"):
            redis.get_redis()
    finally:
        redis._reset_for_testing()


@pytest.mark.anyio
async def test_reinit_after_close_is_allowed() -> None:
    redis._reset_for_testing()

    try:
        first = await redis.init_redis(REDIS_URL)
        await redis.close_redis()
        second = await redis.init_redis(REDIS_URL)

        assert second is not first
        assert redis.get_redis() is second
    finally:
        await redis.close_redis()
        redis._reset_for_testing()


@pytest.mark.anyio
async def test_close_disconnects_client() -> None:
    redis._reset_for_testing()

    try:
        client = await redis.init_redis(REDIS_URL)
        assert client.connected

        await redis.close_redis()
        assert not client.connected
    finally:
        redis._reset_for_testing()
