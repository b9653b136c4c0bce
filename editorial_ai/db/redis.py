"""Shared Redis client backing the attempt store and the dispatch queue."""

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from editorial_ai.core.config import get_settings

_redis: redis.Redis | None = None


async def init_redis(url: str | None = None) -> None:
    """Create the shared client and verify the server answers."""
    global _redis

    if _redis is not None:
        return

    settings = get_settings()

    _redis = redis.from_url(
        url or settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_timeout=settings.redis_socket_timeout_seconds,
        socket_connect_timeout=settings.redis_socket_timeout_seconds,
    )
    await _redis.ping()


async def close_redis() -> None:
    global _redis

    if _redis is not None:
        await _redis.aclose()
        _redis = None


async def redis_is_reachable() -> bool:
    """Readiness probe: True when the shared client can PING the server."""
    if _redis is None:
        return False
    try:
        return bool(await _redis.ping())
    except (RedisConnectionError, RedisTimeoutError):
        return False


def get_redis() -> redis.Redis:
    """Return the shared Redis client (FastAPI dependency).

    Raises RuntimeError if init_redis() has not been called.
    """
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis
