"""Storage package: shared Redis client."""

from editorial_ai.db.redis import close_redis, get_redis, init_redis, redis_is_reachable

__all__ = [
    "close_redis",
    "get_redis",
    "init_redis",
    "redis_is_reachable",
]
