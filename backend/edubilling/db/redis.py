"""Redis client shared by the notification queue, its worker, and /ready."""

import redis.asyncio as redis

from edubilling.core.config import get_settings

_redis: redis.Redis | None = None


async def init_redis(url: str | None = None) -> None:
    """Connect and ping. Queue payloads are JSON text, so responses are decoded."""
    global _redis

    if _redis is not None:
        return

    client = redis.from_url(url or get_settings().redis_url, encoding="utf-8", decode_responses=True)
    await client.ping()
    _redis = client


async def close_redis() -> None:
    global _redis

    if _redis is not None:
        await _redis.aclose()
        _redis = None


def get_redis() -> redis.Redis:
    """Return the shared client.

    Raises RuntimeError if init_redis() has not been called; webhook
    notification dispatch treats that as "no queue available".
    """
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis
