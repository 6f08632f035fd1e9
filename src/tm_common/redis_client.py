"""Lazily created Redis client used for rate-limit counters.

PostgreSQL stays the source of truth for balances, orders and supply.
"""

import redis.asyncio as aioredis

from config.settings import settings

_client: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    global _client  # noqa: PLW0603
    if _client is None:
        # Short timeouts so the rate limiter fails open quickly when Redis is down
        _client = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
            socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT,
        )
    return _client


async def ping_redis() -> bool:
    client = await get_redis()
    return bool(await client.ping())


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is None:
        return
    await _client.aclose()
    _client = None
