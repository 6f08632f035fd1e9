"""Fixed-window rate limiting backed by Redis counters.

Rules (per client IP, 60 second window):
  - auth:   POST /api/v1/auth/*    (anti brute-force)
  - orders: POST /api/v1/orders*   (anti spam)

Key pattern: "ratelimit:{client_ip}:{group}". The first hit in a window sets
the key's TTL; requests over the limit get the 9001 envelope with HTTP 429
and a Retry-After header. If Redis is unreachable requests are let through.
"""

import logging
from collections.abc import Awaitable, Callable

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from src.tm_common.errors import RateLimitError
from src.tm_common.response import error_response

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60

RedisGetter = Callable[[], Awaitable[aioredis.Redis]]


def resolve_group(method: str, path: str) -> str | None:
    """Map a request onto its limit group; None means unlimited."""
    if method != "POST":
        return None
    if path.startswith("/api/v1/auth/"):
        return "auth"
    if path.startswith("/api/v1/orders"):
        return "orders"
    return None


def client_ip(request: Request) -> str:
    """First hop of X-Forwarded-For when behind a proxy, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client is not None:
        return request.client.host
    return "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        redis_getter: RedisGetter,
        limits: dict[str, int],
        enabled: bool = True,
    ) -> None:
        super().__init__(app)
        self._redis_getter = redis_getter
        self._limits = limits
        self._enabled = enabled

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        group = resolve_group(request.method, request.url.path)
        if not self._enabled or group is None or group not in self._limits:
            return await call_next(request)

        key = f"ratelimit:{client_ip(request)}:{group}"
        try:
            redis = await self._redis_getter()
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, WINDOW_SECONDS)
            ttl = await redis.ttl(key) if count > self._limits[group] else 0
        except RedisError:
            logger.warning("Rate limiter unavailable, allowing %s", key, exc_info=True)
            return await call_next(request)

        if count > self._limits[group]:
            exc = RateLimitError()
            resp = error_response(exc.code, exc.message)
            resp.request_id = getattr(request.state, "request_id", resp.request_id)
            retry_after = ttl if ttl and ttl > 0 else WINDOW_SECONDS
            return JSONResponse(
                status_code=exc.http_status,
                content=resp.model_dump(),
                headers={"Retry-After": str(retry_after)},
            )
        return await call_next(request)
