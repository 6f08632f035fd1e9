"""Tests for the Redis-backed rate limiting middleware."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from src.tm_gateway.middleware.rate_limit import RateLimitMiddleware, client_ip, resolve_group


class FakeRedis:
    def __init__(self) -> None:
        self.counters: dict[str, int] = {}
        self.ttls: dict[str, int] = {}

    async def incr(self, key: str) -> int:
        self.counters[key] = self.counters.get(key, 0) + 1
        return self.counters[key]

    async def expire(self, key: str, seconds: int) -> bool:
        self.ttls[key] = seconds
        return True

    async def ttl(self, key: str) -> int:
        return self.ttls.get(key, -1)


def _app(redis_getter, limits: dict[str, int] | None = None, enabled: bool = True) -> FastAPI:
    app = FastAPI()

    @app.post("/api/v1/auth/login")
    async def login() -> dict[str, str]:
        return {"ok": "login"}

    @app.post("/api/v1/orders")
    async def create_order() -> dict[str, str]:
        return {"ok": "order"}

    @app.get("/api/v1/orders")
    async def list_orders() -> dict[str, str]:
        return {"ok": "list"}

    app.add_middleware(
        RateLimitMiddleware,
        redis_getter=redis_getter,
        limits=limits or {"auth": 2, "orders": 3},
        enabled=enabled,
    )
    return app


def _client(app: FastAPI) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


class TestResolveGroup:
    @pytest.mark.parametrize(
        ("method", "path", "group"),
        [
            ("POST", "/api/v1/auth/login", "auth"),
            ("POST", "/api/v1/auth/register", "auth"),
            ("POST", "/api/v1/orders", "orders"),
            ("POST", "/api/v1/orders/123/cancel", "orders"),
            ("GET", "/api/v1/orders", None),
            ("POST", "/api/v1/account/deposit", None),
        ],
    )
    def test_groups(self, method: str, path: str, group: str | None) -> None:
        assert resolve_group(method, path) == group


class TestClientIp:
    def test_forwarded_for_first_hop(self) -> None:
        request = MagicMock()
        request.headers = {"x-forwarded-for": "203.0.113.7, 10.0.0.1"}
        assert client_ip(request) == "203.0.113.7"

    def test_socket_peer(self) -> None:
        request = MagicMock()
        request.headers = {}
        request.client.host = "198.51.100.2"
        assert client_ip(request) == "198.51.100.2"

    def test_unknown(self) -> None:
        request = MagicMock()
        request.headers = {}
        request.client = None
        assert client_ip(request) == "unknown"


class TestRateLimitMiddleware:
    async def test_blocks_after_limit_with_envelope(self) -> None:
        redis = FakeRedis()
        async with _client(_app(AsyncMock(return_value=redis))) as client:
            first = await client.post("/api/v1/auth/login")
            second = await client.post("/api/v1/auth/login")
            third = await client.post("/api/v1/auth/login")

        assert first.status_code == 200
        assert second.status_code == 200
        assert third.status_code == 429
        body = third.json()
        assert body["code"] == 9001
        assert body["data"] is None
        assert third.headers["Retry-After"] == "60"
        assert list(redis.ttls.values()) == [60]

    async def test_groups_count_separately(self) -> None:
        redis = FakeRedis()
        async with _client(_app(AsyncMock(return_value=redis))) as client:
            for _ in range(2):
                assert (await client.post("/api/v1/auth/login")).status_code == 200
            assert (await client.post("/api/v1/orders")).status_code == 200

    async def test_reads_are_never_limited(self) -> None:
        redis = FakeRedis()
        async with _client(_app(AsyncMock(return_value=redis), limits={"orders": 1})) as client:
            for _ in range(5):
                assert (await client.get("/api/v1/orders")).status_code == 200
        assert redis.counters == {}

    async def test_redis_outage_fails_open(self) -> None:
        getter = AsyncMock(side_effect=RedisConnectionError("down"))
        async with _client(_app(getter, limits={"auth": 1})) as client:
            for _ in range(3):
                assert (await client.post("/api/v1/auth/login")).status_code == 200

    async def test_disabled(self) -> None:
        redis = FakeRedis()
        async with _client(_app(AsyncMock(return_value=redis), enabled=False)) as client:
            for _ in range(5):
                assert (await client.post("/api/v1/auth/login")).status_code == 200
        assert redis.counters == {}
