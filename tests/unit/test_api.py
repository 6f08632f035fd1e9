"""HTTP-level tests against the FastAPI app with the database dependency overridden."""

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from src.main import app
from src.tm_common.database import get_db_session
from src.tm_gateway.auth.dependencies import get_current_session
from src.tm_gateway.auth.session import Session


@pytest.fixture
def broken_db() -> AsyncMock:
    db = AsyncMock()
    db.execute.side_effect = OperationalError("SELECT 1", {}, Exception("db down"))
    return db


@pytest.fixture
def overrides(broken_db: AsyncMock):
    async def _db() -> AsyncGenerator[AsyncMock, None]:
        yield broken_db

    app.dependency_overrides[get_db_session] = _db
    yield app.dependency_overrides
    app.dependency_overrides.clear()


def _as(session: Session):
    async def _session() -> Session:
        return session

    return _session


async def test_health(client: AsyncClient) -> None:
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert resp.headers["X-Request-ID"].startswith("req_")


async def test_orders_require_token(client: AsyncClient) -> None:
    resp = await client.get("/api/v1/orders")
    assert resp.status_code == 401


async def test_token_value_degrades_when_db_is_down(client: AsyncClient, overrides) -> None:
    resp = await client.get("/api/v1/token/value")
    assert resp.status_code == 200
    body = resp.json()
    assert body["code"] == 0
    assert body["data"]["degraded"] is True
    assert body["data"]["current_value"] == "0.0035"
    assert body["request_id"] == resp.headers["X-Request-ID"]


async def test_admin_routes_reject_regular_users(client: AsyncClient, overrides) -> None:
    overrides[get_current_session] = _as(Session(id="u1", email="u1@example.com"))
    resp = await client.get("/api/v1/admin/supply/validate")
    assert resp.status_code == 403
    assert resp.json()["code"] == 1006


async def test_mint_requires_admin(client: AsyncClient, overrides) -> None:
    overrides[get_current_session] = _as(Session(id="u1", email="u1@example.com"))
    resp = await client.post("/api/v1/admin/supply/mint", json={"amount": "100"})
    assert resp.status_code == 403


async def test_mint_rejects_non_positive_amount(client: AsyncClient, overrides) -> None:
    overrides[get_current_session] = _as(
        Session(id="root", email="root@example.com", role="ADMIN")
    )
    resp = await client.post("/api/v1/admin/supply/mint", json={"amount": "0"})
    assert resp.status_code == 422
    assert resp.json()["code"] == 4001


async def test_transfer_requires_recipient(client: AsyncClient, overrides) -> None:
    overrides[get_current_session] = _as(Session(id="u1", email="u1@example.com"))
    resp = await client.post("/api/v1/account/transfer", json={"amount": "5"})
    assert resp.status_code == 422
    assert resp.json()["code"] == 4001


async def test_order_validation_error_envelope(client: AsyncClient, overrides) -> None:
    overrides[get_current_session] = _as(Session(id="u1", email="u1@example.com"))
    resp = await client.post(
        "/api/v1/orders",
        json={"order_type": "buy", "price_type": "market", "amount": "10", "limit_price": "0.003"},
    )
    assert resp.status_code == 422
    body = resp.json()
    assert body["code"] == 4001
    assert body["data"] is None


async def test_market_order_refused_when_price_unavailable(
    client: AsyncClient, overrides
) -> None:
    overrides[get_current_session] = _as(Session(id="u1", email="u1@example.com"))
    resp = await client.post(
        "/api/v1/orders",
        json={"order_type": "BUY", "price_type": "MARKET", "amount": "10"},
    )
    assert resp.status_code == 503
    assert resp.json()["code"] == 9003


async def test_incoming_request_id_is_echoed(client: AsyncClient, overrides) -> None:
    resp = await client.get("/api/v1/token/value", headers={"X-Request-ID": "trace-42"})
    assert resp.headers["X-Request-ID"] == "trace-42"
    assert resp.json()["request_id"] == "trace-42"


async def test_malformed_body_uses_error_envelope(client: AsyncClient, overrides) -> None:
    overrides[get_current_session] = _as(Session(id="u1", email="u1@example.com"))
    resp = await client.post(
        "/api/v1/orders", json={"order_type": "BUY", "price_type": "LIMIT", "amount": "abc"}
    )
    assert resp.status_code == 422
    body = resp.json()
    assert body["code"] == 4001
    assert body["message"].startswith("Validation failed: amount")
