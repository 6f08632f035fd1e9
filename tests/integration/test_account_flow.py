"""Integration tests for tm_account endpoints (requires running PG).

Pre-condition: alembic upgrade head

Uses the session-scoped client fixture from tests/integration/conftest.py.
"""

import uuid
from decimal import Decimal

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio(loop_scope="session")


def _unique_user() -> dict[str, str]:
    uid = uuid.uuid4().hex[:8]
    return {
        "username": f"acct_{uid}",
        "email": f"acct_{uid}@example.com",
        "password": "TestPass1",
    }


async def _auth(client: AsyncClient) -> dict[str, str]:
    user = _unique_user()
    await client.post("/api/v1/auth/register", json=user)
    resp = await client.post(
        "/api/v1/auth/login",
        json={"username": user["username"], "password": user["password"]},
    )
    return {"Authorization": f"Bearer {resp.json()['data']['access_token']}"}


class TestWallet:
    async def test_new_user_has_empty_wallet(self, client: AsyncClient) -> None:
        headers = await _auth(client)
        resp = await client.get("/api/v1/account/balance", headers=headers)
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert Decimal(data["fiat_balance"]) == 0
        assert Decimal(data["token_balance"]) == 0

    async def test_deposit_then_withdraw_charges_fee(self, client: AsyncClient) -> None:
        headers = await _auth(client)
        await client.post("/api/v1/account/deposit", json={"amount": "100"}, headers=headers)

        resp = await client.post(
            "/api/v1/account/withdraw", json={"amount": "40"}, headers=headers
        )

        assert resp.status_code == 200
        tx = resp.json()["data"]["transaction"]
        assert Decimal(tx["fee_amount"]) == Decimal("4")
        assert Decimal(tx["net_amount"]) == Decimal("36")
        assert Decimal(resp.json()["data"]["fiat_balance"]) == Decimal("60")

    async def test_overdraw_rejected(self, client: AsyncClient) -> None:
        headers = await _auth(client)
        resp = await client.post(
            "/api/v1/account/withdraw", json={"amount": "1"}, headers=headers
        )
        assert resp.status_code == 422
        assert resp.json()["code"] == 2001

    async def test_transaction_history(self, client: AsyncClient) -> None:
        headers = await _auth(client)
        for amount in ("1", "2", "3"):
            await client.post("/api/v1/account/deposit", json={"amount": amount}, headers=headers)

        resp = await client.get(
            "/api/v1/account/transactions", params={"limit": 2}, headers=headers
        )
        data = resp.json()["data"]
        assert len(data["items"]) == 2
        assert data["has_more"] is True


class TestTransfer:
    async def test_tokens_move_between_users(self, client: AsyncClient) -> None:
        sender = await _auth(client)
        recipient = _unique_user()
        registered = await client.post("/api/v1/auth/register", json=recipient)
        recipient_id = registered.json()["data"]["user_id"]

        await client.post("/api/v1/account/deposit", json={"amount": "10"}, headers=sender)
        bought = await client.post(
            "/api/v1/orders",
            json={"order_type": "BUY", "price_type": "MARKET", "amount": "5"},
            headers=sender,
        )
        assert bought.status_code == 201

        resp = await client.post(
            "/api/v1/account/transfer",
            json={"recipient_id": recipient_id, "amount": "100", "note": "gift"},
            headers=sender,
        )

        assert resp.status_code == 200
        tx = resp.json()["data"]["transaction"]
        assert tx["type"] == "TRANSFER"
        assert Decimal(tx["fee_amount"]) == 0
        assert tx["reference_id"] == recipient_id

    async def test_self_transfer_rejected(self, client: AsyncClient) -> None:
        user = _unique_user()
        registered = await client.post("/api/v1/auth/register", json=user)
        login = await client.post(
            "/api/v1/auth/login",
            json={"username": user["username"], "password": user["password"]},
        )
        headers = {"Authorization": f"Bearer {login.json()['data']['access_token']}"}

        resp = await client.post(
            "/api/v1/account/transfer",
            json={"recipient_id": registered.json()["data"]["user_id"], "amount": "1"},
            headers=headers,
        )
        assert resp.status_code == 422
        assert resp.json()["code"] == 4001
