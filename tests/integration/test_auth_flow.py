"""Integration tests for /auth endpoints (requires running PG)."""

import uuid

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio(loop_scope="session")


def _unique_user() -> dict[str, str]:
    uid = uuid.uuid4().hex[:8]
    return {
        "username": f"auth_{uid}",
        "email": f"auth_{uid}@example.com",
        "password": "TestPass1",
    }


class TestRegisterLogin:
    async def test_register_creates_user_role(self, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/auth/register", json=_unique_user())
        assert resp.status_code == 201
        assert resp.json()["data"]["role"] == "USER"

    async def test_duplicate_username(self, client: AsyncClient) -> None:
        user = _unique_user()
        await client.post("/api/v1/auth/register", json=user)
        resp = await client.post(
            "/api/v1/auth/register", json={**user, "email": "other_" + user["email"]}
        )
        assert resp.status_code == 409
        assert resp.json()["code"] == 1001

    async def test_login_and_refresh(self, client: AsyncClient) -> None:
        user = _unique_user()
        await client.post("/api/v1/auth/register", json=user)
        login = await client.post(
            "/api/v1/auth/login",
            json={"username": user["username"], "password": user["password"]},
        )
        assert login.status_code == 200
        refresh_token = login.json()["data"]["refresh_token"]

        resp = await client.post("/api/v1/auth/refresh", json={"refresh_token": refresh_token})
        assert resp.status_code == 200
        assert resp.json()["data"]["access_token"]

    async def test_wrong_password(self, client: AsyncClient) -> None:
        user = _unique_user()
        await client.post("/api/v1/auth/register", json=user)
        resp = await client.post(
            "/api/v1/auth/login",
            json={"username": user["username"], "password": "WrongPass1"},
        )
        assert resp.status_code == 401
        assert resp.json()["code"] == 1003
