"""Fixtures for tests that hit a real PostgreSQL (``alembic upgrade head`` applied).

Opt in with RUN_INTEGRATION_TESTS=1. The client and every test share one
session-wide event loop because the engine pool is bound to the loop it was
first used on.
"""

import os
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.main import app

_ENABLED = os.environ.get("RUN_INTEGRATION_TESTS") == "1"


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    skip = pytest.mark.skip(reason="needs PostgreSQL; set RUN_INTEGRATION_TESTS=1")
    for item in items:
        if "integration" not in item.nodeid.split("/"):
            continue
        item.add_marker(pytest.mark.integration)
        if not _ENABLED:
            item.add_marker(skip)


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncIterator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
