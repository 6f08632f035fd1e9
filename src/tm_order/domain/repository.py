"""OrderRepository Protocol: interface contract for persistence layer."""

from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_order.domain.models import Order


class OrderRepositoryProtocol(Protocol):
    async def save(self, order: Order, db: AsyncSession) -> None: ...

    async def get_by_id(
        self, order_id: str, db: AsyncSession, for_update: bool = False
    ) -> Order | None: ...

    async def list_pending_limit(self, db: AsyncSession) -> list[Order]: ...

    async def mark_filled(
        self,
        order_id: str,
        executed_price: Decimal,
        executed_at: datetime,
        db: AsyncSession,
    ) -> bool: ...

    async def mark_canceled(
        self,
        order_id: str,
        reason: str,
        canceled_at: datetime,
        db: AsyncSession,
    ) -> bool: ...

    async def list_by_user(
        self,
        user_id: str,
        statuses: list[str] | None,
        order_type: str | None,
        limit: int,
        cursor_id: str | None,
        db: AsyncSession,
    ) -> list[Order]: ...
