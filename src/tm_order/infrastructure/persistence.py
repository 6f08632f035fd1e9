"""OrderRepository: raw SQL persistence implementation.

Status writes are compare-and-swap on ``status = 'PENDING'``: a False return
means another writer (user cancel or a matching pass) got there first.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_order.domain.models import Order

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_INSERT_ORDER_SQL = text("""
    INSERT INTO orders (id, user_id, order_type, price_type, amount, token_amount,
        limit_price, status, cancel_reason, executed_price,
        created_at, executed_at, canceled_at)
    VALUES (:id, :user_id, :order_type, :price_type, :amount, :token_amount,
        :limit_price, :status, :cancel_reason, :executed_price,
        COALESCE(:created_at, NOW()), :executed_at, :canceled_at)
""")

_SELECT_COLUMNS = """
    id, user_id, order_type, price_type, amount, token_amount, limit_price,
    status, cancel_reason, executed_price, created_at, executed_at, canceled_at, updated_at
"""

_GET_ORDER_BY_ID_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM orders WHERE id = :id
""")

_GET_ORDER_FOR_UPDATE_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM orders WHERE id = :id
    FOR UPDATE
""")

_LIST_PENDING_LIMIT_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM orders
    WHERE status = 'PENDING' AND price_type = 'LIMIT'
    ORDER BY created_at ASC, id ASC
""")

_MARK_FILLED_SQL = text("""
    UPDATE orders
    SET status = 'FILLED',
        executed_price = :executed_price,
        executed_at = :executed_at,
        updated_at = NOW()
    WHERE id = :id AND status = 'PENDING'
    RETURNING id
""")

_MARK_CANCELED_SQL = text("""
    UPDATE orders
    SET status = 'CANCELED',
        cancel_reason = :reason,
        canceled_at = :canceled_at,
        updated_at = NOW()
    WHERE id = :id AND status = 'PENDING'
    RETURNING id
""")

_LIST_ORDERS_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM orders
    WHERE user_id = :user_id
      AND (CAST(:order_type AS TEXT) IS NULL OR order_type = :order_type)
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < :cursor_id)
      AND (CAST(:statuses_csv AS TEXT) IS NULL
           OR status = ANY(string_to_array(CAST(:statuses_csv AS TEXT), ',')))
    ORDER BY id DESC
    LIMIT :limit
""")


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_order(row: Any) -> Order:
    return Order(
        id=row.id,
        user_id=row.user_id,
        order_type=row.order_type,
        price_type=row.price_type,
        amount=row.amount,
        token_amount=row.token_amount,
        limit_price=row.limit_price,
        status=row.status,
        cancel_reason=row.cancel_reason,
        executed_price=row.executed_price,
        created_at=row.created_at,
        executed_at=row.executed_at,
        canceled_at=row.canceled_at,
        updated_at=row.updated_at,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class OrderRepository:
    async def save(self, order: Order, db: AsyncSession) -> None:
        await db.execute(
            _INSERT_ORDER_SQL,
            {
                "id": order.id,
                "user_id": order.user_id,
                "order_type": order.order_type,
                "price_type": order.price_type,
                "amount": order.amount,
                "token_amount": order.token_amount,
                "limit_price": order.limit_price,
                "status": order.status,
                "cancel_reason": order.cancel_reason,
                "executed_price": order.executed_price,
                "created_at": order.created_at,
                "executed_at": order.executed_at,
                "canceled_at": order.canceled_at,
            },
        )

    async def get_by_id(
        self, order_id: str, db: AsyncSession, for_update: bool = False
    ) -> Order | None:
        sql = _GET_ORDER_FOR_UPDATE_SQL if for_update else _GET_ORDER_BY_ID_SQL
        result = await db.execute(sql, {"id": order_id})
        row = result.fetchone()
        return _row_to_order(row) if row else None

    async def list_pending_limit(self, db: AsyncSession) -> list[Order]:
        """All PENDING LIMIT orders system-wide, oldest first."""
        result = await db.execute(_LIST_PENDING_LIMIT_SQL)
        return [_row_to_order(row) for row in result.fetchall()]

    async def mark_filled(
        self,
        order_id: str,
        executed_price: Decimal,
        executed_at: datetime,
        db: AsyncSession,
    ) -> bool:
        result = await db.execute(
            _MARK_FILLED_SQL,
            {"id": order_id, "executed_price": executed_price, "executed_at": executed_at},
        )
        return result.fetchone() is not None

    async def mark_canceled(
        self,
        order_id: str,
        reason: str,
        canceled_at: datetime,
        db: AsyncSession,
    ) -> bool:
        result = await db.execute(
            _MARK_CANCELED_SQL,
            {"id": order_id, "reason": reason, "canceled_at": canceled_at},
        )
        return result.fetchone() is not None

    async def list_by_user(
        self,
        user_id: str,
        statuses: list[str] | None,
        order_type: str | None,
        limit: int,
        cursor_id: str | None,
        db: AsyncSession,
    ) -> list[Order]:
        statuses_csv = ",".join(statuses) if statuses else None
        result = await db.execute(
            _LIST_ORDERS_SQL,
            {
                "user_id": user_id,
                "order_type": order_type,
                "cursor_id": cursor_id,
                "limit": limit,
                "statuses_csv": statuses_csv,
            },
        )
        return [_row_to_order(row) for row in result.fetchall()]
