"""005: create orders table

Revision ID: 005
Revises: 004
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE orders (
            id              VARCHAR(64)     PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL,
            order_type      VARCHAR(8)      NOT NULL,
            price_type      VARCHAR(8)      NOT NULL,
            amount          NUMERIC(30, 8)  NOT NULL,
            token_amount    NUMERIC(30, 8)  NOT NULL,
            limit_price     NUMERIC(38, 18),
            status          VARCHAR(16)     NOT NULL DEFAULT 'PENDING',
            cancel_reason   VARCHAR(32),
            executed_price  NUMERIC(38, 18),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            executed_at     TIMESTAMPTZ,
            canceled_at     TIMESTAMPTZ,
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_orders_type       CHECK (order_type IN ('BUY', 'SELL')),
            CONSTRAINT ck_orders_price_type CHECK (price_type IN ('MARKET', 'LIMIT')),
            CONSTRAINT ck_orders_status     CHECK (status IN ('PENDING', 'FILLED', 'CANCELED')),
            CONSTRAINT ck_orders_amount_positive CHECK (amount > 0),
            CONSTRAINT ck_orders_limit_price CHECK (
                (price_type = 'LIMIT' AND limit_price > 0)
                OR (price_type = 'MARKET' AND limit_price IS NULL)
            ),
            CONSTRAINT ck_orders_cancel_reason CHECK (
                cancel_reason IS NULL
                OR cancel_reason IN ('USER_REQUESTED', 'INSUFFICIENT_BALANCE')
            )
        );
    """)
    # Matching pass scan: pending limit orders, oldest first
    op.execute("""
        CREATE INDEX idx_orders_pending_limit ON orders (created_at, id)
        WHERE status = 'PENDING' AND price_type = 'LIMIT';
    """)
    op.execute("CREATE INDEX idx_orders_user ON orders (user_id, id DESC);")
    op.execute("""
        CREATE TRIGGER trg_orders_updated_at
            BEFORE UPDATE ON orders
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    # Terminal rows are immutable
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_orders_terminal_guard()
        RETURNS TRIGGER AS $$
        BEGIN
            IF OLD.status IN ('FILLED', 'CANCELED') THEN
                RAISE EXCEPTION 'order % is % and cannot change', OLD.id, OLD.status;
            END IF;
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TRIGGER trg_orders_terminal_guard
            BEFORE UPDATE ON orders
            FOR EACH ROW EXECUTE FUNCTION fn_orders_terminal_guard();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS orders CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS fn_orders_terminal_guard();")
