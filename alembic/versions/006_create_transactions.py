"""006: create transactions table (append-only)

Revision ID: 006
Revises: 005
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE transactions (
            id              VARCHAR(64)     PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL,
            type            VARCHAR(16)     NOT NULL,
            amount          NUMERIC(30, 8)  NOT NULL,
            fee_amount      NUMERIC(30, 8)  NOT NULL DEFAULT 0,
            net_amount      NUMERIC(30, 8)  NOT NULL,
            token_amount    NUMERIC(30, 8)  NOT NULL DEFAULT 0,
            price           NUMERIC(38, 18),
            status          VARCHAR(16)     NOT NULL DEFAULT 'COMPLETED',
            gateway         VARCHAR(32)     NOT NULL,
            reference_id    VARCHAR(64),
            description     TEXT,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_transactions_type CHECK (
                type IN ('BUY', 'SELL', 'DEPOSIT', 'WITHDRAW', 'FEE', 'TRANSFER')
            ),
            CONSTRAINT ck_transactions_fee_non_negative CHECK (fee_amount >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_transactions_user ON transactions (user_id, id DESC);")
    op.execute("CREATE INDEX idx_transactions_reference ON transactions (reference_id);")
    op.execute("""
        CREATE TRIGGER trg_transactions_append_only
            BEFORE UPDATE OR DELETE ON transactions
            FOR EACH ROW EXECUTE FUNCTION fn_reject_row_mutation();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS transactions CASCADE;")
