"""003: create wallets table

Revision ID: 003
Revises: 002
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE wallets (
            user_id         VARCHAR(64)     PRIMARY KEY,
            fiat_balance    NUMERIC(30, 8)  NOT NULL DEFAULT 0,
            token_balance   NUMERIC(30, 8)  NOT NULL DEFAULT 0,
            version         BIGINT          NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_wallets_fiat_non_negative  CHECK (fiat_balance >= 0),
            CONSTRAINT ck_wallets_token_non_negative CHECK (token_balance >= 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_wallets_updated_at
            BEFORE UPDATE ON wallets
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute(
        "COMMENT ON TABLE wallets IS "
        "'Per-user fiat and token balances; ADMIN_WALLET collects fees';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS wallets CASCADE;")
