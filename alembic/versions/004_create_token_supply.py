"""004: create token_supply and admin_supply_transfers tables

Revision ID: 004
Revises: 003
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE token_supply (
            id                      SMALLINT        PRIMARY KEY DEFAULT 1,
            total_supply            NUMERIC(30, 8)  NOT NULL,
            remaining_supply        NUMERIC(30, 8)  NOT NULL,
            user_supply_remaining   NUMERIC(30, 8)  NOT NULL,
            admin_reserve           NUMERIC(30, 8)  NOT NULL,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_token_supply_single_row CHECK (id = 1),
            CONSTRAINT ck_token_supply_total_positive CHECK (total_supply > 0),
            CONSTRAINT ck_token_supply_user_non_negative CHECK (user_supply_remaining >= 0),
            CONSTRAINT ck_token_supply_reserve_non_negative CHECK (admin_reserve >= 0),
            CONSTRAINT ck_token_supply_remaining_le_total CHECK (remaining_supply <= total_supply),
            CONSTRAINT ck_token_supply_split
                CHECK (remaining_supply = user_supply_remaining + admin_reserve)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_token_supply_updated_at
            BEFORE UPDATE ON token_supply
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("""
        CREATE TABLE admin_supply_transfers (
            id          VARCHAR(64)     PRIMARY KEY,
            admin_id    VARCHAR(64)     NOT NULL,
            amount      NUMERIC(30, 8)  NOT NULL,
            reason      VARCHAR(255),
            created_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_supply_transfers_amount_positive CHECK (amount > 0)
        );
    """)
    op.execute(
        "CREATE INDEX idx_supply_transfers_created ON admin_supply_transfers (created_at DESC);"
    )
    op.execute("""
        CREATE TRIGGER trg_supply_transfers_append_only
            BEFORE UPDATE OR DELETE ON admin_supply_transfers
            FOR EACH ROW EXECUTE FUNCTION fn_reject_row_mutation();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS admin_supply_transfers CASCADE;")
    op.execute("DROP TABLE IF EXISTS token_supply CASCADE;")
