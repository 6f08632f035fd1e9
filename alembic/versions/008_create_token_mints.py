"""008: create token_mints audit table

Revision ID: 008
Revises: 007
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op

revision: str = "008"
down_revision: Union[str, None] = "007"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE token_mints (
            id                      VARCHAR(64)     PRIMARY KEY,
            admin_id                VARCHAR(64)     NOT NULL,
            amount                  NUMERIC(30, 8)  NOT NULL,
            reason                  VARCHAR(255),
            previous_total_supply   NUMERIC(30, 8)  NOT NULL,
            new_total_supply        NUMERIC(30, 8)  NOT NULL,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_token_mints_amount_positive CHECK (amount > 0),
            CONSTRAINT ck_token_mints_totals
                CHECK (new_total_supply = previous_total_supply + amount)
        );
    """)
    op.execute("CREATE INDEX idx_token_mints_created ON token_mints (created_at DESC);")
    op.execute("""
        CREATE TRIGGER trg_token_mints_append_only
            BEFORE UPDATE OR DELETE ON token_mints
            FOR EACH ROW EXECUTE FUNCTION fn_reject_row_mutation();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS token_mints CASCADE;")
