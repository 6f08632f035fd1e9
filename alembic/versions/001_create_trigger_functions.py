"""001: shared trigger functions

fn_touch_updated_at keeps updated_at current on mutable tables.
fn_reject_row_mutation makes ledger tables (transactions, supply transfers)
append-only at the database level.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_touch_updated_at()
        RETURNS TRIGGER LANGUAGE plpgsql AS $$
        BEGIN
            NEW.updated_at := NOW();
            RETURN NEW;
        END $$;
    """)
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_reject_row_mutation()
        RETURNS TRIGGER LANGUAGE plpgsql AS $$
        BEGIN
            RAISE EXCEPTION '% rows are immutable (% rejected)', TG_TABLE_NAME, TG_OP;
        END $$;
    """)


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS fn_reject_row_mutation();")
    op.execute("DROP FUNCTION IF EXISTS fn_touch_updated_at();")
