"""007: seed admin wallet and the initial token supply

10,000,000 tokens: 20% open to users, 80% held in the admin reserve.

Revision ID: 007
Revises: 006
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        INSERT INTO wallets (user_id, fiat_balance, token_balance, version)
        VALUES ('ADMIN_WALLET', 0, 0, 0)
        ON CONFLICT (user_id) DO NOTHING;
    """)
    op.execute("""
        INSERT INTO token_supply
            (id, total_supply, remaining_supply, user_supply_remaining, admin_reserve)
        VALUES (1, 10000000, 10000000, 2000000, 8000000)
        ON CONFLICT (id) DO NOTHING;
    """)


def downgrade() -> None:
    op.execute("DELETE FROM token_supply WHERE id = 1;")
    op.execute("DELETE FROM wallets WHERE user_id = 'ADMIN_WALLET';")
