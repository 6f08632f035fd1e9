"""002: users

Accounts for the auth gateway. Every user gets a wallet row (003) keyed by
the UUID rendered as text.

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE users (
            id              UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            username        VARCHAR(64)     NOT NULL UNIQUE
                CHECK (username ~ '^[A-Za-z0-9_]{3,64}$'),
            email           VARCHAR(255)    NOT NULL UNIQUE,
            password_hash   VARCHAR(255)    NOT NULL,
            role            VARCHAR(16)     NOT NULL DEFAULT 'USER'
                CHECK (role IN ('USER', 'ADMIN')),
            is_active       BOOLEAN         NOT NULL DEFAULT TRUE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_users_touch
            BEFORE UPDATE ON users
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("CREATE INDEX idx_users_role ON users (role) WHERE role <> 'USER';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS users CASCADE;")
