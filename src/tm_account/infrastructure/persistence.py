"""WalletRepository / TransactionRepository: raw SQL implementations.

Balance mutations are single ``UPDATE ... RETURNING`` statements guarded by
``balance >= :amount``; zero returned rows means the wallet is missing or the
balance is insufficient, and the caller's transaction must be rolled back.

Transaction ownership: the CALLER opens and commits the transaction.
"""

from decimal import Decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_account.domain.models import Transaction, Wallet
from src.tm_common.enums import TransactionType
from src.tm_common.errors import InsufficientBalanceError, InternalError, WalletNotFoundError
from src.tm_common.id_generator import generate_id

# ---------------------------------------------------------------------------
# SQL: wallets
# ---------------------------------------------------------------------------

_WALLET_COLUMNS = "user_id, fiat_balance, token_balance, version, created_at, updated_at"

_CREATE_WALLET_SQL = text(f"""
    INSERT INTO wallets (user_id, fiat_balance, token_balance, version)
    VALUES (:user_id, 0, 0, 0)
    RETURNING {_WALLET_COLUMNS}
""")

_GET_WALLET_SQL = text(f"""
    SELECT {_WALLET_COLUMNS} FROM wallets WHERE user_id = :user_id
""")

_GET_WALLET_FOR_UPDATE_SQL = text(f"""
    SELECT {_WALLET_COLUMNS} FROM wallets WHERE user_id = :user_id FOR UPDATE
""")

_CREDIT_FIAT_SQL = text(f"""
    UPDATE wallets
    SET fiat_balance = fiat_balance + :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id
    RETURNING {_WALLET_COLUMNS}
""")

_DEBIT_FIAT_SQL = text(f"""
    UPDATE wallets
    SET fiat_balance = fiat_balance - :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id AND fiat_balance >= :amount
    RETURNING {_WALLET_COLUMNS}
""")

_CREDIT_TOKENS_SQL = text(f"""
    UPDATE wallets
    SET token_balance = token_balance + :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id
    RETURNING {_WALLET_COLUMNS}
""")

_DEBIT_TOKENS_SQL = text(f"""
    UPDATE wallets
    SET token_balance = token_balance - :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id AND token_balance >= :amount
    RETURNING {_WALLET_COLUMNS}
""")

_SUM_TOKEN_BALANCES_SQL = text("""
    SELECT COALESCE(SUM(token_balance), 0) AS total FROM wallets
""")

# ---------------------------------------------------------------------------
# SQL: transactions
# ---------------------------------------------------------------------------

_TX_COLUMNS = """
    id, user_id, type, amount, fee_amount, net_amount, token_amount, price,
    status, gateway, reference_id, description, created_at
"""

_INSERT_TX_SQL = text(f"""
    INSERT INTO transactions
        (id, user_id, type, amount, fee_amount, net_amount, token_amount, price,
         status, gateway, reference_id, description)
    VALUES
        (:id, :user_id, :type, :amount, :fee_amount, :net_amount, :token_amount, :price,
         :status, :gateway, :reference_id, :description)
    RETURNING {_TX_COLUMNS}
""")

_LIST_TX_SQL = text(f"""
    SELECT {_TX_COLUMNS}
    FROM transactions
    WHERE user_id = :user_id
      AND (CAST(:tx_type AS TEXT) IS NULL OR type = :tx_type)
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < :cursor_id)
    ORDER BY id DESC
    LIMIT :limit
""")

_SUM_FEES_SQL = text("""
    SELECT COALESCE(SUM(amount), 0) AS total, COUNT(*) AS n
    FROM transactions
    WHERE type = :fee_type
""")


def _row_to_wallet(row: Any) -> Wallet:
    return Wallet(
        user_id=row.user_id,
        fiat_balance=row.fiat_balance,
        token_balance=row.token_balance,
        version=row.version,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_transaction(row: Any) -> Transaction:
    return Transaction(
        id=row.id,
        user_id=row.user_id,
        type=row.type,
        amount=row.amount,
        fee_amount=row.fee_amount,
        net_amount=row.net_amount,
        token_amount=row.token_amount,
        price=row.price,
        status=row.status,
        gateway=row.gateway,
        reference_id=row.reference_id,
        description=row.description,
        created_at=row.created_at,
    )


class WalletRepository:
    async def create_wallet(self, user_id: str, db: AsyncSession) -> Wallet:
        result = await db.execute(_CREATE_WALLET_SQL, {"user_id": user_id})
        row = result.fetchone()
        if row is None:
            raise InternalError(f"Wallet insert returned no rows for user {user_id}")
        return _row_to_wallet(row)

    async def get_wallet(
        self, user_id: str, db: AsyncSession, for_update: bool = False
    ) -> Wallet | None:
        sql = _GET_WALLET_FOR_UPDATE_SQL if for_update else _GET_WALLET_SQL
        result = await db.execute(sql, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_wallet(row) if row else None

    async def credit_fiat(self, user_id: str, amount: Decimal, db: AsyncSession) -> Wallet:
        return await self._credit(_CREDIT_FIAT_SQL, user_id, amount, db)

    async def debit_fiat(self, user_id: str, amount: Decimal, db: AsyncSession) -> Wallet:
        return await self._debit(_DEBIT_FIAT_SQL, "fiat", user_id, amount, db)

    async def credit_tokens(self, user_id: str, amount: Decimal, db: AsyncSession) -> Wallet:
        return await self._credit(_CREDIT_TOKENS_SQL, user_id, amount, db)

    async def debit_tokens(self, user_id: str, amount: Decimal, db: AsyncSession) -> Wallet:
        return await self._debit(_DEBIT_TOKENS_SQL, "token", user_id, amount, db)

    async def sum_token_balances(self, db: AsyncSession) -> Decimal:
        result = await db.execute(_SUM_TOKEN_BALANCES_SQL)
        return Decimal(result.scalar_one())

    async def _credit(
        self, sql: Any, user_id: str, amount: Decimal, db: AsyncSession
    ) -> Wallet:
        result = await db.execute(sql, {"user_id": user_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            raise WalletNotFoundError(user_id)
        return _row_to_wallet(row)

    async def _debit(
        self, sql: Any, asset: str, user_id: str, amount: Decimal, db: AsyncSession
    ) -> Wallet:
        result = await db.execute(sql, {"user_id": user_id, "amount": amount})
        row = result.fetchone()
        if row is not None:
            return _row_to_wallet(row)
        wallet = await self.get_wallet(user_id, db)
        if wallet is None:
            raise WalletNotFoundError(user_id)
        available = wallet.fiat_balance if asset == "fiat" else wallet.token_balance
        raise InsufficientBalanceError(asset, amount, available)


class TransactionRepository:
    """Append-only: no update or delete statements exist for this table."""

    async def append(self, tx: Transaction, db: AsyncSession) -> Transaction:
        result = await db.execute(
            _INSERT_TX_SQL,
            {
                "id": tx.id or generate_id(),
                "user_id": tx.user_id,
                "type": tx.type,
                "amount": tx.amount,
                "fee_amount": tx.fee_amount,
                "net_amount": tx.net_amount,
                "token_amount": tx.token_amount,
                "price": tx.price,
                "status": tx.status,
                "gateway": tx.gateway,
                "reference_id": tx.reference_id,
                "description": tx.description,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Transaction insert returned no rows")
        return _row_to_transaction(row)

    async def list_by_user(
        self,
        user_id: str,
        tx_type: str | None,
        limit: int,
        cursor_id: str | None,
        db: AsyncSession,
    ) -> list[Transaction]:
        result = await db.execute(
            _LIST_TX_SQL,
            {"user_id": user_id, "tx_type": tx_type, "cursor_id": cursor_id, "limit": limit},
        )
        return [_row_to_transaction(r) for r in result.fetchall()]

    async def sum_fees(self, db: AsyncSession) -> tuple[Decimal, int]:
        """Total fee revenue credited to the admin wallet, and the number of fee rows."""
        result = await db.execute(_SUM_FEES_SQL, {"fee_type": TransactionType.FEE.value})
        row = result.one()
        return Decimal(row.total), int(row.n)
