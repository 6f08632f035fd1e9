"""SupplyRepository: conditional UPDATE ... RETURNING on the token_supply row.

The table holds exactly one row (id = 1), created by the seed migration.
"""

from decimal import Decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_common.errors import (
    InsufficientReserveError,
    InternalError,
    SupplyExhaustedError,
    SupplyNotInitializedError,
)
from src.tm_common.id_generator import generate_id
from src.tm_supply.domain.models import SupplyMint, SupplyTransfer, TokenSupply

_SUPPLY_COLUMNS = "total_supply, remaining_supply, user_supply_remaining, admin_reserve, updated_at"

_GET_SUPPLY_SQL = text(f"SELECT {_SUPPLY_COLUMNS} FROM token_supply WHERE id = 1")

_GET_SUPPLY_FOR_UPDATE_SQL = text(
    f"SELECT {_SUPPLY_COLUMNS} FROM token_supply WHERE id = 1 FOR UPDATE"
)

_DEDUCT_SQL = text(f"""
    UPDATE token_supply
    SET remaining_supply = remaining_supply - :tokens,
        user_supply_remaining = user_supply_remaining - :tokens,
        updated_at = NOW()
    WHERE id = 1 AND user_supply_remaining >= :tokens
    RETURNING {_SUPPLY_COLUMNS}
""")

_RESTORE_SQL = text(f"""
    UPDATE token_supply
    SET remaining_supply = remaining_supply + :tokens,
        user_supply_remaining = user_supply_remaining + :tokens,
        updated_at = NOW()
    WHERE id = 1 AND remaining_supply + :tokens <= total_supply
    RETURNING {_SUPPLY_COLUMNS}
""")

_TRANSFER_SQL = text(f"""
    UPDATE token_supply
    SET admin_reserve = admin_reserve - :amount,
        user_supply_remaining = user_supply_remaining + :amount,
        updated_at = NOW()
    WHERE id = 1 AND admin_reserve >= :amount
    RETURNING {_SUPPLY_COLUMNS}
""")

_INSERT_TRANSFER_SQL = text("""
    INSERT INTO admin_supply_transfers (id, admin_id, amount, reason)
    VALUES (:id, :admin_id, :amount, :reason)
    RETURNING id, admin_id, amount, reason, created_at
""")

_LIST_TRANSFERS_SQL = text("""
    SELECT id, admin_id, amount, reason, created_at
    FROM admin_supply_transfers
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

# New tokens go to the admin reserve, so the user pool and the split are untouched
_MINT_SQL = text(f"""
    UPDATE token_supply
    SET total_supply = total_supply + :amount,
        remaining_supply = remaining_supply + :amount,
        admin_reserve = admin_reserve + :amount,
        updated_at = NOW()
    WHERE id = 1
    RETURNING {_SUPPLY_COLUMNS}
""")

_MINT_COLUMNS = "id, admin_id, amount, reason, previous_total_supply, new_total_supply, created_at"

_INSERT_MINT_SQL = text(f"""
    INSERT INTO token_mints
        (id, admin_id, amount, reason, previous_total_supply, new_total_supply)
    VALUES (:id, :admin_id, :amount, :reason, :previous_total_supply, :new_total_supply)
    RETURNING {_MINT_COLUMNS}
""")

_LIST_MINTS_SQL = text(f"""
    SELECT {_MINT_COLUMNS}
    FROM token_mints
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")


def _row_to_supply(row: Any) -> TokenSupply:
    return TokenSupply(
        total_supply=row.total_supply,
        remaining_supply=row.remaining_supply,
        user_supply_remaining=row.user_supply_remaining,
        admin_reserve=row.admin_reserve,
        updated_at=row.updated_at,
    )


def _row_to_transfer(row: Any) -> SupplyTransfer:
    return SupplyTransfer(
        id=row.id,
        admin_id=row.admin_id,
        amount=row.amount,
        reason=row.reason,
        created_at=row.created_at,
    )


def _row_to_mint(row: Any) -> SupplyMint:
    return SupplyMint(
        id=row.id,
        admin_id=row.admin_id,
        amount=row.amount,
        reason=row.reason,
        previous_total_supply=row.previous_total_supply,
        new_total_supply=row.new_total_supply,
        created_at=row.created_at,
    )


class SupplyRepository:
    async def get_supply(self, db: AsyncSession, for_update: bool = False) -> TokenSupply:
        sql = _GET_SUPPLY_FOR_UPDATE_SQL if for_update else _GET_SUPPLY_SQL
        row = (await db.execute(sql)).fetchone()
        if row is None:
            raise SupplyNotInitializedError()
        return _row_to_supply(row)

    async def deduct(self, tokens: Decimal, db: AsyncSession) -> TokenSupply:
        """Remove ``tokens`` from the user pool; SupplyExhaustedError if it is too small."""
        row = (await db.execute(_DEDUCT_SQL, {"tokens": tokens})).fetchone()
        if row is None:
            current = await self.get_supply(db)
            raise SupplyExhaustedError(tokens, current.user_supply_remaining)
        return _row_to_supply(row)

    async def restore(self, tokens: Decimal, db: AsyncSession) -> TokenSupply:
        row = (await db.execute(_RESTORE_SQL, {"tokens": tokens})).fetchone()
        if row is None:
            current = await self.get_supply(db)
            raise InternalError(
                f"Restoring {tokens} tokens would exceed total supply "
                f"(remaining {current.remaining_supply}, total {current.total_supply})"
            )
        return _row_to_supply(row)

    async def transfer_from_reserve(
        self, admin_id: str, amount: Decimal, reason: str | None, db: AsyncSession
    ) -> tuple[TokenSupply, SupplyTransfer]:
        row = (await db.execute(_TRANSFER_SQL, {"amount": amount})).fetchone()
        if row is None:
            current = await self.get_supply(db)
            raise InsufficientReserveError(amount, current.admin_reserve)
        supply = _row_to_supply(row)

        transfer_row = (
            await db.execute(
                _INSERT_TRANSFER_SQL,
                {"id": generate_id(), "admin_id": admin_id, "amount": amount, "reason": reason},
            )
        ).fetchone()
        if transfer_row is None:
            raise InternalError("Supply transfer insert returned no rows")
        return supply, _row_to_transfer(transfer_row)

    async def list_transfers(self, limit: int, db: AsyncSession) -> list[SupplyTransfer]:
        rows = (await db.execute(_LIST_TRANSFERS_SQL, {"limit": limit})).fetchall()
        return [_row_to_transfer(r) for r in rows]

    async def mint(
        self, admin_id: str, amount: Decimal, reason: str | None, db: AsyncSession
    ) -> tuple[TokenSupply, SupplyMint]:
        row = (await db.execute(_MINT_SQL, {"amount": amount})).fetchone()
        if row is None:
            raise SupplyNotInitializedError()
        supply = _row_to_supply(row)

        mint_row = (
            await db.execute(
                _INSERT_MINT_SQL,
                {
                    "id": generate_id(),
                    "admin_id": admin_id,
                    "amount": amount,
                    "reason": reason,
                    "previous_total_supply": supply.total_supply - amount,
                    "new_total_supply": supply.total_supply,
                },
            )
        ).fetchone()
        if mint_row is None:
            raise InternalError("Token mint insert returned no rows")
        return supply, _row_to_mint(mint_row)

    async def list_mints(self, limit: int, db: AsyncSession) -> list[SupplyMint]:
        rows = (await db.execute(_LIST_MINTS_SQL, {"limit": limit})).fetchall()
        return [_row_to_mint(r) for r in rows]
