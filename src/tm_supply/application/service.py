"""SupplyService: reads, reserve transfers, minting and consistency checks on the supply ledger.

Deduction and restoration happen inside settlement (tm_clearing.domain.settlement);
this service covers the admin-facing operations.
"""

import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.tm_account.domain.repository import WalletRepositoryProtocol
from src.tm_account.infrastructure.persistence import WalletRepository
from src.tm_common.decimals import ZERO, is_positive_finite, quantize_amount
from src.tm_common.errors import ValidationError
from src.tm_supply.domain.models import SupplyMint, SupplyTransfer, SupplyValidation, TokenSupply
from src.tm_supply.domain.repository import SupplyRepositoryProtocol
from src.tm_supply.infrastructure.persistence import SupplyRepository

logger = logging.getLogger(__name__)


class SupplyService:
    def __init__(
        self,
        repo: SupplyRepositoryProtocol | None = None,
        wallet_repo: WalletRepositoryProtocol | None = None,
        max_mint: Decimal | None = None,
    ) -> None:
        self._repo: SupplyRepositoryProtocol = repo or SupplyRepository()
        self._wallets: WalletRepositoryProtocol = wallet_repo or WalletRepository()
        self._max_mint = max_mint if max_mint is not None else settings.SUPPLY_MAX_MINT

    async def get_supply(self, db: AsyncSession) -> TokenSupply:
        return await self._repo.get_supply(db)

    async def validate_supply(self, db: AsyncSession) -> SupplyValidation:
        """Compare wallet holdings with the persisted distribution counter.

        Read-only: a mismatch is reported and logged, never repaired.
        """
        supply = await self._repo.get_supply(db)
        wallet_total = await self._wallets.sum_token_balances(db)
        discrepancy = wallet_total - supply.distributed_supply
        split_consistent = (
            supply.user_supply_remaining >= ZERO
            and supply.admin_reserve >= ZERO
            and supply.remaining_supply == supply.user_supply_remaining + supply.admin_reserve
        )
        result = SupplyValidation(
            is_valid=discrepancy == ZERO and split_consistent,
            total_supply=supply.total_supply,
            distributed_supply=supply.distributed_supply,
            remaining_supply=supply.remaining_supply,
            wallet_token_total=wallet_total,
            discrepancy=discrepancy,
            split_consistent=split_consistent,
        )
        if not result.is_valid:
            logger.error(
                "Supply inconsistency: wallets hold %s, ledger distributed %s "
                "(discrepancy %s, split_consistent=%s)",
                wallet_total,
                supply.distributed_supply,
                discrepancy,
                split_consistent,
            )
        return result

    async def transfer_from_reserve(
        self,
        admin_id: str,
        amount: Decimal,
        reason: str | None,
        db: AsyncSession,
    ) -> tuple[TokenSupply, SupplyTransfer]:
        """Unlock ``amount`` tokens from the admin reserve into the user supply pool."""
        if not is_positive_finite(amount):
            raise ValidationError(f"transfer amount must be positive, got {amount}")
        amount = quantize_amount(amount)
        if amount <= ZERO:
            raise ValidationError("transfer amount is below the smallest token unit")
        try:
            supply, transfer = await self._repo.transfer_from_reserve(admin_id, amount, reason, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Admin %s moved %s tokens from reserve to user supply (reserve now %s)",
            admin_id,
            amount,
            supply.admin_reserve,
        )
        return supply, transfer

    async def list_transfers(self, limit: int, db: AsyncSession) -> list[SupplyTransfer]:
        return await self._repo.list_transfers(limit, db)

    async def mint(
        self,
        admin_id: str,
        amount: Decimal,
        reason: str | None,
        db: AsyncSession,
    ) -> tuple[TokenSupply, SupplyMint]:
        """Issue ``amount`` new tokens into the admin reserve.

        Total and remaining supply grow together, so the quote moves back toward
        the base value; the user pool is unchanged until a reserve transfer.
        """
        if not is_positive_finite(amount):
            raise ValidationError(f"mint amount must be positive, got {amount}")
        if amount > self._max_mint:
            raise ValidationError(f"mint amount {amount} exceeds the per-mint limit {self._max_mint}")
        amount = quantize_amount(amount)
        if amount <= ZERO:
            raise ValidationError("mint amount is below the smallest token unit")
        try:
            supply, mint = await self._repo.mint(admin_id, amount, reason, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Admin %s minted %s tokens (total supply %s -> %s)",
            admin_id,
            amount,
            mint.previous_total_supply,
            mint.new_total_supply,
        )
        return supply, mint

    async def list_mints(self, limit: int, db: AsyncSession) -> list[SupplyMint]:
        return await self._repo.list_mints(limit, db)
