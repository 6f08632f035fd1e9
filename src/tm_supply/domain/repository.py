from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_supply.domain.models import SupplyMint, SupplyTransfer, TokenSupply


class SupplyRepositoryProtocol(Protocol):
    async def get_supply(self, db: AsyncSession, for_update: bool = False) -> TokenSupply: ...

    async def deduct(self, tokens: Decimal, db: AsyncSession) -> TokenSupply: ...

    async def restore(self, tokens: Decimal, db: AsyncSession) -> TokenSupply: ...

    async def transfer_from_reserve(
        self, admin_id: str, amount: Decimal, reason: str | None, db: AsyncSession
    ) -> tuple[TokenSupply, SupplyTransfer]: ...

    async def list_transfers(self, limit: int, db: AsyncSession) -> list[SupplyTransfer]: ...

    async def mint(
        self, admin_id: str, amount: Decimal, reason: str | None, db: AsyncSession
    ) -> tuple[TokenSupply, SupplyMint]: ...

    async def list_mints(self, limit: int, db: AsyncSession) -> list[SupplyMint]: ...
