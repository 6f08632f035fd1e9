"""Repository Protocols: unit tests inject fakes or mocks conforming to these."""

from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_account.domain.models import Transaction, Wallet


class WalletRepositoryProtocol(Protocol):
    async def create_wallet(self, user_id: str, db: AsyncSession) -> Wallet: ...

    async def get_wallet(
        self, user_id: str, db: AsyncSession, for_update: bool = False
    ) -> Wallet | None: ...

    async def credit_fiat(self, user_id: str, amount: Decimal, db: AsyncSession) -> Wallet: ...

    async def debit_fiat(self, user_id: str, amount: Decimal, db: AsyncSession) -> Wallet: ...

    async def credit_tokens(self, user_id: str, amount: Decimal, db: AsyncSession) -> Wallet: ...

    async def debit_tokens(self, user_id: str, amount: Decimal, db: AsyncSession) -> Wallet: ...

    async def sum_token_balances(self, db: AsyncSession) -> Decimal: ...


class TransactionRepositoryProtocol(Protocol):
    async def append(self, tx: Transaction, db: AsyncSession) -> Transaction: ...

    async def list_by_user(
        self,
        user_id: str,
        tx_type: str | None,
        limit: int,
        cursor_id: str | None,
        db: AsyncSession,
    ) -> list[Transaction]: ...

    async def sum_fees(self, db: AsyncSession) -> tuple[Decimal, int]: ...
