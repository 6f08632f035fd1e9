"""AccountApplicationService: wallet balance, simulated deposit, fee-bearing withdrawal, token transfer.

Mutating operations commit or roll back themselves; reads run without an
explicit transaction.
"""

import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_account.application.schemas import (
    BalanceResponse,
    TransactionItem,
    TransactionListResponse,
    WalletOperationResponse,
    cursor_decode,
    cursor_encode,
)
from src.tm_account.domain.models import Transaction
from src.tm_account.domain.repository import (
    TransactionRepositoryProtocol,
    WalletRepositoryProtocol,
)
from src.tm_account.infrastructure.persistence import TransactionRepository, WalletRepository
from src.tm_clearing.domain.fee import calculate_fee
from src.tm_clearing.infrastructure.fee_collector import credit_fee_to_admin
from src.tm_common.decimals import ZERO, quantize_amount
from src.tm_common.enums import (
    FeeKind,
    SettlementGateway,
    TransactionStatus,
    TransactionType,
)
from src.tm_common.errors import ValidationError, WalletNotFoundError
from src.tm_common.id_generator import generate_id
from src.tm_valuation.engine.valuation import ValuationEngine

logger = logging.getLogger(__name__)


class AccountApplicationService:
    def __init__(
        self,
        wallet_repo: WalletRepositoryProtocol | None = None,
        tx_repo: TransactionRepositoryProtocol | None = None,
        valuation: ValuationEngine | None = None,
    ) -> None:
        self._wallets: WalletRepositoryProtocol = wallet_repo or WalletRepository()
        self._ledger: TransactionRepositoryProtocol = tx_repo or TransactionRepository()
        self._valuation = valuation or ValuationEngine()

    async def get_balance(self, db: AsyncSession, user_id: str) -> BalanceResponse:
        wallet = await self._wallets.get_wallet(user_id, db)
        if wallet is None:
            raise WalletNotFoundError(user_id)
        quote = await self._valuation.get_current_value(db)
        return BalanceResponse.from_wallet(wallet, quote.current_value, quote.degraded)

    async def deposit(
        self, db: AsyncSession, user_id: str, amount: Decimal
    ) -> WalletOperationResponse:
        amount = self._normalize(amount)
        try:
            wallet = await self._wallets.credit_fiat(user_id, amount, db)
            tx = await self._ledger.append(
                Transaction(
                    id=generate_id(),
                    user_id=user_id,
                    type=TransactionType.DEPOSIT.value,
                    amount=amount,
                    fee_amount=ZERO,
                    net_amount=amount,
                    token_amount=ZERO,
                    price=None,
                    status=TransactionStatus.COMPLETED.value,
                    gateway=SettlementGateway.WALLET.value,
                    description="Simulated deposit",
                ),
                db,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return WalletOperationResponse(
            fiat_balance=wallet.fiat_balance,
            token_balance=wallet.token_balance,
            transaction=TransactionItem.from_domain(tx),
        )

    async def withdraw(
        self, db: AsyncSession, user_id: str, amount: Decimal
    ) -> WalletOperationResponse:
        """Debit the gross amount; the withdrawal fee goes to the admin wallet."""
        amount = self._normalize(amount)
        fee = calculate_fee(amount, FeeKind.WITHDRAW)
        try:
            wallet = await self._wallets.debit_fiat(user_id, amount, db)
            tx = await self._ledger.append(
                Transaction(
                    id=generate_id(),
                    user_id=user_id,
                    type=TransactionType.WITHDRAW.value,
                    amount=amount,
                    fee_amount=fee.fee,
                    net_amount=fee.net,
                    token_amount=ZERO,
                    price=None,
                    status=TransactionStatus.COMPLETED.value,
                    gateway=SettlementGateway.WALLET.value,
                    description=f"Withdrawal, {fee.net} paid out",
                ),
                db,
            )
            await credit_fee_to_admin(
                fee.fee,
                db,
                reference_id=tx.id,
                description=f"withdraw fee for {user_id}",
                wallet_repo=self._wallets,
                tx_repo=self._ledger,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("User %s withdrew %s (fee %s)", user_id, amount, fee.fee)
        return WalletOperationResponse(
            fiat_balance=wallet.fiat_balance,
            token_balance=wallet.token_balance,
            transaction=TransactionItem.from_domain(tx),
        )

    async def transfer(
        self,
        db: AsyncSession,
        sender_id: str,
        recipient_id: str,
        amount: Decimal,
        note: str | None = None,
    ) -> WalletOperationResponse:
        """Send tokens to another user's wallet.

        The sender pays the gross amount, the recipient receives the net and any
        transfer fee goes to the admin wallet, all in one transaction. The
        TRANSFER row is owned by the sender and carries token quantities.
        """
        amount = self._normalize(amount)
        if recipient_id == sender_id:
            raise ValidationError("cannot transfer tokens to yourself")
        fee = calculate_fee(amount, FeeKind.TRANSFER)
        try:
            # Lock both wallets in id order so opposite transfers cannot deadlock
            for user_id in sorted((sender_id, recipient_id)):
                if await self._wallets.get_wallet(user_id, db, for_update=True) is None:
                    raise WalletNotFoundError(user_id)
            wallet = await self._wallets.debit_tokens(sender_id, amount, db)
            await self._wallets.credit_tokens(recipient_id, fee.net, db)
            tx = await self._ledger.append(
                Transaction(
                    id=generate_id(),
                    user_id=sender_id,
                    type=TransactionType.TRANSFER.value,
                    amount=amount,
                    fee_amount=fee.fee,
                    net_amount=fee.net,
                    token_amount=amount,
                    price=None,
                    status=TransactionStatus.COMPLETED.value,
                    gateway=SettlementGateway.WALLET.value,
                    reference_id=recipient_id,
                    description=note or f"Transfer to {recipient_id}",
                ),
                db,
            )
            await credit_fee_to_admin(
                fee.fee,
                db,
                reference_id=tx.id,
                description=f"transfer fee for {sender_id}",
                wallet_repo=self._wallets,
                tx_repo=self._ledger,
                asset="token",
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "User %s sent %s tokens to %s (fee %s)", sender_id, amount, recipient_id, fee.fee
        )
        return WalletOperationResponse(
            fiat_balance=wallet.fiat_balance,
            token_balance=wallet.token_balance,
            transaction=TransactionItem.from_domain(tx),
        )

    async def list_transactions(
        self,
        db: AsyncSession,
        user_id: str,
        cursor: str | None,
        limit: int,
        tx_type: str | None,
    ) -> TransactionListResponse:
        cursor_id = cursor_decode(cursor)
        # limit+1 detects has_more without a COUNT(*)
        txs = await self._ledger.list_by_user(
            user_id, tx_type.upper() if tx_type else None, limit + 1, cursor_id, db
        )
        has_more = len(txs) > limit
        page = txs[:limit]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return TransactionListResponse(
            items=[TransactionItem.from_domain(t) for t in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    @staticmethod
    def _normalize(amount: Decimal) -> Decimal:
        value = quantize_amount(amount)
        if value <= ZERO:
            raise ValidationError(f"amount {amount} is below the smallest unit")
        return value
