"""Order settlement: the atomic balance, supply and ledger effects of one fill.

Shared by MARKET orders (settled at creation) and LIMIT orders (settled by a
matching pass). Runs inside the caller's transaction and does not touch the
order's status; the caller finishes with the CAS to FILLED.

    BUY:  debit fiat `amount`, tokens = net / price, deduct supply, credit tokens
    SELL: debit tokens `amount`, fiat = amount * price - fee, credit fiat,
          return tokens to the user pool when restore_on_sell is set

Every Transaction row records fiat in amount/fee_amount/net_amount and the
token quantity moved in token_amount.
"""

from dataclasses import dataclass, replace
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_account.domain.models import Transaction
from src.tm_account.domain.repository import (
    TransactionRepositoryProtocol,
    WalletRepositoryProtocol,
)
from src.tm_clearing.domain.fee import calculate_fee
from src.tm_clearing.infrastructure.fee_collector import credit_fee_to_admin
from src.tm_common.decimals import ZERO, quantize_amount
from src.tm_common.enums import FeeKind, TransactionStatus, TransactionType
from src.tm_common.errors import ValidationError
from src.tm_common.id_generator import generate_id
from src.tm_order.domain.models import Order
from src.tm_supply.domain.repository import SupplyRepositoryProtocol


@dataclass(frozen=True)
class SettlementResult:
    order_id: str
    user_id: str
    order_type: str
    price: Decimal
    fiat_amount: Decimal      # gross fiat spent (BUY) or earned before fee (SELL)
    fee_amount: Decimal
    net_amount: Decimal
    token_amount: Decimal     # tokens received (BUY) or sold (SELL)
    transaction_id: str


class OrderSettlement:
    def __init__(
        self,
        wallet_repo: WalletRepositoryProtocol,
        tx_repo: TransactionRepositoryProtocol,
        supply_repo: SupplyRepositoryProtocol,
        restore_on_sell: bool = True,
    ) -> None:
        self._wallets = wallet_repo
        self._ledger = tx_repo
        self._supply = supply_repo
        self._restore_on_sell = restore_on_sell

    async def settle(
        self,
        order: Order,
        price: Decimal,
        gateway: str,
        db: AsyncSession,
        fee_kind: str = FeeKind.ORDER.value,
    ) -> SettlementResult:
        """Apply the fill. Raises InsufficientBalanceError / SupplyExhaustedError
        without partial effects as long as the caller rolls back."""
        if price <= ZERO:
            raise ValidationError(f"settlement price must be positive, got {price}")
        if order.is_buy:
            result = await self._settle_buy(order, price, fee_kind, db)
        else:
            result = await self._settle_sell(order, price, fee_kind, db)

        tx = await self._ledger.append(
            Transaction(
                id=generate_id(),
                user_id=order.user_id,
                type=order.order_type,
                amount=result.fiat_amount,
                fee_amount=result.fee_amount,
                net_amount=result.net_amount,
                token_amount=result.token_amount,
                price=price,
                status=TransactionStatus.COMPLETED.value,
                gateway=gateway,
                reference_id=order.id,
                description=(
                    f"{order.price_type} {order.order_type} {result.token_amount} tokens @ {price}"
                ),
            ),
            db,
        )
        if result.fee_amount > ZERO:
            await credit_fee_to_admin(
                result.fee_amount,
                db,
                reference_id=order.id,
                description=f"{fee_kind} fee for order {order.id}",
                wallet_repo=self._wallets,
                tx_repo=self._ledger,
            )
        return replace(result, transaction_id=tx.id)

    async def _settle_buy(
        self, order: Order, price: Decimal, fee_kind: str, db: AsyncSession
    ) -> SettlementResult:
        fee = calculate_fee(order.amount, fee_kind)
        tokens = quantize_amount(fee.net / price)
        if tokens <= ZERO:
            raise ValidationError(f"amount {order.amount} buys no tokens at price {price}")

        await self._wallets.debit_fiat(order.user_id, order.amount, db)
        await self._supply.deduct(tokens, db)
        await self._wallets.credit_tokens(order.user_id, tokens, db)
        return SettlementResult(
            order_id=order.id,
            user_id=order.user_id,
            order_type=TransactionType.BUY.value,
            price=price,
            fiat_amount=order.amount,
            fee_amount=fee.fee,
            net_amount=fee.net,
            token_amount=tokens,
            transaction_id="",
        )

    async def _settle_sell(
        self, order: Order, price: Decimal, fee_kind: str, db: AsyncSession
    ) -> SettlementResult:
        gross = quantize_amount(order.amount * price)
        fee = calculate_fee(gross, fee_kind)

        await self._wallets.debit_tokens(order.user_id, order.amount, db)
        if fee.net > ZERO:
            await self._wallets.credit_fiat(order.user_id, fee.net, db)
        if self._restore_on_sell:
            await self._supply.restore(order.amount, db)
        return SettlementResult(
            order_id=order.id,
            user_id=order.user_id,
            order_type=TransactionType.SELL.value,
            price=price,
            fiat_amount=gross,
            fee_amount=fee.fee,
            net_amount=fee.net,
            token_amount=order.amount,
            transaction_id="",
        )
