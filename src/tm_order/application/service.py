"""OrderService: create, cancel, and query orders.

LIMIT orders are validated, balance-checked (no funds are reserved) and stored
PENDING for the matching engine. MARKET orders settle immediately at the
current price, inside the same transaction that stores them, and are never
observable as PENDING.
"""

import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_account.domain.repository import WalletRepositoryProtocol
from src.tm_account.infrastructure.persistence import WalletRepository
from src.tm_clearing.domain.settlement import OrderSettlement, SettlementResult
from src.tm_common.datetime_utils import utc_now
from src.tm_common.decimals import quantize_amount
from src.tm_common.enums import CancelReason, OrderStatus, OrderType, PriceType, SettlementGateway
from src.tm_common.errors import (
    OrderForbiddenError,
    OrderNotCancellableError,
    OrderNotFoundError,
    ValidationError,
    WalletNotFoundError,
)
from src.tm_common.id_generator import generate_id
from src.tm_gateway.auth.session import Session
from src.tm_order.domain.models import Order
from src.tm_order.domain.repository import OrderRepositoryProtocol
from src.tm_order.infrastructure.persistence import OrderRepository
from src.tm_risk.rules.balance_check import check_balance
from src.tm_risk.rules.order_input import (
    check_amount,
    check_limit_price,
    check_order_type,
    check_price_type,
    check_token_quantity,
)
from src.tm_valuation.engine.valuation import ValuationEngine

logger = logging.getLogger(__name__)


def estimate_token_amount(order_type: str, amount: Decimal, price: Decimal) -> Decimal:
    if order_type == OrderType.BUY.value:
        return quantize_amount(amount / price)
    return amount


class OrderService:
    def __init__(
        self,
        settlement: OrderSettlement,
        repo: OrderRepositoryProtocol | None = None,
        wallet_repo: WalletRepositoryProtocol | None = None,
        valuation: ValuationEngine | None = None,
    ) -> None:
        self._settlement = settlement
        self._repo: OrderRepositoryProtocol = repo or OrderRepository()
        self._wallets: WalletRepositoryProtocol = wallet_repo or WalletRepository()
        self._valuation = valuation or ValuationEngine()

    async def create_order(
        self,
        session: Session,
        order_type: str,
        price_type: str,
        amount: Decimal,
        limit_price: Decimal | None,
        db: AsyncSession,
    ) -> tuple[Order, SettlementResult | None]:
        check_order_type(order_type)
        check_price_type(price_type)
        check_amount(amount)
        check_limit_price(price_type, limit_price)
        amount = quantize_amount(amount)
        check_amount(amount)

        if price_type == PriceType.LIMIT.value:
            if limit_price is None:
                raise ValidationError("limit_price is required for LIMIT orders")
            check_token_quantity(order_type, amount, limit_price)
            return await self._create_limit(session, order_type, amount, limit_price, db), None
        return await self._create_market(session, order_type, amount, db)

    async def _create_limit(
        self,
        session: Session,
        order_type: str,
        amount: Decimal,
        limit_price: Decimal,
        db: AsyncSession,
    ) -> Order:
        now = utc_now()
        order = Order(
            id=generate_id(),
            user_id=session.id,
            order_type=order_type,
            price_type=PriceType.LIMIT.value,
            amount=amount,
            token_amount=estimate_token_amount(order_type, amount, limit_price),
            limit_price=limit_price,
            status=OrderStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        try:
            wallet = await self._wallets.get_wallet(session.id, db)
            if wallet is None:
                raise WalletNotFoundError(session.id)
            check_balance(order_type, amount, wallet)
            await self._repo.save(order, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Limit order %s placed: %s %s @ %s by %s",
            order.id, order_type, amount, limit_price, session.id,
        )
        return order

    async def _create_market(
        self,
        session: Session,
        order_type: str,
        amount: Decimal,
        db: AsyncSession,
    ) -> tuple[Order, SettlementResult]:
        try:
            quote = await self._valuation.get_settlement_price(db)
            price = quote.current_value
            now = utc_now()
            order = Order(
                id=generate_id(),
                user_id=session.id,
                order_type=order_type,
                price_type=PriceType.MARKET.value,
                amount=amount,
                token_amount=estimate_token_amount(order_type, amount, price),
                status=OrderStatus.PENDING.value,
                created_at=now,
                updated_at=now,
            )
            wallet = await self._wallets.get_wallet(session.id, db, for_update=True)
            if wallet is None:
                raise WalletNotFoundError(session.id)
            check_balance(order_type, amount, wallet)

            await self._repo.save(order, db)
            result = await self._settlement.settle(
                order, price, SettlementGateway.MARKET_ORDER.value, db
            )
            await self._repo.mark_filled(order.id, price, now, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        order.status = OrderStatus.FILLED.value
        order.executed_price = price
        order.executed_at = now
        order.token_amount = result.token_amount
        logger.info(
            "Market order %s filled: %s %s tokens @ %s by %s",
            order.id, order_type, result.token_amount, price, session.id,
        )
        return order, result

    async def cancel_order(self, order_id: str, session: Session, db: AsyncSession) -> Order:
        """PENDING -> CANCELED for the owner (or an admin).

        The CAS on status makes a concurrent fill and cancel mutually exclusive:
        exactly one of them wins.
        """
        try:
            order = await self._repo.get_by_id(order_id, db, for_update=True)
            if order is None:
                raise OrderNotFoundError(order_id)
            if order.user_id != session.id and not session.is_admin:
                raise OrderForbiddenError(order_id)
            if not order.is_pending:
                raise OrderNotCancellableError(order_id, order.status)
            now = utc_now()
            if not await self._repo.mark_canceled(
                order_id, CancelReason.USER_REQUESTED.value, now, db
            ):
                raise OrderNotCancellableError(order_id, "FILLED or CANCELED")
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        order.status = OrderStatus.CANCELED.value
        order.cancel_reason = CancelReason.USER_REQUESTED.value
        order.canceled_at = now
        logger.info("Order %s canceled by %s", order_id, session.id)
        return order

    async def get_order(self, order_id: str, session: Session, db: AsyncSession) -> Order:
        order = await self._repo.get_by_id(order_id, db)
        if order is None:
            raise OrderNotFoundError(order_id)
        if order.user_id != session.id and not session.is_admin:
            raise OrderForbiddenError(order_id)
        return order

    async def list_orders(
        self,
        session: Session,
        status: str | None,
        order_type: str | None,
        limit: int,
        cursor: str | None,
        db: AsyncSession,
    ) -> tuple[list[Order], str | None, bool]:
        """Newest first. Returns (page, next_cursor, has_more)."""
        statuses = [status.upper()] if status else None
        orders = await self._repo.list_by_user(
            user_id=session.id,
            statuses=statuses,
            order_type=order_type.upper() if order_type else None,
            limit=limit + 1,
            cursor_id=cursor,
            db=db,
        )
        has_more = len(orders) > limit
        page = orders[:limit]
        next_cursor = page[-1].id if has_more and page else None
        return page, next_cursor, has_more
