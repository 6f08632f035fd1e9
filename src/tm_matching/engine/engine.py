"""MatchingEngine: one synchronous pass over all PENDING LIMIT orders.

A pass reads a single quote and the pending list in a short read session, then
settles each eligible order, oldest first, in its own session and transaction.
A failure on one order rolls back that order only; the pass carries on.
Only PENDING rows are ever touched, so running a pass twice is harmless.
"""

import logging
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.tm_account.domain.repository import WalletRepositoryProtocol
from src.tm_clearing.domain.settlement import OrderSettlement
from src.tm_common.datetime_utils import utc_now
from src.tm_common.enums import CancelReason, SettlementGateway
from src.tm_common.errors import (
    AppError,
    PersistenceError,
    PriceUnavailableError,
    SupplyExhaustedError,
    WalletNotFoundError,
)
from src.tm_matching.domain.models import MatchingPassResult, OrderOutcome
from src.tm_matching.engine.eligibility import is_eligible
from src.tm_order.domain.models import Order
from src.tm_order.domain.repository import OrderRepositoryProtocol
from src.tm_risk.rules.balance_check import has_sufficient_balance
from src.tm_valuation.engine.valuation import ValuationEngine

logger = logging.getLogger(__name__)


class _OrderStateChanged(Exception):
    """The order left PENDING between the scan and our row lock."""


class MatchingEngine:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        order_repo: OrderRepositoryProtocol,
        wallet_repo: WalletRepositoryProtocol,
        valuation: ValuationEngine,
        settlement: OrderSettlement,
    ) -> None:
        self._session_factory = session_factory
        self._orders = order_repo
        self._wallets = wallet_repo
        self._valuation = valuation
        self._settlement = settlement

    async def run_matching_pass(self) -> MatchingPassResult:
        """Scan pending LIMIT orders and settle every eligible one.

        Raises PriceUnavailableError (before touching any order) when the
        quote is degraded.
        """
        async with self._session_factory() as db:
            quote = await self._valuation.get_current_value(db)
            if quote.degraded:
                logger.error("Matching pass aborted: token price unavailable")
                raise PriceUnavailableError("Matching pass aborted: token price is degraded")
            pending = await self._orders.list_pending_limit(db)

        price = quote.current_value
        result = MatchingPassResult(scanned_count=len(pending), price=price)
        logger.info("Matching pass started: %d pending limit orders @ %s", len(pending), price)

        for order in pending:
            if not is_eligible(order.order_type, order.limit_price, price):
                continue
            outcome = await self._process_order(order, price)
            result.record(order.id, outcome)

        logger.info(
            "Matching pass finished: scanned=%d executed=%d canceled=%d skipped=%d failed=%d",
            result.scanned_count,
            result.executed_count,
            result.canceled_count,
            result.skipped_count,
            result.failed_count,
        )
        return result

    async def _process_order(self, order: Order, price: Decimal) -> OrderOutcome:
        try:
            async with self._session_factory() as db:
                async with db.begin():
                    return await self._settle_one(order.id, price, db)
        except _OrderStateChanged:
            logger.info("Order %s left PENDING before settlement, skipped", order.id)
            return OrderOutcome.SKIPPED
        except SupplyExhaustedError as exc:
            logger.warning("Order %s skipped: %s", order.id, exc.message)
            return OrderOutcome.SKIPPED
        except SQLAlchemyError as exc:
            err = PersistenceError(str(exc))
            logger.exception("Order %s rolled back: %s", order.id, err.message)
            return OrderOutcome.FAILED
        except AppError as exc:
            logger.error("Order %s rolled back: [%d] %s", order.id, exc.code, exc.message)
            return OrderOutcome.FAILED

    async def _settle_one(self, order_id: str, price: Decimal, db: AsyncSession) -> OrderOutcome:
        order = await self._orders.get_by_id(order_id, db, for_update=True)
        if order is None or not order.is_pending:
            raise _OrderStateChanged(order_id)

        wallet = await self._wallets.get_wallet(order.user_id, db, for_update=True)
        if wallet is None:
            raise WalletNotFoundError(order.user_id)

        now = utc_now()
        if not has_sufficient_balance(order.order_type, order.amount, wallet):
            if not await self._orders.mark_canceled(
                order.id, CancelReason.INSUFFICIENT_BALANCE.value, now, db
            ):
                raise _OrderStateChanged(order_id)
            logger.info(
                "Order %s canceled: insufficient balance for %s %s",
                order.id,
                order.order_type,
                order.amount,
            )
            return OrderOutcome.CANCELED

        settled = await self._settlement.settle(
            order, price, SettlementGateway.LIMIT_ORDER.value, db
        )
        if not await self._orders.mark_filled(order.id, price, now, db):
            raise _OrderStateChanged(order_id)
        logger.info(
            "Order %s filled: %s %s tokens @ %s (fiat %s)",
            order.id,
            order.order_type,
            settled.token_amount,
            price,
            settled.net_amount,
        )
        return OrderOutcome.FILLED
