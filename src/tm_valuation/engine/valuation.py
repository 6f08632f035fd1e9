"""ValuationEngine: derives the live token price from the supply ledger.

Pure read. When the ledger cannot be read (DB error, missing row, exhausted
pool) the engine does not raise: it returns the base value flagged
``degraded=True``. Display paths may show a degraded quote; settlement paths
must refuse it.
"""

import logging
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.tm_common.datetime_utils import utc_now
from src.tm_common.decimals import ZERO
from src.tm_common.errors import PriceUnavailableError, SupplyNotInitializedError
from src.tm_supply.domain.repository import SupplyRepositoryProtocol
from src.tm_supply.infrastructure.persistence import SupplyRepository
from src.tm_valuation.domain import curve
from src.tm_valuation.domain.models import TokenValue

logger = logging.getLogger(__name__)


class ValuationEngine:
    def __init__(
        self,
        supply_repo: SupplyRepositoryProtocol | None = None,
        base_value: Decimal | None = None,
    ) -> None:
        self._supply_repo: SupplyRepositoryProtocol = supply_repo or SupplyRepository()
        self._base_value = base_value if base_value is not None else settings.TOKEN_BASE_VALUE

    @property
    def base_value(self) -> Decimal:
        return self._base_value

    async def get_current_value(self, db: AsyncSession) -> TokenValue:
        try:
            supply = await self._supply_repo.get_supply(db)
        except (SQLAlchemyError, SupplyNotInitializedError):
            logger.warning("Supply ledger unreadable, serving degraded base price", exc_info=True)
            return self._degraded(ZERO, ZERO)

        try:
            factor = curve.inflation_factor(supply.total_supply, supply.remaining_supply)
        except ValueError as exc:
            logger.warning("Inflation curve undefined (%s), serving degraded base price", exc)
            return self._degraded(supply.total_supply, supply.remaining_supply)

        return TokenValue(
            base_value=self._base_value,
            inflation_factor=factor,
            current_value=curve.current_value(
                self._base_value, supply.total_supply, supply.remaining_supply
            ),
            total_supply=supply.total_supply,
            remaining_supply=supply.remaining_supply,
            usage_percentage=curve.usage_percentage(supply.total_supply, supply.remaining_supply),
            calculated_at=utc_now(),
        )

    async def get_settlement_price(self, db: AsyncSession) -> TokenValue:
        """Current value for settlement; PriceUnavailableError when degraded."""
        quote = await self.get_current_value(db)
        if quote.degraded:
            raise PriceUnavailableError("Token price is degraded; settlement refused")
        return quote

    def _degraded(self, total: Decimal, remaining: Decimal) -> TokenValue:
        return TokenValue(
            base_value=self._base_value,
            inflation_factor=Decimal("1"),
            current_value=self._base_value,
            total_supply=total,
            remaining_supply=remaining,
            usage_percentage=curve.usage_percentage(total, remaining),
            calculated_at=utc_now(),
            degraded=True,
        )
