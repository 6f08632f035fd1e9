"""Process-wide MatchingEngine wired to the real repositories.

Tests build their own MatchingEngine with fakes instead of using this.
"""

from config.settings import settings
from src.tm_account.infrastructure.persistence import TransactionRepository, WalletRepository
from src.tm_clearing.domain.settlement import OrderSettlement
from src.tm_common.database import async_session_factory
from src.tm_matching.engine.engine import MatchingEngine
from src.tm_order.infrastructure.persistence import OrderRepository
from src.tm_supply.infrastructure.persistence import SupplyRepository
from src.tm_valuation.engine.valuation import ValuationEngine

_engine: MatchingEngine | None = None


def build_order_settlement() -> OrderSettlement:
    return OrderSettlement(
        wallet_repo=WalletRepository(),
        tx_repo=TransactionRepository(),
        supply_repo=SupplyRepository(),
        restore_on_sell=settings.SUPPLY_RESTORE_ON_SELL,
    )


def get_matching_engine() -> MatchingEngine:
    global _engine  # noqa: PLW0603
    if _engine is None:
        _engine = MatchingEngine(
            session_factory=async_session_factory,
            order_repo=OrderRepository(),
            wallet_repo=WalletRepository(),
            valuation=ValuationEngine(SupplyRepository(), settings.TOKEN_BASE_VALUE),
            settlement=build_order_settlement(),
        )
    return _engine
