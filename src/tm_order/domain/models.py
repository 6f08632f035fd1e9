"""Order domain model: pure dataclass, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.tm_common.enums import OrderStatus, OrderType, PriceType


@dataclass
class Order:
    id: str
    user_id: str
    order_type: str  # BUY / SELL
    price_type: str  # MARKET / LIMIT
    # Fiat to spend for BUY, tokens to sell for SELL
    amount: Decimal
    # Token quantity estimated at creation (BUY: amount / price, SELL: amount)
    token_amount: Decimal
    limit_price: Decimal | None = None
    status: str = OrderStatus.PENDING.value
    cancel_reason: str | None = None
    executed_price: Decimal | None = None
    created_at: datetime | None = None
    executed_at: datetime | None = None
    canceled_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_buy(self) -> bool:
        return self.order_type == OrderType.BUY.value

    @property
    def is_limit(self) -> bool:
        return self.price_type == PriceType.LIMIT.value

    @property
    def is_pending(self) -> bool:
        return self.status == OrderStatus.PENDING.value

    @property
    def is_terminal(self) -> bool:
        return self.status in (OrderStatus.FILLED.value, OrderStatus.CANCELED.value)
