"""Limit order trigger rule. Both comparisons are inclusive: equality fills."""

from decimal import Decimal

from src.tm_common.enums import OrderType


def is_eligible(order_type: str, limit_price: Decimal | None, current_price: Decimal) -> bool:
    """BUY fills when the price has fallen to the limit, SELL when it has risen to it."""
    if limit_price is None:
        return False
    if order_type == OrderType.BUY.value:
        return current_price <= limit_price
    if order_type == OrderType.SELL.value:
        return current_price >= limit_price
    return False
