"""Stateless order input rules. Each raises ValidationError (4001) before any mutation."""

from decimal import Decimal

from src.tm_common.decimals import AMOUNT_QUANT, PRICE_QUANT, is_positive_finite
from src.tm_common.enums import OrderType, PriceType
from src.tm_common.errors import ValidationError

MAX_ORDER_AMOUNT = Decimal("1000000000")
# 20 integer digits plus 8 decimals fills the default 28-digit Decimal context
MAX_TOKEN_QUANTITY = Decimal("1e20")

_ORDER_TYPES = {t.value for t in OrderType}
_PRICE_TYPES = {t.value for t in PriceType}


def check_order_type(order_type: str) -> None:
    if order_type not in _ORDER_TYPES:
        raise ValidationError(f"order_type must be one of {sorted(_ORDER_TYPES)}, got {order_type!r}")


def check_price_type(price_type: str) -> None:
    if price_type not in _PRICE_TYPES:
        raise ValidationError(f"price_type must be one of {sorted(_PRICE_TYPES)}, got {price_type!r}")


def check_amount(amount: Decimal | None) -> None:
    if amount is None or not is_positive_finite(amount):
        raise ValidationError(f"amount must be a positive number, got {amount}")
    if amount < AMOUNT_QUANT:
        raise ValidationError(f"amount {amount} is below the minimum unit {AMOUNT_QUANT}")
    if amount > MAX_ORDER_AMOUNT:
        raise ValidationError(f"amount {amount} exceeds maximum {MAX_ORDER_AMOUNT}")


def check_limit_price(price_type: str, limit_price: Decimal | None) -> None:
    """LIMIT orders need a positive limit price; MARKET orders must not carry one."""
    if price_type == PriceType.LIMIT.value:
        if limit_price is None:
            raise ValidationError("limit_price is required for LIMIT orders")
        if not is_positive_finite(limit_price) or limit_price < PRICE_QUANT:
            raise ValidationError(f"limit_price must be a positive number, got {limit_price}")
    elif limit_price is not None:
        raise ValidationError("limit_price is only allowed for LIMIT orders")


def check_token_quantity(order_type: str, amount: Decimal, limit_price: Decimal) -> None:
    """A BUY at ``limit_price`` must estimate to a token quantity the ledger can hold."""
    if order_type != OrderType.BUY.value:
        return
    if amount / limit_price >= MAX_TOKEN_QUANTITY:
        raise ValidationError(
            f"limit_price {limit_price} is too small: buying {amount} would exceed "
            f"{MAX_TOKEN_QUANTITY} tokens"
        )
