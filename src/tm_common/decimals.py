"""Decimal arithmetic helpers for fiat amounts, token quantities and prices.

All money and token values are ``Decimal`` (never float) and are stored as
PostgreSQL NUMERIC:
  - amounts (fiat and token): 8 decimal places, NUMERIC(30, 8)
  - prices:                   18 decimal places, NUMERIC(38, 18)

Rounding rules: anything credited to a user rounds DOWN, fees round UP.
The platform never pays out more than it holds.
"""

from decimal import ROUND_DOWN, ROUND_UP, Decimal, InvalidOperation

AMOUNT_QUANT = Decimal("0.00000001")
PRICE_QUANT = Decimal("0.000000000000000001")
ZERO = Decimal("0")


def to_decimal(value: object) -> Decimal:
    """Coerce int/str/Decimal into Decimal. Floats go through ``str`` to avoid binary noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Not a numeric value: {value!r}")
    try:
        if isinstance(value, float):
            return Decimal(str(value))
        return Decimal(value)  # type: ignore[arg-type]
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Not a numeric value: {value!r}") from exc


def quantize_amount(value: Decimal) -> Decimal:
    """Round an amount credited to a user down to 8 decimal places."""
    return value.quantize(AMOUNT_QUANT, rounding=ROUND_DOWN)


def quantize_fee(value: Decimal) -> Decimal:
    """Round a fee up to 8 decimal places (platform never loses)."""
    return value.quantize(AMOUNT_QUANT, rounding=ROUND_UP)


def quantize_price(value: Decimal) -> Decimal:
    return value.quantize(PRICE_QUANT, rounding=ROUND_DOWN)


def is_positive_finite(value: Decimal) -> bool:
    return value.is_finite() and value > ZERO

