"""Inflation curve: price rises as the supply pool depletes.

    inflation_factor = total_supply / remaining_supply      (>= 1)
    current_value    = base_value * inflation_factor

Equivalently factor = 1 / (1 - usage) with usage = distributed / total, so the
price is base_value with nothing distributed and grows without bound as the
pool empties.
"""

from decimal import Decimal

from src.tm_common.decimals import ZERO, quantize_price

_HUNDRED = Decimal("100")
_USAGE_QUANT = Decimal("0.0001")


def inflation_factor(total_supply: Decimal, remaining_supply: Decimal) -> Decimal:
    """Raises ValueError when the curve is undefined (empty or invalid pool)."""
    if total_supply <= ZERO:
        raise ValueError(f"total_supply must be positive, got {total_supply}")
    if remaining_supply <= ZERO:
        raise ValueError(f"remaining_supply must be positive, got {remaining_supply}")
    if remaining_supply > total_supply:
        raise ValueError(
            f"remaining_supply {remaining_supply} exceeds total_supply {total_supply}"
        )
    return total_supply / remaining_supply


def current_value(base_value: Decimal, total_supply: Decimal, remaining_supply: Decimal) -> Decimal:
    return quantize_price(base_value * inflation_factor(total_supply, remaining_supply))


def usage_percentage(total_supply: Decimal, remaining_supply: Decimal) -> Decimal:
    if total_supply <= ZERO:
        return ZERO
    distributed = total_supply - remaining_supply
    return (distributed / total_supply * _HUNDRED).quantize(_USAGE_QUANT)
