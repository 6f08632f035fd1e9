"""Fee calculation: flat percentage per operation kind.

    buy       1%
    withdraw 10%
    anything else: no fee

fee rounds up to 8 decimal places; net = amount - fee.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from src.tm_common.decimals import ZERO, quantize_fee, to_decimal

FEE_RATES: dict[str, Decimal] = {
    "buy": Decimal("0.01"),
    "withdraw": Decimal("0.10"),
}


@dataclass(frozen=True)
class FeeBreakdown:
    kind: str
    rate: Decimal
    fee: Decimal
    net: Decimal


def _normalize_kind(kind: str) -> str:
    if isinstance(kind, Enum):
        kind = kind.value
    return str(kind).lower()


def fee_rate(kind: str) -> Decimal:
    return FEE_RATES.get(_normalize_kind(kind), ZERO)


def calculate_fee(amount: Decimal | int | str, kind: str) -> FeeBreakdown:
    """Pure fee breakdown for ``amount`` under ``kind``.

    Raises ValueError for negative or non-numeric amounts.
    """
    value = to_decimal(amount)
    if not value.is_finite() or value < ZERO:
        raise ValueError(f"Fee base must be a non-negative amount, got {amount!r}")
    rate = fee_rate(kind)
    fee = quantize_fee(value * rate) if rate else ZERO
    # Rounding the fee up can never push it past the amount itself
    fee = min(fee, value)
    return FeeBreakdown(kind=_normalize_kind(kind), rate=rate, fee=fee, net=value - fee)
