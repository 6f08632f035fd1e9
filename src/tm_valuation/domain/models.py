"""Token valuation result: derived on every read, never persisted."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class TokenValue:
    base_value: Decimal
    inflation_factor: Decimal
    current_value: Decimal
    total_supply: Decimal
    remaining_supply: Decimal
    usage_percentage: Decimal
    calculated_at: datetime
    degraded: bool = False
