"""Pydantic response schemas for the public token endpoints.

Decimals are serialized as strings (``model_dump(mode="json")``) so clients
never see float rounding.
"""

from decimal import Decimal

from pydantic import BaseModel

from src.tm_supply.domain.models import TokenSupply
from src.tm_valuation.domain.models import TokenValue


class TokenValueResponse(BaseModel):
    base_value: Decimal
    inflation_factor: Decimal
    current_value: Decimal
    total_supply: Decimal
    remaining_supply: Decimal
    usage_percentage: Decimal
    calculated_at: str
    degraded: bool

    @classmethod
    def from_domain(cls, value: TokenValue) -> "TokenValueResponse":
        return cls(
            base_value=value.base_value,
            inflation_factor=value.inflation_factor,
            current_value=value.current_value,
            total_supply=value.total_supply,
            remaining_supply=value.remaining_supply,
            usage_percentage=value.usage_percentage,
            calculated_at=value.calculated_at.isoformat(),
            degraded=value.degraded,
        )


class TokenSupplyResponse(BaseModel):
    total_supply: Decimal
    distributed_supply: Decimal
    remaining_supply: Decimal
    user_supply_remaining: Decimal
    admin_reserve: Decimal
    current_value: Decimal
    degraded: bool

    @classmethod
    def from_domain(cls, supply: TokenSupply, value: TokenValue) -> "TokenSupplyResponse":
        return cls(
            total_supply=supply.total_supply,
            distributed_supply=supply.distributed_supply,
            remaining_supply=supply.remaining_supply,
            user_supply_remaining=supply.user_supply_remaining,
            admin_reserve=supply.admin_reserve,
            current_value=value.current_value,
            degraded=value.degraded,
        )
