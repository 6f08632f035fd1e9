"""Domain models for tm_supply: pure dataclasses."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.tm_common.decimals import ZERO

INITIAL_TOTAL_SUPPLY = Decimal("10000000")
USER_SUPPLY_SHARE = Decimal("0.20")


@dataclass
class TokenSupply:
    """Single-row supply ledger.

    remaining_supply == user_supply_remaining + admin_reserve at all times.
    """

    total_supply: Decimal
    remaining_supply: Decimal
    user_supply_remaining: Decimal
    admin_reserve: Decimal
    updated_at: datetime | None = None

    @property
    def distributed_supply(self) -> Decimal:
        return self.total_supply - self.remaining_supply

    @property
    def usage_ratio(self) -> Decimal:
        """Fraction of total supply already distributed (0..1)."""
        if self.total_supply <= ZERO:
            return ZERO
        return self.distributed_supply / self.total_supply


@dataclass
class SupplyTransfer:
    id: str
    admin_id: str
    amount: Decimal
    reason: str | None
    created_at: datetime | None = None


@dataclass
class SupplyMint:
    """Audit row for newly issued tokens; they land in the admin reserve."""

    id: str
    admin_id: str
    amount: Decimal
    reason: str | None
    previous_total_supply: Decimal
    new_total_supply: Decimal
    created_at: datetime | None = None


@dataclass
class SupplyValidation:
    is_valid: bool
    total_supply: Decimal
    distributed_supply: Decimal
    remaining_supply: Decimal
    wallet_token_total: Decimal
    discrepancy: Decimal
    split_consistent: bool
