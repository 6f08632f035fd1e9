"""Matching pass value objects."""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum


class OrderOutcome(str, Enum):
    """What a matching pass did with one eligible order."""
    FILLED = "FILLED"
    CANCELED = "CANCELED"          # failed balance re-validation
    SKIPPED = "SKIPPED"            # supply exhausted, or state changed under us
    FAILED = "FAILED"              # persistence or unexpected error, rolled back


@dataclass
class MatchingPassResult:
    scanned_count: int = 0
    executed_count: int = 0
    canceled_count: int = 0
    skipped_count: int = 0
    failed_count: int = 0
    price: Decimal | None = None
    executed_order_ids: list[str] = field(default_factory=list)
    canceled_order_ids: list[str] = field(default_factory=list)

    def record(self, order_id: str, outcome: OrderOutcome) -> None:
        if outcome is OrderOutcome.FILLED:
            self.executed_count += 1
            self.executed_order_ids.append(order_id)
        elif outcome is OrderOutcome.CANCELED:
            self.canceled_count += 1
            self.canceled_order_ids.append(order_id)
        elif outcome is OrderOutcome.SKIPPED:
            self.skipped_count += 1
        else:
            self.failed_count += 1
