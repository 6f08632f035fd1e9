"""Global ledger invariants, checked on demand from the admin API.

  - no wallet balance is negative
  - remaining_supply == user_supply_remaining + admin_reserve, both >= 0
  - every FILLED order has exactly one settlement transaction
"""

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

_NEGATIVE_WALLETS_SQL = text("""
    SELECT COUNT(*) FROM wallets WHERE fiat_balance < 0 OR token_balance < 0
""")
_SUPPLY_SPLIT_SQL = text("""
    SELECT remaining_supply, user_supply_remaining, admin_reserve
    FROM token_supply WHERE id = 1
""")
_UNMATCHED_FILLS_SQL = text("""
    SELECT COUNT(*) FROM orders o
    WHERE o.status = 'FILLED'
      AND (SELECT COUNT(*) FROM transactions t
           WHERE t.reference_id = o.id AND t.type IN ('BUY', 'SELL')) <> 1
""")


async def verify_global_invariants(db: AsyncSession) -> list[str]:
    """Returns a list of violation strings; empty means consistent."""
    violations: list[str] = []

    negative = (await db.execute(_NEGATIVE_WALLETS_SQL)).scalar_one()
    if negative:
        violations.append(f"{negative} wallet(s) have a negative balance")

    split = (await db.execute(_SUPPLY_SPLIT_SQL)).fetchone()
    if split is None:
        violations.append("token_supply row is missing")
    else:
        remaining, user_pool, reserve = split
        if user_pool < 0 or reserve < 0:
            violations.append(f"negative supply pool: user={user_pool} reserve={reserve}")
        if remaining != user_pool + reserve:
            violations.append(
                f"supply split broken: remaining({remaining}) != "
                f"user({user_pool}) + reserve({reserve})"
            )

    unmatched = (await db.execute(_UNMATCHED_FILLS_SQL)).scalar_one()
    if unmatched:
        violations.append(f"{unmatched} FILLED order(s) without exactly one settlement transaction")

    for msg in violations:
        logger.error("Invariant violated: %s", msg)
    return violations
