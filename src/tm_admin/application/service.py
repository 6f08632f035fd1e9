"""Admin application service: on-demand matching, supply management, audits."""

from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_account.domain.repository import TransactionRepositoryProtocol
from src.tm_account.infrastructure.persistence import TransactionRepository
from src.tm_clearing.domain.global_invariants import verify_global_invariants
from src.tm_common.datetime_utils import isoformat_or_none
from src.tm_gateway.auth.session import Session
from src.tm_matching.application.service import get_matching_engine
from src.tm_matching.engine.engine import MatchingEngine
from src.tm_supply.application.service import SupplyService


def _dec(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


class AdminService:
    def __init__(
        self,
        engine: MatchingEngine | None = None,
        supply_service: SupplyService | None = None,
        tx_repo: TransactionRepositoryProtocol | None = None,
    ) -> None:
        self._engine = engine
        self._supply = supply_service or SupplyService()
        self._ledger: TransactionRepositoryProtocol = tx_repo or TransactionRepository()

    @property
    def engine(self) -> MatchingEngine:
        if self._engine is None:
            self._engine = get_matching_engine()
        return self._engine

    async def run_matching_pass(self) -> dict[str, Any]:
        result = await self.engine.run_matching_pass()
        return {
            "scanned_count": result.scanned_count,
            "executed_count": result.executed_count,
            "canceled_count": result.canceled_count,
            "skipped_count": result.skipped_count,
            "failed_count": result.failed_count,
            "price": _dec(result.price),
            "executed_order_ids": result.executed_order_ids,
            "canceled_order_ids": result.canceled_order_ids,
        }

    async def validate_supply(self, db: AsyncSession) -> dict[str, Any]:
        v = await self._supply.validate_supply(db)
        return {
            "is_valid": v.is_valid,
            "total_supply": _dec(v.total_supply),
            "distributed_supply": _dec(v.distributed_supply),
            "remaining_supply": _dec(v.remaining_supply),
            "wallet_token_total": _dec(v.wallet_token_total),
            "discrepancy": _dec(v.discrepancy),
            "split_consistent": v.split_consistent,
        }

    async def transfer_supply(
        self, admin: Session, amount: Decimal, reason: str | None, db: AsyncSession
    ) -> dict[str, Any]:
        supply, transfer = await self._supply.transfer_from_reserve(admin.id, amount, reason, db)
        return {
            "transfer_id": transfer.id,
            "amount": _dec(transfer.amount),
            "reason": transfer.reason,
            "user_supply_remaining": _dec(supply.user_supply_remaining),
            "admin_reserve": _dec(supply.admin_reserve),
        }

    async def list_supply_transfers(self, limit: int, db: AsyncSession) -> list[dict[str, Any]]:
        transfers = await self._supply.list_transfers(limit, db)
        return [
            {
                "id": t.id,
                "admin_id": t.admin_id,
                "amount": _dec(t.amount),
                "reason": t.reason,
                "created_at": isoformat_or_none(t.created_at),
            }
            for t in transfers
        ]

    async def mint_supply(
        self, admin: Session, amount: Decimal, reason: str | None, db: AsyncSession
    ) -> dict[str, Any]:
        supply, mint = await self._supply.mint(admin.id, amount, reason, db)
        return {
            "mint_id": mint.id,
            "amount": _dec(mint.amount),
            "reason": mint.reason,
            "previous_total_supply": _dec(mint.previous_total_supply),
            "total_supply": _dec(supply.total_supply),
            "remaining_supply": _dec(supply.remaining_supply),
            "admin_reserve": _dec(supply.admin_reserve),
            "created_at": isoformat_or_none(mint.created_at),
        }

    async def list_supply_mints(self, limit: int, db: AsyncSession) -> list[dict[str, Any]]:
        mints = await self._supply.list_mints(limit, db)
        return [
            {
                "id": m.id,
                "admin_id": m.admin_id,
                "amount": _dec(m.amount),
                "reason": m.reason,
                "previous_total_supply": _dec(m.previous_total_supply),
                "new_total_supply": _dec(m.new_total_supply),
                "created_at": isoformat_or_none(m.created_at),
            }
            for m in mints
        ]

    async def fee_summary(self, db: AsyncSession) -> dict[str, Any]:
        total, count = await self._ledger.sum_fees(db)
        return {"total_fees": _dec(total), "fee_transactions": count}

    async def verify_invariants(self, db: AsyncSession) -> dict[str, Any]:
        violations = await verify_global_invariants(db)
        return {"ok": not violations, "violations": violations}
