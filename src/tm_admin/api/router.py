"""Admin REST API: every route requires role ADMIN."""

from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_admin.application.service import AdminService
from src.tm_common.database import get_db_session
from src.tm_common.response import ApiResponse, respond
from src.tm_gateway.auth.dependencies import require_admin
from src.tm_gateway.auth.session import Session

router = APIRouter(prefix="/admin", tags=["admin"])
_service = AdminService()


class SupplyTransferRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)
    reason: str | None = Field(None, max_length=255)


class SupplyMintRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, description="New tokens to issue into the admin reserve")
    reason: str | None = Field(None, max_length=255)


@router.post("/matching/run")
async def run_matching_pass(
    admin: Annotated[Session, Depends(require_admin)],
    request: Request,
) -> ApiResponse:
    return respond(request, await _service.run_matching_pass())


@router.get("/supply/validate")
async def validate_supply(
    admin: Annotated[Session, Depends(require_admin)],
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    return respond(request, await _service.validate_supply(db))


@router.post("/supply/transfer")
async def transfer_supply(
    body: SupplyTransferRequest,
    admin: Annotated[Session, Depends(require_admin)],
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _service.transfer_supply(admin, body.amount, body.reason, db)
    return respond(request, data, "Supply transferred")


@router.get("/supply/transfers")
async def list_supply_transfers(
    admin: Annotated[Session, Depends(require_admin)],
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    return respond(request, await _service.list_supply_transfers(limit, db))


@router.post("/supply/mint")
async def mint_supply(
    body: SupplyMintRequest,
    admin: Annotated[Session, Depends(require_admin)],
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _service.mint_supply(admin, body.amount, body.reason, db)
    return respond(request, data, "Tokens minted")


@router.get("/supply/mints")
async def list_supply_mints(
    admin: Annotated[Session, Depends(require_admin)],
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    return respond(request, await _service.list_supply_mints(limit, db))


@router.get("/fees/summary")
async def fee_summary(
    admin: Annotated[Session, Depends(require_admin)],
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    return respond(request, await _service.fee_summary(db))


@router.get("/invariants")
async def verify_invariants(
    admin: Annotated[Session, Depends(require_admin)],
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    return respond(request, await _service.verify_invariants(db))
