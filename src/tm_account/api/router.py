"""tm_account REST API: all endpoints require JWT authentication."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_account.application.schemas import DepositRequest, TransferRequest, WithdrawRequest
from src.tm_account.application.service import AccountApplicationService
from src.tm_common.database import get_db_session
from src.tm_common.response import ApiResponse, respond
from src.tm_gateway.auth.dependencies import get_current_session
from src.tm_gateway.auth.session import Session

router = APIRouter(prefix="/account", tags=["account"])

_service = AccountApplicationService()


@router.get("/balance")
async def get_balance(
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_balance(db, session.id)
    return respond(request, data.model_dump(mode="json"))


@router.post("/deposit")
async def deposit(
    body: DepositRequest,
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.deposit(db, session.id, body.amount)
    return respond(request, data.model_dump(mode="json"))


@router.post("/withdraw")
async def withdraw(
    body: WithdrawRequest,
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.withdraw(db, session.id, body.amount)
    return respond(request, data.model_dump(mode="json"))


@router.post("/transfer")
async def transfer(
    body: TransferRequest,
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.transfer(db, session.id, body.recipient_id, body.amount, body.note)
    return respond(request, data.model_dump(mode="json"), "Transfer completed")


@router.get("/transactions")
async def list_transactions(
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    tx_type: str | None = Query(None, description="Filter by transaction type"),
) -> ApiResponse:
    data = await _service.list_transactions(db, session.id, cursor, limit, tx_type)
    return respond(request, data.model_dump(mode="json"))
