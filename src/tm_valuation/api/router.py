"""Public token endpoints: live value and supply counters. No auth required."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_common.database import get_db_session
from src.tm_common.response import ApiResponse, respond
from src.tm_supply.application.service import SupplyService
from src.tm_valuation.application.schemas import TokenSupplyResponse, TokenValueResponse
from src.tm_valuation.engine.valuation import ValuationEngine

router = APIRouter(prefix="/token", tags=["token"])

_valuation = ValuationEngine()
_supply_service = SupplyService()


@router.get("/value")
async def get_token_value(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    value = await _valuation.get_current_value(db)
    return respond(request, TokenValueResponse.from_domain(value).model_dump(mode="json"))


@router.get("/supply")
async def get_token_supply(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    supply = await _supply_service.get_supply(db)
    value = await _valuation.get_current_value(db)
    data = TokenSupplyResponse.from_domain(supply, value)
    return respond(request, data.model_dump(mode="json"))
