"""Order REST API: place, cancel and query orders. All endpoints require JWT authentication."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_common.database import get_db_session
from src.tm_common.response import ApiResponse, respond
from src.tm_gateway.auth.dependencies import get_current_session
from src.tm_gateway.auth.session import Session
from src.tm_matching.application.service import build_order_settlement
from src.tm_order.application.schemas import (
    CancelOrderResponse,
    CreateOrderRequest,
    CreateOrderResponse,
    OrderListResponse,
    OrderResponse,
    SettlementResponse,
)
from src.tm_order.application.service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])

_service = OrderService(settlement=build_order_settlement())


@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    body: CreateOrderRequest,
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    order, settlement = await _service.create_order(
        session, body.order_type, body.price_type, body.amount, body.limit_price, db
    )
    data = CreateOrderResponse(
        order=OrderResponse.from_domain(order),
        settlement=SettlementResponse.from_domain(settlement) if settlement else None,
    )
    message = "Order filled" if settlement else "Order placed"
    return respond(request, data.model_dump(mode="json"), message)


@router.post("/{order_id}/cancel", response_model=ApiResponse)
async def cancel_order(
    order_id: str,
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    order = await _service.cancel_order(order_id, session, db)
    data = CancelOrderResponse(
        order_id=order.id, status=order.status, cancel_reason=order.cancel_reason
    )
    return respond(request, data.model_dump(mode="json"), "Order canceled")


@router.get("", response_model=ApiResponse)
async def list_orders(
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status: str | None = Query(None, description="Filter by order status"),
    order_type: str | None = Query(None, description="Filter by BUY / SELL"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    cursor: str | None = Query(None, description="Pagination cursor (order ID)"),
) -> ApiResponse:
    orders, next_cursor, has_more = await _service.list_orders(
        session, status, order_type, limit, cursor, db
    )
    data = OrderListResponse(
        items=[OrderResponse.from_domain(o) for o in orders],
        next_cursor=next_cursor,
        has_more=has_more,
    )
    return respond(request, data.model_dump(mode="json"))


@router.get("/{order_id}", response_model=ApiResponse)
async def get_order(
    order_id: str,
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    order = await _service.get_order(order_id, session, db)
    return respond(request, OrderResponse.from_domain(order).model_dump(mode="json"))
