from decimal import Decimal

from pydantic import BaseModel, field_validator

from src.tm_clearing.domain.settlement import SettlementResult
from src.tm_common.datetime_utils import isoformat_or_none
from src.tm_order.domain.models import Order


class CreateOrderRequest(BaseModel):
    order_type: str
    price_type: str
    amount: Decimal
    limit_price: Decimal | None = None

    @field_validator("order_type", "price_type")
    @classmethod
    def upper(cls, v: str) -> str:
        return v.strip().upper()


class OrderResponse(BaseModel):
    id: str
    user_id: str
    order_type: str
    price_type: str
    amount: Decimal
    token_amount: Decimal
    limit_price: Decimal | None = None
    status: str
    cancel_reason: str | None = None
    executed_price: Decimal | None = None
    created_at: str | None = None
    executed_at: str | None = None
    canceled_at: str | None = None

    @classmethod
    def from_domain(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            user_id=order.user_id,
            order_type=order.order_type,
            price_type=order.price_type,
            amount=order.amount,
            token_amount=order.token_amount,
            limit_price=order.limit_price,
            status=order.status,
            cancel_reason=order.cancel_reason,
            executed_price=order.executed_price,
            created_at=isoformat_or_none(order.created_at),
            executed_at=isoformat_or_none(order.executed_at),
            canceled_at=isoformat_or_none(order.canceled_at),
        )


class SettlementResponse(BaseModel):
    price: Decimal
    fiat_amount: Decimal
    fee_amount: Decimal
    net_amount: Decimal
    token_amount: Decimal
    transaction_id: str

    @classmethod
    def from_domain(cls, result: SettlementResult) -> "SettlementResponse":
        return cls(
            price=result.price,
            fiat_amount=result.fiat_amount,
            fee_amount=result.fee_amount,
            net_amount=result.net_amount,
            token_amount=result.token_amount,
            transaction_id=result.transaction_id,
        )


class CreateOrderResponse(BaseModel):
    order: OrderResponse
    settlement: SettlementResponse | None = None


class CancelOrderResponse(BaseModel):
    order_id: str
    status: str
    cancel_reason: str | None


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    next_cursor: str | None
    has_more: bool
