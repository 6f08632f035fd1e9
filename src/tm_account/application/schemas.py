"""Pydantic schemas and cursor utilities for tm_account API."""

import base64
import binascii
import json
from decimal import Decimal

from pydantic import BaseModel, Field

from src.tm_account.domain.models import Transaction, Wallet

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: str) -> str:
    """Encode a transaction id into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.urlsafe_b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> str | None:
    """Decode a cursor string back to the last seen id. Returns None on garbage."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.urlsafe_b64decode(cursor.encode()).decode())
        return str(payload["id"])
    except (binascii.Error, UnicodeDecodeError, ValueError, KeyError, TypeError):
        return None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class DepositRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, description="Fiat amount to deposit")


class WithdrawRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, description="Fiat amount to withdraw (fee included)")


class TransferRequest(BaseModel):
    recipient_id: str = Field(..., min_length=1, max_length=64, description="Recipient user id")
    amount: Decimal = Field(..., gt=0, description="Token quantity to send (fee included)")
    note: str | None = Field(None, max_length=255)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    user_id: str
    fiat_balance: Decimal
    token_balance: Decimal
    token_value: Decimal
    portfolio_value: Decimal
    price_degraded: bool

    @classmethod
    def from_wallet(cls, wallet: Wallet, price: Decimal, degraded: bool) -> "BalanceResponse":
        token_value = wallet.token_balance * price
        return cls(
            user_id=wallet.user_id,
            fiat_balance=wallet.fiat_balance,
            token_balance=wallet.token_balance,
            token_value=token_value,
            portfolio_value=wallet.fiat_balance + token_value,
            price_degraded=degraded,
        )


class TransactionItem(BaseModel):
    id: str
    type: str
    amount: Decimal
    fee_amount: Decimal
    net_amount: Decimal
    token_amount: Decimal
    price: Decimal | None
    status: str
    gateway: str
    reference_id: str | None
    description: str | None
    created_at: str

    @classmethod
    def from_domain(cls, tx: Transaction) -> "TransactionItem":
        return cls(
            id=tx.id,
            type=tx.type,
            amount=tx.amount,
            fee_amount=tx.fee_amount,
            net_amount=tx.net_amount,
            token_amount=tx.token_amount,
            price=tx.price,
            status=tx.status,
            gateway=tx.gateway,
            reference_id=tx.reference_id,
            description=tx.description,
            created_at=tx.created_at.isoformat() if tx.created_at else "",
        )


class WalletOperationResponse(BaseModel):
    fiat_balance: Decimal
    token_balance: Decimal
    transaction: TransactionItem


class TransactionListResponse(BaseModel):
    items: list[TransactionItem]
    next_cursor: str | None
    has_more: bool
