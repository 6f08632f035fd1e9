"""Domain models for tm_account: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass
class Wallet:
    user_id: str
    fiat_balance: Decimal
    token_balance: Decimal
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Transaction:
    """One append-only ledger record.

    amount, fee_amount and net_amount are fiat; token_amount is the token
    quantity moved (received on BUY, sold on SELL, zero for fiat wallet
    operations). TRANSFER rows are token-denominated: amount, fee_amount and
    net_amount are token quantities and reference_id names the recipient.
    """

    id: str
    user_id: str
    type: str                       # TransactionType value
    amount: Decimal
    fee_amount: Decimal
    net_amount: Decimal
    token_amount: Decimal
    price: Decimal | None
    status: str                     # TransactionStatus value
    gateway: str                    # SettlementGateway value
    reference_id: str | None = None
    description: str | None = None
    created_at: datetime | None = None
