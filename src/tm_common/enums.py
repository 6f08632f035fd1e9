"""Global enums: must match DB CHECK constraints exactly."""

from enum import Enum


class UserRole(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class OrderType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class PriceType(str, Enum):
    MARKET = "MARKET"
    LIMIT = "LIMIT"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    FILLED = "FILLED"
    CANCELED = "CANCELED"


class CancelReason(str, Enum):
    USER_REQUESTED = "USER_REQUESTED"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"


class TransactionType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"
    FEE = "FEE"
    TRANSFER = "TRANSFER"


class TransactionStatus(str, Enum):
    COMPLETED = "COMPLETED"


class SettlementGateway(str, Enum):
    """Which path produced a transaction row."""
    LIMIT_ORDER = "LimitOrder"
    MARKET_ORDER = "MarketOrder"
    WALLET = "Wallet"
    FEE_COLLECTION = "FeeCollection"


class FeeKind(str, Enum):
    BUY = "buy"
    WITHDRAW = "withdraw"
    ORDER = "order"
    TRANSFER = "transfer"
