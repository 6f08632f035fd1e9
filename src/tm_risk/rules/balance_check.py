"""Balance sufficiency rules shared by order creation and settlement.

BUY orders spend fiat (``amount`` is fiat); SELL orders spend tokens
(``amount`` is a token quantity).
"""

from decimal import Decimal

from src.tm_account.domain.models import Wallet
from src.tm_common.enums import OrderType
from src.tm_common.errors import InsufficientBalanceError


def spend_asset(order_type: str) -> str:
    return "fiat" if order_type == OrderType.BUY.value else "token"


def available_for(order_type: str, wallet: Wallet) -> Decimal:
    if order_type == OrderType.BUY.value:
        return wallet.fiat_balance
    return wallet.token_balance


def has_sufficient_balance(order_type: str, amount: Decimal, wallet: Wallet) -> bool:
    return available_for(order_type, wallet) >= amount


def check_balance(order_type: str, amount: Decimal, wallet: Wallet) -> None:
    """Raise InsufficientBalanceError when the wallet cannot cover ``amount``."""
    if not has_sufficient_balance(order_type, amount, wallet):
        raise InsufficientBalanceError(
            spend_asset(order_type), amount, available_for(order_type, wallet)
        )
