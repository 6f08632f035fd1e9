"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User
  2xxx: Wallet
  3xxx: Token supply / valuation
  4xxx: Order
  9xxx: System
"""

from decimal import Decimal


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth/User ---

class UsernameExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Username already exists", 409)


class EmailExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Email already exists", 409)


class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid username or password", 401)


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Account is disabled", 403)


class InvalidRefreshTokenError(AppError):
    def __init__(self) -> None:
        super().__init__(1005, "Refresh token is invalid or expired", 401)


class AdminRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1006, "Admin role required", 403)


class InvalidAccessTokenError(AppError):
    def __init__(self) -> None:
        super().__init__(1007, "Access token is missing, invalid or expired", 401)


# --- 2xxx: Wallet ---

class InsufficientBalanceError(AppError):
    def __init__(self, asset: str, required: Decimal, available: Decimal) -> None:
        self.asset = asset
        self.required = required
        self.available = available
        super().__init__(
            2001,
            f"Insufficient {asset} balance: required {required}, available {available}",
            422,
        )


class WalletNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(2002, f"Wallet not found for user {user_id}", 404)


# --- 3xxx: Token supply / valuation ---

class SupplyExhaustedError(AppError):
    def __init__(self, requested: Decimal, available: Decimal) -> None:
        self.requested = requested
        self.available = available
        super().__init__(
            3001,
            f"Insufficient token supply: requested {requested}, available {available}",
            422,
        )


class SupplyNotInitializedError(AppError):
    def __init__(self) -> None:
        super().__init__(3002, "Token supply has not been initialized", 500)


class InsufficientReserveError(AppError):
    def __init__(self, requested: Decimal, available: Decimal) -> None:
        super().__init__(
            3003,
            f"Admin reserve too small: requested {requested}, available {available}",
            422,
        )


# --- 4xxx: Order ---

class ValidationError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4001, f"Validation failed: {detail}", 422)


class OrderNotFoundError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4004, f"Order not found: {order_id}", 404)


class OrderNotCancellableError(AppError):
    def __init__(self, order_id: str, status: str) -> None:
        super().__init__(4006, f"Order {order_id} in status {status} cannot be canceled", 422)


class OrderForbiddenError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4007, f"Not allowed to modify order {order_id}", 403)


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Rate limit exceeded", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class PriceUnavailableError(AppError):
    def __init__(self, detail: str = "Token price is unavailable") -> None:
        super().__init__(9003, detail, 503)


class PersistenceError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9004, f"Persistence failure: {detail}", 500)
