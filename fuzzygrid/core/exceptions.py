"""
Custom exceptions for the fuzzy grid bot.

Exception hierarchy:
    TradingBotError (base)
    ├── GatewayError
    │   ├── ConnectionError
    │   ├── AuthenticationError
    │   ├── RateLimitError
    │   ├── InsufficientBalanceError
    │   └── OrderError
    ├── DataError
    │   ├── InsufficientDataError
    │   └── InvalidPriceLevelError
    └── StrategyError

GatewayError and DataError are recoverable inside the reconciliation loop:
the current cycle (or the single affected order) is skipped.
"""

from decimal import Decimal
from typing import Any


class TradingBotError(Exception):
    """Base exception for all trading bot errors."""

    default_message = "Trading bot error occurred"

    def __init__(
        self,
        message: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.default_message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.code:
            parts.append(f"[{self.code}]")
        if self.details:
            parts.append(f"Details: {self.details}")
        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"details={self.details!r})"
        )


# Gateway-related errors
class GatewayError(TradingBotError):
    """Base exception for exchange gateway errors."""

    default_message = "Exchange gateway error occurred"


class ConnectionError(GatewayError):
    """Connection to exchange failed."""

    default_message = "Failed to connect to exchange"


class AuthenticationError(GatewayError):
    """Authentication with exchange failed."""

    default_message = "Authentication failed"


class RateLimitError(GatewayError):
    """Rate limit exceeded on exchange API."""

    default_message = "Rate limit exceeded"

    def __init__(
        self,
        message: str | None = None,
        retry_after: int = 60,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, details)
        self.retry_after = retry_after

    def __str__(self) -> str:
        base = super().__str__()
        return f"{base} (retry after {self.retry_after}s)"


class InsufficientBalanceError(GatewayError):
    """Insufficient margin balance for the order."""

    default_message = "Insufficient balance"


class OrderError(GatewayError):
    """Order rejected or not found."""

    default_message = "Order error occurred"

    def __init__(
        self,
        message: str | None = None,
        order_id: str | None = None,
        symbol: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, details)
        self.order_id = order_id
        self.symbol = symbol

    def __str__(self) -> str:
        base = super().__str__()
        parts = [base]
        if self.order_id:
            parts.append(f"order_id={self.order_id}")
        if self.symbol:
            parts.append(f"symbol={self.symbol}")
        return " ".join(parts)


# Data-related errors
class DataError(TradingBotError):
    """Base exception for data-related errors."""

    default_message = "Data error occurred"


class InsufficientDataError(DataError):
    """Raised when a series is too short for an indicator."""

    default_message = "Insufficient data"

    def __init__(self, required: int, actual: int, indicator: str | None = None):
        self.required = required
        self.actual = actual
        self.indicator = indicator
        label = f" for {indicator}" if indicator else ""
        super().__init__(
            f"Insufficient data{label}: need at least {required} values, got {actual}",
            code="INSUFFICIENT_DATA",
        )


class InvalidPriceLevelError(DataError):
    """Raised when a planned price is unusable (immediate trigger or outside sane band)."""

    default_message = "Invalid price level"

    def __init__(self, price: Decimal, reason: str):
        self.price = price
        self.reason = reason
        super().__init__(
            f"Invalid price level {price}: {reason}",
            code="INVALID_PRICE_LEVEL",
        )


# Strategy error
class StrategyError(TradingBotError):
    """Strategy-related error."""

    default_message = "Strategy error occurred"
