"""
Exchange Gateway Base Classes.

Defines the asynchronous gateway interface the trading core calls into,
plus the order intent/result value objects that cross it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from fuzzygrid.core import get_logger
from fuzzygrid.core.models import (
    CONDITIONAL_ORDER_TYPES,
    Kline,
    KlineInterval,
    Order,
    OrderSide,
    OrderType,
    Position,
    SymbolInfo,
)

logger = get_logger(__name__)


@dataclass
class OrderIntent:
    """
    An order the core wants the gateway to submit.

    Attributes:
        symbol: Trading pair
        side: BUY or SELL
        order_type: LIMIT, MARKET or one of the conditional types
        quantity: Order quantity (already rounded to quantity precision)
        price: Limit price for LIMIT orders
        stop_price: Trigger price for TAKE_PROFIT_MARKET / STOP_MARKET
        activation_price: Activation price for TRAILING_STOP_MARKET
        callback_rate: Trailing callback rate in percent
        reduce_only: Only reduce an existing position
        time_in_force: Time in force for LIMIT orders
        client_order_id: Optional custom order ID
    """

    symbol: str
    side: OrderSide
    order_type: OrderType
    quantity: Decimal
    price: Optional[Decimal] = None
    stop_price: Optional[Decimal] = None
    activation_price: Optional[Decimal] = None
    callback_rate: Optional[Decimal] = None
    reduce_only: bool = False
    time_in_force: str = "GTC"
    client_order_id: Optional[str] = None

    @property
    def is_conditional(self) -> bool:
        """True for take-profit, stop-loss and trailing-stop orders."""
        return OrderType(self.order_type) in CONDITIONAL_ORDER_TYPES

    @property
    def trigger_price(self) -> Optional[Decimal]:
        """Price that identifies this order among open conditional orders."""
        if OrderType(self.order_type) == OrderType.TRAILING_STOP_MARKET:
            return self.activation_price
        return self.stop_price

    def describe(self) -> str:
        """Short human-readable description for log lines."""
        side = OrderSide(self.side).value
        order_type = OrderType(self.order_type).value
        level = self.price if self.price is not None else self.trigger_price
        at = f" @ {level}" if level is not None else ""
        return f"{order_type} {side} {self.quantity} {self.symbol}{at}"


@dataclass
class OrderResult:
    """Result of an order submission."""

    success: bool
    order_id: Optional[str] = None
    client_order_id: Optional[str] = None
    symbol: str = ""
    side: str = ""
    order_type: str = ""
    price: Optional[Decimal] = None
    quantity: Decimal = Decimal("0")
    status: str = ""
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    raw_response: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_order(cls, order: Order, raw_response: Optional[dict] = None) -> "OrderResult":
        """Build a successful result from an acknowledged Order."""
        return cls(
            success=True,
            order_id=order.order_id,
            client_order_id=order.client_order_id,
            symbol=order.symbol,
            side=str(order.side),
            order_type=str(order.order_type),
            price=order.price if order.price is not None else order.trigger_price,
            quantity=order.quantity,
            status=str(order.status),
            raw_response=raw_response or {},
        )

    @classmethod
    def failure(
        cls,
        intent: OrderIntent,
        error_message: str,
        error_code: Optional[str] = None,
    ) -> "OrderResult":
        """Build a rejected result for an intent."""
        return cls(
            success=False,
            client_order_id=intent.client_order_id,
            symbol=intent.symbol,
            side=OrderSide(intent.side).value,
            order_type=OrderType(intent.order_type).value,
            price=intent.price if intent.price is not None else intent.trigger_price,
            quantity=intent.quantity,
            status="REJECTED",
            error_code=error_code,
            error_message=error_message,
        )


class ExchangeGateway(ABC):
    """
    Abstract exchange gateway.

    The gateway is the single owner of order and position lifecycle. Callers
    re-query it every cycle and never cache its state.

    Error contract:
        - place_order returns OrderResult(success=False) when the exchange
          rejects the order.
        - Transport failures (connection, authentication, rate limit and any
          other exchange error) raise GatewayError subclasses.
    """

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def connect(self) -> None:
        """Open network resources. Default is a no-op."""

    async def close(self) -> None:
        """Release network resources. Default is a no-op."""

    async def reconnect(self) -> None:
        """Drop and re-create network resources."""
        logger.info(f"Reconnecting {self.__class__.__name__}")
        await self.close()
        await self.connect()

    async def __aenter__(self) -> "ExchangeGateway":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # =========================================================================
    # Market Data
    # =========================================================================

    @abstractmethod
    async def get_ticker(self, symbol: str) -> Decimal:
        """
        Get the latest traded price.

        Args:
            symbol: Trading pair

        Returns:
            Last price
        """

    @abstractmethod
    async def get_candles(
        self,
        symbol: str,
        interval: KlineInterval | str,
        limit: int = 100,
    ) -> list[Kline]:
        """
        Get klines ordered oldest to newest.

        Args:
            symbol: Trading pair
            interval: Kline interval
            limit: Number of klines

        Returns:
            List of Kline objects
        """

    @abstractmethod
    async def get_symbol_filters(self, symbol: str) -> SymbolInfo:
        """
        Get price/quantity precision and tick size for a symbol.

        Args:
            symbol: Trading pair

        Returns:
            SymbolInfo
        """

    # =========================================================================
    # Account
    # =========================================================================

    @abstractmethod
    async def get_open_orders(self, symbol: str) -> list[Order]:
        """
        Get open orders, standard and conditional.

        Args:
            symbol: Trading pair

        Returns:
            List of Order objects
        """

    @abstractmethod
    async def get_positions(self, symbol: str) -> list[Position]:
        """
        Get non-zero positions.

        Args:
            symbol: Trading pair

        Returns:
            List of Position objects
        """

    @abstractmethod
    async def set_leverage(self, symbol: str, leverage: int) -> int:
        """
        Set leverage for a symbol.

        Args:
            symbol: Trading pair
            leverage: Leverage multiplier

        Returns:
            Leverage accepted by the exchange
        """

    # =========================================================================
    # Orders
    # =========================================================================

    @abstractmethod
    async def place_order(self, intent: OrderIntent) -> OrderResult:
        """
        Submit an order.

        Args:
            intent: Order to submit

        Returns:
            OrderResult, success=False if the exchange rejected it
        """

    @abstractmethod
    async def cancel_order(
        self,
        symbol: str,
        order_id: str,
        is_algo: bool = False,
    ) -> bool:
        """
        Cancel an open order.

        Args:
            symbol: Trading pair
            order_id: Exchange order ID (algo ID for conditional orders)
            is_algo: True if the order lives on the conditional-order endpoint

        Returns:
            True if cancelled
        """
