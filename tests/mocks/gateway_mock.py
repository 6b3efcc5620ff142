"""
Mock Exchange Gateway for testing.

Simulates the futures gateway without real API calls.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from fuzzygrid.core.models import (
    CONDITIONAL_ORDER_TYPES,
    Kline,
    Order,
    OrderType,
    Position,
    SymbolInfo,
)
from fuzzygrid.exchange.base import ExchangeGateway, OrderIntent, OrderResult


class MockGateway(ExchangeGateway):
    """
    Mock Exchange Gateway.

    Simulates gateway behavior for testing:
    - Price, kline and filter control
    - Placed LIMIT and conditional orders show up as open orders
    - MARKET orders open or close a position
    - Per-method failure injection and per-type rejections
    - Every call recorded in order

    Example:
        >>> mock = MockGateway()
        >>> mock.set_price("0.1")
        >>> mock.fail_on("get_ticker", GatewayError("down"))
        >>> [name for name, _ in mock.calls]
        ['get_ticker']
    """

    def __init__(self, symbol: str = "DOGEUSDT"):
        """Initialize mock gateway."""
        self.symbol = symbol

        self._price: Decimal = Decimal("0.1")
        self._klines: list[Kline] = []
        self._filters = SymbolInfo(
            symbol=symbol,
            price_precision=5,
            quantity_precision=0,
            tick_size=Decimal("0.00001"),
            step_size=Decimal("1"),
        )

        # Open orders: order_id -> Order
        self._open_orders: dict[str, Order] = {}
        self._positions: list[Position] = []

        # Injected failures: method name -> exception
        self._failures: dict[str, Exception] = {}
        self._rejected_types: set[str] = set()

        self.calls: list[tuple[str, Any]] = []
        self.placed: list[OrderIntent] = []
        self.cancelled: list[str] = []
        self.leverage: Optional[int] = None
        self.connected = False
        self.reconnects = 0
        self._next_id = 1

    # =========================================================================
    # Test Control
    # =========================================================================

    def set_price(self, price: Decimal | float | str) -> None:
        self._price = Decimal(str(price))

    def set_klines(self, klines: list[Kline]) -> None:
        self._klines = list(klines)

    def set_filters(self, filters: SymbolInfo) -> None:
        self._filters = filters

    def add_position(
        self,
        quantity: Decimal | str,
        entry_price: Decimal | str,
        mark_price: Decimal | str | None = None,
    ) -> Position:
        """Add a position; quantity is signed (> 0 long, < 0 short)."""
        position = Position(
            symbol=self.symbol,
            quantity=Decimal(str(quantity)),
            entry_price=Decimal(str(entry_price)),
            mark_price=Decimal(str(mark_price if mark_price is not None else entry_price)),
        )
        self._positions.append(position)
        return position

    def add_order(
        self,
        side: str,
        order_type: OrderType | str,
        quantity: Decimal | str = "100",
        price: Decimal | str | None = None,
        stop_price: Decimal | str | None = None,
    ) -> Order:
        """Add a resting order as if a previous cycle had placed it."""
        order_type = OrderType(order_type)
        order = Order(
            order_id=self._new_id(),
            symbol=self.symbol,
            side=side,
            order_type=order_type,
            price=Decimal(str(price)) if price is not None else None,
            stop_price=Decimal(str(stop_price)) if stop_price is not None else None,
            quantity=Decimal(str(quantity)),
            reduce_only=order_type in CONDITIONAL_ORDER_TYPES,
            is_algo=order_type in CONDITIONAL_ORDER_TYPES,
            created_at=datetime.now(timezone.utc),
        )
        self._open_orders[order.order_id] = order
        return order

    def fail_on(self, method: str, error: Exception) -> None:
        """Make every call to `method` raise `error`."""
        self._failures[method] = error

    def clear_failures(self) -> None:
        self._failures.clear()

    def reject(self, order_type: OrderType | str) -> None:
        """Reject every order of this type with success=False."""
        self._rejected_types.add(OrderType(order_type).value)

    @property
    def open_orders(self) -> list[Order]:
        return list(self._open_orders.values())

    @property
    def positions(self) -> list[Position]:
        return list(self._positions)

    @property
    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def _record(self, name: str, args: Any = None) -> None:
        self.calls.append((name, args))
        if name in self._failures:
            raise self._failures[name]

    def _new_id(self) -> str:
        order_id = str(self._next_id)
        self._next_id += 1
        return order_id

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def connect(self) -> None:
        self._record("connect")
        self.connected = True

    async def close(self) -> None:
        self._record("close")
        self.connected = False

    async def reconnect(self) -> None:
        self.reconnects += 1
        await super().reconnect()

    # =========================================================================
    # ExchangeGateway
    # =========================================================================

    async def get_ticker(self, symbol: str) -> Decimal:
        self._record("get_ticker", symbol)
        return self._price

    async def get_candles(self, symbol: str, interval: str, limit: int = 100) -> list[Kline]:
        self._record("get_candles", (symbol, interval, limit))
        return self._klines[-limit:]

    async def get_symbol_filters(self, symbol: str) -> SymbolInfo:
        self._record("get_symbol_filters", symbol)
        return self._filters

    async def get_open_orders(self, symbol: str) -> list[Order]:
        self._record("get_open_orders", symbol)
        return self.open_orders

    async def get_positions(self, symbol: str) -> list[Position]:
        self._record("get_positions", symbol)
        return [p for p in self._positions if p.quantity != 0]

    async def set_leverage(self, symbol: str, leverage: int) -> int:
        self._record("set_leverage", (symbol, leverage))
        self.leverage = leverage
        return leverage

    async def place_order(self, intent: OrderIntent) -> OrderResult:
        self._record("place_order", intent)

        order_type = OrderType(intent.order_type)
        if order_type.value in self._rejected_types:
            return OrderResult.failure(intent, "Order would immediately trigger.", "-2021")

        self.placed.append(intent)
        order = Order(
            order_id=self._new_id(),
            client_order_id=intent.client_order_id,
            symbol=intent.symbol,
            side=intent.side,
            order_type=order_type,
            price=intent.price,
            stop_price=intent.stop_price,
            activation_price=intent.activation_price,
            quantity=intent.quantity,
            reduce_only=intent.reduce_only,
            is_algo=intent.is_conditional,
            created_at=datetime.now(timezone.utc),
        )

        if order_type == OrderType.MARKET:
            self._fill_market(intent)
            order.status = "FILLED"
        else:
            self._open_orders[order.order_id] = order

        return OrderResult.from_order(order)

    async def cancel_order(self, symbol: str, order_id: str, is_algo: bool = False) -> bool:
        self._record("cancel_order", (symbol, order_id, is_algo))
        if self._open_orders.pop(order_id, None) is None:
            return False
        self.cancelled.append(order_id)
        return True

    def _fill_market(self, intent: OrderIntent) -> None:
        signed = intent.quantity if intent.side == "BUY" else -intent.quantity

        if intent.reduce_only:
            remaining = []
            for position in self._positions:
                closes = (position.quantity > 0) != (signed > 0)
                if closes and position.size <= intent.quantity:
                    continue
                remaining.append(position)
            self._positions = remaining
            return

        self._positions.append(Position(
            symbol=intent.symbol,
            quantity=signed,
            entry_price=self._price,
            mark_price=self._price,
        ))
