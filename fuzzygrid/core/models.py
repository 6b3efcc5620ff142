"""
Market data models for the fuzzy grid bot.

Pydantic v2 models for klines, orders, positions and symbol filters,
with constructors for Binance USDT-M Futures payloads.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, computed_field

from .utils import timestamp_to_datetime


# =============================================================================
# Enums
# =============================================================================


class OrderSide(str, Enum):
    """Order side - buy or sell."""

    BUY = "BUY"
    SELL = "SELL"

    @property
    def opposite(self) -> "OrderSide":
        """The closing side for a position opened on this side."""
        return OrderSide.SELL if self is OrderSide.BUY else OrderSide.BUY


class OrderType(str, Enum):
    """Order type."""

    MARKET = "MARKET"
    LIMIT = "LIMIT"
    STOP_MARKET = "STOP_MARKET"
    TAKE_PROFIT_MARKET = "TAKE_PROFIT_MARKET"
    TRAILING_STOP_MARKET = "TRAILING_STOP_MARKET"


CONDITIONAL_ORDER_TYPES = frozenset({
    OrderType.STOP_MARKET,
    OrderType.TAKE_PROFIT_MARKET,
    OrderType.TRAILING_STOP_MARKET,
})


class OrderStatus(str, Enum):
    """Order status."""

    NEW = "NEW"
    PARTIALLY_FILLED = "PARTIALLY_FILLED"
    FILLED = "FILLED"
    CANCELED = "CANCELED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


class PositionSide(str, Enum):
    """Position side for futures trading."""

    LONG = "LONG"
    SHORT = "SHORT"
    BOTH = "BOTH"


class KlineInterval(str, Enum):
    """Kline/candlestick interval."""

    m1 = "1m"
    m3 = "3m"
    m5 = "5m"
    m15 = "15m"
    m30 = "30m"
    h1 = "1h"
    h4 = "4h"
    d1 = "1d"


# Binance algo order statuses mapped onto OrderStatus
_ALGO_STATUS_MAP = {
    "NEW": OrderStatus.NEW,
    "TRIGGERING": OrderStatus.NEW,
    "TRIGGERED": OrderStatus.FILLED,
    "FINISHED": OrderStatus.FILLED,
    "CANCELED": OrderStatus.CANCELED,
    "CANCELLED": OrderStatus.CANCELED,
    "REJECTED": OrderStatus.REJECTED,
    "EXPIRED": OrderStatus.EXPIRED,
}


def _optional_decimal(value) -> Optional[Decimal]:
    """Parse an optional numeric field, treating "" and zero as absent."""
    if value in (None, ""):
        return None
    parsed = Decimal(str(value))
    return parsed if parsed != 0 else None


# =============================================================================
# Base Model Configuration
# =============================================================================


class TradingBaseModel(BaseModel):
    """Base model with common configuration for all trading models."""

    model_config = ConfigDict(
        use_enum_values=True,
        validate_assignment=True,
        from_attributes=True,
    )


# =============================================================================
# Kline Model
# =============================================================================


class Kline(TradingBaseModel):
    """K-line (candlestick) data model. Immutable once fetched."""

    symbol: str
    interval: KlineInterval
    open_time: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal
    close_time: datetime

    @computed_field
    @property
    def typical_price(self) -> Decimal:
        """Typical price ((high + low + close) / 3)."""
        return (self.high + self.low + self.close) / Decimal("3")

    @classmethod
    def from_binance(cls, data: list, symbol: str, interval: KlineInterval | str) -> "Kline":
        """
        Create Kline from Binance API kline data.

        Args:
            data: Binance kline array [open_time, open, high, low, close, volume, close_time, ...]
            symbol: Trading pair symbol
            interval: Kline interval

        Returns:
            Kline instance
        """
        return cls(
            symbol=symbol,
            interval=interval,
            open_time=timestamp_to_datetime(data[0]),
            open=Decimal(str(data[1])),
            high=Decimal(str(data[2])),
            low=Decimal(str(data[3])),
            close=Decimal(str(data[4])),
            volume=Decimal(str(data[5])),
            close_time=timestamp_to_datetime(data[6]),
        )


# =============================================================================
# Order Model
# =============================================================================


class Order(TradingBaseModel):
    """Open or historical order. Conditional orders carry is_algo=True."""

    order_id: str
    client_order_id: Optional[str] = None
    symbol: str
    side: OrderSide
    order_type: OrderType
    status: OrderStatus = OrderStatus.NEW
    price: Optional[Decimal] = None
    stop_price: Optional[Decimal] = None
    activation_price: Optional[Decimal] = None
    quantity: Decimal
    reduce_only: bool = False
    is_algo: bool = False
    created_at: datetime

    @computed_field
    @property
    def is_limit(self) -> bool:
        """True for LIMIT (grid leg) orders."""
        return self.order_type == OrderType.LIMIT

    @computed_field
    @property
    def is_take_profit(self) -> bool:
        """True for TAKE_PROFIT_MARKET orders."""
        return self.order_type == OrderType.TAKE_PROFIT_MARKET

    @computed_field
    @property
    def is_stop_loss(self) -> bool:
        """True for STOP_MARKET orders."""
        return self.order_type == OrderType.STOP_MARKET

    @computed_field
    @property
    def is_trailing_stop(self) -> bool:
        """True for TRAILING_STOP_MARKET orders."""
        return self.order_type == OrderType.TRAILING_STOP_MARKET

    @property
    def trigger_price(self) -> Optional[Decimal]:
        """Price that identifies a conditional order (stop or activation price)."""
        if self.is_trailing_stop:
            return self.activation_price or self.stop_price
        return self.stop_price

    @classmethod
    def from_binance(cls, data: dict) -> "Order":
        """
        Create Order from Binance Futures order data.

        Args:
            data: Binance order response (openOrders / order endpoints)

        Returns:
            Order instance
        """
        return cls(
            order_id=str(data["orderId"]),
            client_order_id=data.get("clientOrderId"),
            symbol=data["symbol"],
            side=OrderSide(data["side"]),
            order_type=OrderType(data.get("origType") or data["type"]),
            status=OrderStatus(data.get("status", "NEW")),
            price=_optional_decimal(data.get("price")),
            stop_price=_optional_decimal(data.get("stopPrice")),
            activation_price=_optional_decimal(data.get("activatePrice")),
            quantity=Decimal(str(data.get("origQty", "0"))),
            reduce_only=bool(data.get("reduceOnly", False)),
            created_at=timestamp_to_datetime(data.get("time", data.get("updateTime", 0))),
        )

    @classmethod
    def from_binance_algo(cls, data: dict) -> "Order":
        """
        Create Order from a Binance Futures algo (conditional) order.

        Args:
            data: Entry of the openAlgoOrders response or an algoOrder response

        Returns:
            Order instance with is_algo=True
        """
        order_type = data.get("orderType") or data.get("type")
        status = _ALGO_STATUS_MAP.get(str(data.get("algoStatus", "NEW")).upper(), OrderStatus.NEW)
        created = data.get("createTime")

        return cls(
            order_id=str(data["algoId"]),
            client_order_id=data.get("clientAlgoId"),
            symbol=data["symbol"],
            side=OrderSide(data["side"]),
            order_type=OrderType(order_type),
            status=status,
            price=_optional_decimal(data.get("price")),
            stop_price=_optional_decimal(data.get("triggerPrice")),
            activation_price=_optional_decimal(data.get("activatePrice")),
            quantity=Decimal(str(data.get("quantity", "0"))),
            reduce_only=bool(data.get("reduceOnly", False)),
            is_algo=True,
            created_at=timestamp_to_datetime(created) if created else datetime.now(timezone.utc),
        )


# =============================================================================
# Position Model (Futures)
# =============================================================================


class Position(TradingBaseModel):
    """Futures position. quantity is signed: > 0 long, < 0 short."""

    symbol: str
    side: PositionSide = PositionSide.BOTH
    quantity: Decimal
    entry_price: Decimal
    mark_price: Decimal = Decimal("0")
    unrealized_pnl: Decimal = Decimal("0")
    leverage: int = 1

    @computed_field
    @property
    def size(self) -> Decimal:
        """Absolute position size."""
        return abs(self.quantity)

    @computed_field
    @property
    def is_long(self) -> bool:
        """True if long position."""
        if self.side == PositionSide.SHORT:
            return False
        return self.side == PositionSide.LONG or self.quantity > 0

    @computed_field
    @property
    def is_short(self) -> bool:
        """True if short position."""
        return not self.is_long and self.quantity != 0

    @property
    def direction(self) -> str:
        """Direction label, LONG or SHORT."""
        return "LONG" if self.is_long else "SHORT"

    @property
    def close_side(self) -> OrderSide:
        """Market side that closes this position."""
        return OrderSide.SELL if self.is_long else OrderSide.BUY

    def realized_pnl(self, exit_price: Optional[Decimal] = None) -> Decimal:
        """
        P&L of closing the whole position at exit_price.

        Args:
            exit_price: Close price; defaults to mark price, then entry price

        Returns:
            (exit - entry) * size for longs, (entry - exit) * size for shorts
        """
        price = exit_price or self.mark_price or self.entry_price
        if self.is_long:
            return (price - self.entry_price) * self.size
        return (self.entry_price - price) * self.size

    @classmethod
    def from_binance(cls, data: dict) -> "Position":
        """
        Create Position from Binance Futures positionRisk data.

        Args:
            data: Binance position response

        Returns:
            Position instance
        """
        return cls(
            symbol=data["symbol"],
            side=PositionSide(data.get("positionSide", "BOTH")),
            quantity=Decimal(str(data["positionAmt"])),
            entry_price=Decimal(str(data["entryPrice"])),
            mark_price=Decimal(str(data.get("markPrice", "0"))),
            unrealized_pnl=Decimal(str(data.get("unRealizedProfit", "0"))),
            leverage=int(data.get("leverage", 1)),
        )


# =============================================================================
# SymbolInfo Model
# =============================================================================


class SymbolInfo(TradingBaseModel):
    """Trading pair precision and filters."""

    symbol: str
    price_precision: int
    quantity_precision: int
    tick_size: Decimal
    step_size: Decimal = Decimal("0")
    min_quantity: Decimal = Decimal("0")

    @classmethod
    def from_binance(cls, data: dict) -> "SymbolInfo":
        """
        Create SymbolInfo from Binance Futures exchange info.

        Args:
            data: Binance symbol entry from exchangeInfo

        Returns:
            SymbolInfo instance
        """
        filters = {f["filterType"]: f for f in data.get("filters", [])}

        lot_size = filters.get("LOT_SIZE", {})
        price_filter = filters.get("PRICE_FILTER", {})

        return cls(
            symbol=data["symbol"],
            price_precision=int(data.get("pricePrecision", 8)),
            quantity_precision=int(data.get("quantityPrecision", 8)),
            tick_size=Decimal(str(price_filter.get("tickSize", "0.00000001"))),
            step_size=Decimal(str(lot_size.get("stepSize", "0"))),
            min_quantity=Decimal(str(lot_size.get("minQty", "0"))),
        )
