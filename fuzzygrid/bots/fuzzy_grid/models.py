"""
Fuzzy Grid Bot Data Models.

Per-cycle value objects (indicator snapshot, classification, exposure,
bracket plan, placement report, cycle result) and the session state that
carries running totals across cycles.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from fuzzygrid.core.models import Order, OrderSide, Position

if TYPE_CHECKING:
    from fuzzygrid.exchange.base import OrderIntent


# =============================================================================
# Enums
# =============================================================================


class MarketVerdict(str, Enum):
    """Classifier output for one cycle."""

    LONG = "LONG"
    SHORT = "SHORT"
    NEUTRAL = "NEUTRAL"
    EXTREME = "EXTREME"

    @property
    def is_directional(self) -> bool:
        """True for LONG and SHORT."""
        return self in (MarketVerdict.LONG, MarketVerdict.SHORT)

    @property
    def order_side(self) -> Optional[OrderSide]:
        """Entry side for a directional verdict, None otherwise."""
        if self is MarketVerdict.LONG:
            return OrderSide.BUY
        if self is MarketVerdict.SHORT:
            return OrderSide.SELL
        return None


class BotState(str, Enum):
    """Exposure state of the tracked symbol."""

    FLAT = "FLAT"
    PENDING_GRID = "PENDING_GRID"
    IN_POSITION_PROTECTED = "IN_POSITION_PROTECTED"
    IN_POSITION_UNPROTECTED = "IN_POSITION_UNPROTECTED"


class CycleAction(str, Enum):
    """What a reconciliation cycle ended up doing."""

    SKIPPED = "skipped"
    HOLD = "hold"
    GRID_PLACED = "grid_placed"
    FLATTENED = "flattened"
    FAILED = "failed"


# =============================================================================
# Indicator Results
# =============================================================================


@dataclass(frozen=True)
class MACDResult:
    """MACD line and its signal line at the last bar."""

    macd_line: Decimal
    signal_line: Decimal

    @property
    def histogram(self) -> Decimal:
        return self.macd_line - self.signal_line


@dataclass(frozen=True)
class BandsResult:
    """
    Bollinger Bands at the last bar.

    Attributes:
        upper: middle + multiplier * std
        middle: SMA of the window
        lower: middle - multiplier * std
    """

    upper: Decimal
    middle: Decimal
    lower: Decimal


@dataclass(frozen=True)
class IndicatorSnapshot:
    """All indicator values for one kline window. Recomputed every cycle."""

    short_ema: Decimal
    long_ema: Decimal
    rsi: Decimal
    atr: Decimal
    macd_line: Decimal
    signal_line: Decimal
    upper_band: Decimal
    middle_band: Decimal
    lower_band: Decimal
    vwap: Decimal
    price: Decimal
    last_volume: Decimal
    average_volume: Decimal

    def describe(self) -> str:
        """One-line summary for logging."""
        return (
            f"price={self.price:.6f} rsi={self.rsi:.2f} atr={self.atr:.6f} "
            f"ema={self.short_ema:.6f}/{self.long_ema:.6f} "
            f"macd={self.macd_line:.6f}/{self.signal_line:.6f} "
            f"bb=[{self.lower_band:.6f}, {self.upper_band:.6f}] vwap={self.vwap:.6f}"
        )


# =============================================================================
# Classification
# =============================================================================


@dataclass(frozen=True)
class Classification:
    """Classifier verdict with the scores that produced it."""

    verdict: MarketVerdict
    buy_score: Decimal
    sell_score: Decimal
    threshold: Decimal
    extreme_score: Decimal
    snapshot: IndicatorSnapshot

    def describe(self) -> str:
        return (
            f"{self.verdict.value} (buy={self.buy_score:.3f}, sell={self.sell_score:.3f}, "
            f"threshold={self.threshold}, extreme={self.extreme_score:.3f})"
        )


# =============================================================================
# Exposure
# =============================================================================


@dataclass
class ExposureSnapshot:
    """
    Open orders and positions for the tracked symbol, read once per cycle.

    The state machine:
        FLAT                     no orders, no position
        PENDING_GRID             limit orders with TP and SL, no position
        IN_POSITION_PROTECTED    position with TP and SL
        IN_POSITION_UNPROTECTED  everything else, including orphan brackets
    """

    open_orders: List[Order] = field(default_factory=list)
    positions: List[Position] = field(default_factory=list)

    @property
    def limit_orders(self) -> List[Order]:
        return [o for o in self.open_orders if o.is_limit]

    @property
    def take_profit_orders(self) -> List[Order]:
        return [o for o in self.open_orders if o.is_take_profit]

    @property
    def stop_loss_orders(self) -> List[Order]:
        return [o for o in self.open_orders if o.is_stop_loss]

    @property
    def position(self) -> Optional[Position]:
        """The first non-zero position, if any."""
        for pos in self.positions:
            if pos.quantity != 0:
                return pos
        return None

    @property
    def state(self) -> BotState:
        has_position = self.position is not None
        has_tp = bool(self.take_profit_orders)
        has_sl = bool(self.stop_loss_orders)

        if not self.open_orders and not has_position:
            return BotState.FLAT
        if has_position:
            if has_tp and has_sl:
                return BotState.IN_POSITION_PROTECTED
            return BotState.IN_POSITION_UNPROTECTED
        if self.limit_orders and has_tp and has_sl:
            return BotState.PENDING_GRID
        return BotState.IN_POSITION_UNPROTECTED


# =============================================================================
# Planning & Placement
# =============================================================================


@dataclass
class BracketPlan:
    """Protective orders for one grid leg."""

    take_profit: "OrderIntent"
    stop_loss: "OrderIntent"
    trailing_stop: Optional["OrderIntent"] = None

    @property
    def intents(self) -> List["OrderIntent"]:
        orders = [self.take_profit, self.stop_loss]
        if self.trailing_stop is not None:
            orders.append(self.trailing_stop)
        return orders


@dataclass
class PlacementReport:
    """Outcome of one place_grid call."""

    legs_placed: List["OrderIntent"] = field(default_factory=list)
    brackets_placed: List["OrderIntent"] = field(default_factory=list)
    duplicates_skipped: int = 0
    rejected: int = 0
    failed: int = 0

    @property
    def orders_placed(self) -> int:
        """Total orders acknowledged by the exchange."""
        return len(self.legs_placed) + len(self.brackets_placed)


@dataclass
class CycleResult:
    """Summary of one reconciliation cycle."""

    action: CycleAction
    verdict: Optional[MarketVerdict] = None
    state: Optional[BotState] = None
    reason: str = ""
    orders_placed: int = 0
    error: Optional[Exception] = None


# =============================================================================
# Session State
# =============================================================================


@dataclass
class SessionState:
    """Running totals for one bot session."""

    total_profit: Decimal = field(default_factory=lambda: Decimal("0"))
    total_loss: Decimal = field(default_factory=lambda: Decimal("0"))
    positions_closed: int = 0
    cycles: int = 0
    consecutive_failures: int = 0
    last_verdict: Optional[MarketVerdict] = None
    last_state: Optional[BotState] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def net_pnl(self) -> Decimal:
        return self.total_profit - self.total_loss

    def record_close(self, pnl: Decimal) -> None:
        """Book the P/L of a closed position."""
        self.positions_closed += 1
        if pnl > 0:
            self.total_profit += pnl
        else:
            self.total_loss += abs(pnl)

    def record_failure(self) -> int:
        """Count a failed cycle and return the current streak."""
        self.consecutive_failures += 1
        return self.consecutive_failures

    def record_success(self) -> None:
        self.consecutive_failures = 0

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "total_profit": str(self.total_profit),
            "total_loss": str(self.total_loss),
            "net_pnl": str(self.net_pnl),
            "positions_closed": self.positions_closed,
            "cycles": self.cycles,
            "consecutive_failures": self.consecutive_failures,
            "last_verdict": self.last_verdict.value if self.last_verdict else None,
            "last_state": self.last_state.value if self.last_state else None,
            "started_at": self.started_at.isoformat(),
        }
