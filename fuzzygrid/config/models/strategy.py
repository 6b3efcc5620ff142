"""
Strategy Configuration Models.

Indicator periods, fuzzy bands, weight vectors, thresholds and grid
parameters. Defaults target a low-priced USDT-M pair such as DOGEUSDT.
"""

from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator, model_validator

from .base import BaseConfig


class IndicatorConfig(BaseConfig):
    """Indicator periods."""

    short_ema_period: int = Field(default=5, ge=1)
    short_ema_window: int = Field(default=10, ge=1, description="Closes fed to the short EMA")
    long_ema_period: int = Field(default=20, ge=1)
    long_ema_window: int = Field(default=20, ge=1, description="Closes fed to the long EMA")
    rsi_period: int = Field(default=14, ge=1)
    atr_period: int = Field(default=14, ge=1)
    macd_short: int = Field(default=12, ge=1)
    macd_long: int = Field(default=26, ge=2)
    macd_signal: int = Field(default=9, ge=1)
    bollinger_period: int = Field(default=20, ge=1)
    bollinger_multiplier: Decimal = Field(default=Decimal("2"), gt=0)

    @model_validator(mode="after")
    def validate_windows(self) -> "IndicatorConfig":
        """EMA windows must hold at least one period; MACD short < long."""
        if self.short_ema_window < self.short_ema_period:
            raise ValueError("short_ema_window must be >= short_ema_period")
        if self.long_ema_window < self.long_ema_period:
            raise ValueError("long_ema_window must be >= long_ema_period")
        if self.macd_short >= self.macd_long:
            raise ValueError("macd_short must be < macd_long")
        return self

    @property
    def required_candles(self) -> int:
        """Longest lookback over all indicators."""
        return max(
            self.short_ema_window,
            self.long_ema_window,
            self.rsi_period + 1,
            self.atr_period + 1,
            self.macd_long + self.macd_signal,
            self.bollinger_period,
        )


class ExtremeConfig(BaseConfig):
    """Extreme market condition gate."""

    high_volatility_band: tuple[Decimal, Decimal] = Field(
        default=(Decimal("0.05"), Decimal("0.1")),
        description="Absolute ATR band for 'high volatility' (trapezoid)",
    )
    extreme_volatility_band: tuple[Decimal, Decimal] = Field(
        default=(Decimal("0.1"), Decimal("0.2")),
        description="Absolute ATR band for 'extreme volatility' (trapezoid)",
    )
    volume_spike_band: tuple[Decimal, Decimal] = Field(
        default=(Decimal("1.5"), Decimal("3")),
        description="Last volume as multiples of average volume (triangle)",
    )
    below_vwap_band: tuple[Decimal, Decimal] = Field(
        default=(Decimal("0.8"), Decimal("0.9")),
        description="Price as multiples of VWAP (linear)",
    )
    above_vwap_band: tuple[Decimal, Decimal] = Field(
        default=(Decimal("1.1"), Decimal("1.2")),
        description="Price as multiples of VWAP (linear)",
    )
    weights: list[Decimal] = Field(
        default_factory=lambda: [Decimal("0.2")] * 5,
        description="Weights for the five extreme signals",
    )
    threshold: Decimal = Field(default=Decimal("0.75"), gt=0, le=1)

    @field_validator(
        "high_volatility_band",
        "extreme_volatility_band",
        "volume_spike_band",
        "below_vwap_band",
        "above_vwap_band",
    )
    @classmethod
    def validate_band(cls, v: tuple[Decimal, Decimal]) -> tuple[Decimal, Decimal]:
        """Bands are (low, high) with low < high."""
        if v[0] >= v[1]:
            raise ValueError(f"band low must be < high, got {v}")
        return v

    @field_validator("weights")
    @classmethod
    def validate_weights(cls, v: list[Decimal]) -> list[Decimal]:
        """Five non-negative weights."""
        if len(v) != 5:
            raise ValueError("extreme weights must have 5 entries")
        if any(w < 0 for w in v):
            raise ValueError("weights must be non-negative")
        return v


class ThresholdConfig(BaseConfig):
    """Dynamic directional threshold: higher volatility needs higher confidence."""

    base: Decimal = Field(default=Decimal("0.75"), gt=0, le=1)
    low_volatility: Decimal = Field(default=Decimal("0.65"), gt=0, le=1)
    high_volatility: Decimal = Field(default=Decimal("0.8"), gt=0, le=1)
    low_atr: Decimal = Field(default=Decimal("0.05"), ge=0)
    high_atr: Decimal = Field(default=Decimal("0.1"), ge=0)

    @model_validator(mode="after")
    def validate_monotonic(self) -> "ThresholdConfig":
        """low_volatility <= base <= high_volatility and low_atr <= high_atr."""
        if not (self.low_volatility <= self.base <= self.high_volatility):
            raise ValueError("thresholds must satisfy low_volatility <= base <= high_volatility")
        if self.low_atr > self.high_atr:
            raise ValueError("low_atr must be <= high_atr")
        return self


class SignalConfig(BaseConfig):
    """Directional BUY/SELL signal bands and weights."""

    oversold_rsi_band: tuple[Decimal, Decimal] = Field(
        default=(Decimal("30"), Decimal("50")),
    )
    overbought_rsi_band: tuple[Decimal, Decimal] = Field(
        default=(Decimal("50"), Decimal("70")),
    )
    band_proximity: Decimal = Field(
        default=Decimal("0.02"),
        ge=0,
        lt=1,
        description="Width of the 'near Bollinger band' zone as a fraction of the band",
    )
    vwap_proximity: Decimal = Field(
        default=Decimal("0.05"),
        gt=0,
        lt=1,
        description="Width of the 'below/above VWAP' zone as a fraction of VWAP",
    )
    buy_weights: Optional[list[Decimal]] = Field(
        default=None,
        description="Weights for the five BUY signals (equal when omitted)",
    )
    sell_weights: Optional[list[Decimal]] = Field(
        default=None,
        description="Weights for the five SELL signals (equal when omitted)",
    )

    @field_validator("buy_weights", "sell_weights")
    @classmethod
    def validate_weights(cls, v: Optional[list[Decimal]]) -> Optional[list[Decimal]]:
        """Five non-negative weights, or None."""
        if v is None:
            return v
        if len(v) != 5:
            raise ValueError("signal weights must have 5 entries")
        if any(w < 0 for w in v):
            raise ValueError("weights must be non-negative")
        return v


class GridConfig(BaseConfig):
    """Grid placement and bracket parameters."""

    grid_count: int = Field(default=3, ge=1, le=50, description="Grid depth N")
    base_notional: Decimal = Field(
        default=Decimal("10"),
        gt=0,
        description="Margin per leg in quote currency (BASE_USDT)",
    )
    leverage: int = Field(default=10, ge=1, le=125)
    spacing_atr_multiplier: Decimal = Field(default=Decimal("1"), gt=0)
    entry_offset_atr_ratio: Decimal = Field(default=Decimal("0.1"), ge=0)
    min_tick_multiple: int = Field(default=5, ge=1)
    min_price_ratio: Decimal = Field(default=Decimal("0.002"), ge=0)
    bracket_atr_multiplier: Decimal = Field(default=Decimal("1"), ge=0)
    bracket_extra_ratio: Decimal = Field(default=Decimal("0.1"), ge=0)
    use_trailing_stop: bool = False
    trailing_activation_atr_ratio: Decimal = Field(default=Decimal("0.5"), ge=0)
    trailing_callback_atr_multiplier: Decimal = Field(default=Decimal("1"), gt=0)
    min_callback_rate: Decimal = Field(default=Decimal("0.1"), gt=0)
    max_callback_rate: Decimal = Field(default=Decimal("5"), gt=0)
    open_market_entry: bool = Field(
        default=False,
        description="Also open a MARKET position of one leg's size after placing the grid",
    )
    order_pause: float = Field(default=0.1, ge=0, description="Seconds between leg submissions")
    bracket_pause: float = Field(default=1.0, ge=0, description="Seconds before re-querying for brackets")

    @model_validator(mode="after")
    def validate_callback_range(self) -> "GridConfig":
        """Callback rate range must be ordered."""
        if self.min_callback_rate > self.max_callback_rate:
            raise ValueError("min_callback_rate must be <= max_callback_rate")
        return self


class StrategyConfig(BaseConfig):
    """
    Complete strategy configuration for one traded symbol.

    Example:
        >>> config = StrategyConfig(symbol="DOGEUSDT", grid=GridConfig(grid_count=5))
        >>> config.indicators.required_candles
        35
    """

    symbol: str = Field(default="BTCUSDT", min_length=1)
    interval: str = Field(default="15m", description="Kline interval")
    candle_limit: int = Field(default=100, ge=10, le=1500)
    indicators: IndicatorConfig = Field(default_factory=IndicatorConfig)
    extreme: ExtremeConfig = Field(default_factory=ExtremeConfig)
    threshold: ThresholdConfig = Field(default_factory=ThresholdConfig)
    signals: SignalConfig = Field(default_factory=SignalConfig)
    grid: GridConfig = Field(default_factory=GridConfig)

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        """Symbols are upper case."""
        return v.upper()

    @model_validator(mode="after")
    def validate_history(self) -> "StrategyConfig":
        """candle_limit must cover the longest indicator lookback."""
        required = self.indicators.required_candles
        if self.candle_limit < required:
            raise ValueError(f"candle_limit {self.candle_limit} < required history {required}")
        return self
