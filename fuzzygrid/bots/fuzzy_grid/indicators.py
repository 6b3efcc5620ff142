"""
Technical Indicator Library.

Pure functions over Decimal close series or kline-like objects
(anything exposing high, low, close and volume).

Formulas:
    EMA_i   = (price_i - EMA_{i-1}) * 2 / (period + 1) + EMA_{i-1}, seeded with the SMA
    RSI     = 100 - 100 / (1 + avg_gain / avg_loss), Wilder smoothing after the seed
    TR      = max(high - low, |high - prev_close|, |low - prev_close|)
    ATR     = simple mean of the last `period` true ranges
    MACD    = EMA(short) - EMA(long), signal = EMA(MACD, signal)
    Bands   = SMA ± multiplier * population std
    VWAP    = sum(typical * volume) / sum(volume) over the whole window
"""

from decimal import Decimal
from typing import List, Protocol, Sequence

from fuzzygrid.core import get_logger
from fuzzygrid.core.exceptions import InsufficientDataError

from .models import BandsResult, IndicatorSnapshot, MACDResult

logger = get_logger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


# =============================================================================
# Protocols
# =============================================================================


class KlineProtocol(Protocol):
    """Protocol for Kline data."""

    @property
    def high(self) -> Decimal: ...

    @property
    def low(self) -> Decimal: ...

    @property
    def close(self) -> Decimal: ...

    @property
    def volume(self) -> Decimal: ...


def _check_period(period: int) -> None:
    if period <= 0:
        raise ValueError(f"period must be positive, got {period}")


def _require(values: Sequence, required: int, indicator: str) -> None:
    if len(values) < required:
        raise InsufficientDataError(required, len(values), indicator)


# =============================================================================
# Moving Averages
# =============================================================================


def ema_series(values: Sequence[Decimal], period: int) -> List[Decimal]:
    """
    Exponential moving average for every index from period - 1 on.

    Args:
        values: Price series, oldest first
        period: EMA period

    Returns:
        len(values) - period + 1 EMA values; the first is the SMA seed

    Raises:
        InsufficientDataError: If len(values) < period
    """
    _check_period(period)
    _require(values, period, "EMA")

    multiplier = Decimal("2") / Decimal(period + 1)
    current = sum(values[:period], ZERO) / Decimal(period)
    result = [current]

    for price in values[period:]:
        current = (price - current) * multiplier + current
        result.append(current)

    return result


def ema(values: Sequence[Decimal], period: int) -> Decimal:
    """
    Latest EMA value.

    Example:
        >>> ema([Decimal(1), Decimal(2), Decimal(3)], 3)
        Decimal('2')
    """
    return ema_series(values, period)[-1]


# =============================================================================
# Oscillators
# =============================================================================


def rsi(closes: Sequence[Decimal], period: int = 14) -> Decimal:
    """
    Relative Strength Index.

    The seed averages cover the first `period` deltas (an unchanged close
    counts as a zero gain); later deltas are Wilder-smoothed. A zero average
    loss saturates at 100, flat series included.

    Args:
        closes: Close prices, oldest first
        period: RSI period

    Returns:
        RSI in [0, 100]

    Raises:
        InsufficientDataError: If len(closes) <= period
    """
    _check_period(period)
    _require(closes, period + 1, "RSI")

    p = Decimal(period)
    gains = ZERO
    losses = ZERO
    for i in range(1, period + 1):
        change = closes[i] - closes[i - 1]
        if change >= 0:
            gains += change
        else:
            losses -= change

    avg_gain = gains / p
    avg_loss = losses / p

    for i in range(period + 1, len(closes)):
        change = closes[i] - closes[i - 1]
        gain = change if change > 0 else ZERO
        loss = -change if change < 0 else ZERO
        avg_gain = (avg_gain * (p - 1) + gain) / p
        avg_loss = (avg_loss * (p - 1) + loss) / p

    if avg_loss == 0:
        return HUNDRED

    rs = avg_gain / avg_loss
    return HUNDRED - HUNDRED / (Decimal("1") + rs)


def macd(
    closes: Sequence[Decimal],
    short: int = 12,
    long: int = 26,
    signal: int = 9,
) -> MACDResult:
    """
    MACD line and signal line at the last bar.

    The MACD series starts where the long EMA is first defined; the signal
    line is the EMA of that series.

    Raises:
        InsufficientDataError: If len(closes) < long + signal
    """
    for period in (short, long, signal):
        _check_period(period)
    _require(closes, long + signal, "MACD")

    short_emas = ema_series(closes, short)
    long_emas = ema_series(closes, long)

    # short_emas starts at index short - 1, long_emas at long - 1
    lag = long - short
    macd_values = [s - l for s, l in zip(short_emas[lag:], long_emas)]
    signal_value = ema(macd_values, signal)

    return MACDResult(macd_line=macd_values[-1], signal_line=signal_value)


# =============================================================================
# Volatility
# =============================================================================


def true_ranges(klines: Sequence[KlineProtocol]) -> List[Decimal]:
    """True range for every bar after the first."""
    ranges = []
    for prev, bar in zip(klines, klines[1:]):
        ranges.append(max(
            bar.high - bar.low,
            abs(bar.high - prev.close),
            abs(bar.low - prev.close),
        ))
    return ranges


def atr(klines: Sequence[KlineProtocol], period: int = 14) -> Decimal:
    """
    Average True Range as the simple mean of the last `period` true ranges.

    Raises:
        InsufficientDataError: If len(klines) < period + 1
    """
    _check_period(period)
    _require(klines, period + 1, "ATR")

    recent = true_ranges(klines)[-period:]
    return sum(recent, ZERO) / Decimal(period)


def bollinger_bands(
    closes: Sequence[Decimal],
    period: int = 20,
    multiplier: Decimal = Decimal("2"),
) -> BandsResult:
    """
    Bollinger Bands over the last `period` closes using population std.

    Raises:
        InsufficientDataError: If len(closes) < period
    """
    _check_period(period)
    _require(closes, period, "Bollinger Bands")

    window = closes[-period:]
    middle = sum(window, ZERO) / Decimal(period)
    variance = sum(((c - middle) ** 2 for c in window), ZERO) / Decimal(period)
    std = variance.sqrt()

    return BandsResult(
        upper=middle + std * multiplier,
        middle=middle,
        lower=middle - std * multiplier,
    )


# =============================================================================
# Volume
# =============================================================================


def vwap(klines: Sequence[KlineProtocol]) -> Decimal:
    """
    Volume-weighted average of the typical price over the whole window.

    Returns:
        VWAP, or 0 when the window has no volume
    """
    total_volume = ZERO
    total_value = ZERO
    for bar in klines:
        typical = (bar.high + bar.low + bar.close) / Decimal("3")
        total_value += typical * bar.volume
        total_volume += bar.volume

    if total_volume == 0:
        return ZERO
    return total_value / total_volume


# =============================================================================
# Calculator
# =============================================================================


class IndicatorCalculator:
    """
    Computes an IndicatorSnapshot from a kline window.

    Example:
        >>> calculator = IndicatorCalculator(IndicatorConfig())
        >>> snapshot = calculator.calculate(klines)
        >>> snapshot.short_ema > snapshot.long_ema
    """

    def __init__(self, config):
        """
        Args:
            config: IndicatorConfig with periods and EMA windows
        """
        self._config = config

    @property
    def required_candles(self) -> int:
        return self._config.required_candles

    def calculate(self, klines: Sequence[KlineProtocol]) -> IndicatorSnapshot:
        """
        Compute every indicator for the window.

        Raises:
            InsufficientDataError: If the window is shorter than required_candles
        """
        cfg = self._config
        if len(klines) < self.required_candles:
            raise InsufficientDataError(self.required_candles, len(klines), "indicator snapshot")

        closes = [k.close for k in klines]
        volumes = [k.volume for k in klines]

        macd_result = macd(closes, cfg.macd_short, cfg.macd_long, cfg.macd_signal)
        bands = bollinger_bands(closes, cfg.bollinger_period, cfg.bollinger_multiplier)

        snapshot = IndicatorSnapshot(
            short_ema=ema(closes[-cfg.short_ema_window:], cfg.short_ema_period),
            long_ema=ema(closes[-cfg.long_ema_window:], cfg.long_ema_period),
            rsi=rsi(closes, cfg.rsi_period),
            atr=atr(klines, cfg.atr_period),
            macd_line=macd_result.macd_line,
            signal_line=macd_result.signal_line,
            upper_band=bands.upper,
            middle_band=bands.middle,
            lower_band=bands.lower,
            vwap=vwap(klines),
            price=closes[-1],
            last_volume=volumes[-1],
            average_volume=sum(volumes, ZERO) / Decimal(len(volumes)),
        )

        logger.debug(f"Indicators: {snapshot.describe()}")
        return snapshot
