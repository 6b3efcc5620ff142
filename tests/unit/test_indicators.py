"""
Unit tests for the indicator library.

Tests EMA, RSI, ATR, MACD, Bollinger Bands, VWAP and the snapshot calculator.
"""

from decimal import Decimal

import pytest

from fuzzygrid.bots.fuzzy_grid import (
    IndicatorCalculator,
    atr,
    bollinger_bands,
    ema,
    ema_series,
    macd,
    rsi,
    vwap,
)
from fuzzygrid.bots.fuzzy_grid.indicators import true_ranges
from fuzzygrid.config import IndicatorConfig
from fuzzygrid.core.exceptions import InsufficientDataError


def D(values):
    return [Decimal(str(v)) for v in values]


class TestEMA:
    """Tests for ema and ema_series."""

    def test_ema_of_short_series_is_sma(self):
        """Test that the first EMA value is the SMA seed."""
        assert ema(D([1, 2, 3]), 3) == Decimal("2")

    def test_ema_series_length(self):
        values = D(range(1, 11))
        assert len(ema_series(values, 4)) == 7

    def test_ema_recursion(self):
        """Test EMA_i = (p_i - EMA_{i-1}) * k + EMA_{i-1}."""
        # seed = 2, k = 2/4 = 0.5, next = (5 - 2) * 0.5 + 2 = 3.5
        assert ema(D([1, 2, 3, 5]), 3) == Decimal("3.5")

    @pytest.mark.parametrize("values", [
        [5, 1, 9, 3, 7, 2, 8],
        [0.1, 0.1002, 0.0998, 0.1005, 0.0991],
        [100, 100, 100, 100],
    ])
    def test_ema_within_series_bounds(self, values):
        """Test EMA never leaves [min, max] of its input."""
        series = D(values)
        result = ema(series, 3)
        assert min(series) <= result <= max(series)

    def test_ema_insufficient_data(self):
        with pytest.raises(InsufficientDataError) as exc_info:
            ema(D([1, 2]), 3)
        assert exc_info.value.required == 3
        assert exc_info.value.actual == 2

    def test_ema_rejects_non_positive_period(self):
        with pytest.raises(ValueError):
            ema(D([1, 2, 3]), 0)


class TestRSI:
    """Tests for rsi."""

    def test_all_gains_is_100(self):
        closes = D(range(1, 20))
        assert rsi(closes, 14) == Decimal("100")

    def test_all_losses_is_0(self):
        closes = D(range(20, 1, -1))
        assert rsi(closes, 14) == Decimal("0")

    def test_flat_series_saturates_at_100(self):
        """Test that zero average loss gives 100 even without gains."""
        assert rsi(D([5] * 20), 14) == Decimal("100")

    def test_mixed_series_in_range(self, rising_klines, falling_klines):
        closes = [k.close for k in rising_klines[:20]] + [k.close for k in falling_klines[:20]]
        value = rsi(closes, 14)
        assert Decimal("0") <= value <= Decimal("100")

    def test_known_value(self):
        """Test RSI for equal average gain and loss."""
        # deltas: +1, -1, +1, -1 with period 4 -> avg_gain == avg_loss -> 50
        assert rsi(D([10, 11, 10, 11, 10]), 4) == Decimal("50")

    def test_needs_period_plus_one(self):
        with pytest.raises(InsufficientDataError):
            rsi(D(range(14)), 14)


class TestATR:
    """Tests for true_ranges and atr."""

    def test_true_range_uses_previous_close(self, kline_factory):
        klines = kline_factory(["0.1", "0.11"], spread="0")
        # bar 1: open 0.1, close 0.11, high 0.11, low 0.1, prev close 0.1
        assert true_ranges(klines) == [Decimal("0.01")]

    def test_atr_flat_klines(self, flat_klines):
        """Test ATR of flat bars equals the constant bar range."""
        assert atr(flat_klines, 14) == Decimal("0.001")

    def test_atr_zero_when_bars_are_points(self, kline_factory):
        klines = kline_factory(["0.1"] * 20, spread="0")
        assert atr(klines, 14) == Decimal("0")

    def test_atr_non_negative(self, rising_klines, falling_klines):
        assert atr(rising_klines, 14) >= 0
        assert atr(falling_klines, 14) >= 0

    def test_atr_is_simple_mean_of_last_period(self, kline_factory):
        klines = kline_factory(["1", "1", "1", "2", "1"], spread="0")
        # true ranges: 0, 0, 1, 1 -> last 2 -> mean 1
        assert atr(klines, 2) == Decimal("1")

    def test_atr_insufficient_data(self, flat_klines):
        with pytest.raises(InsufficientDataError):
            atr(flat_klines[:14], 14)


class TestMACD:
    """Tests for macd."""

    def test_rising_series_has_positive_macd(self, rising_klines):
        closes = [k.close for k in rising_klines]
        result = macd(closes, 12, 26, 9)
        assert result.macd_line > 0

    def test_flat_series_has_zero_macd(self):
        result = macd(D([1] * 40), 12, 26, 9)
        assert result.macd_line == 0
        assert result.signal_line == 0
        assert result.histogram == 0

    def test_needs_long_plus_signal(self):
        with pytest.raises(InsufficientDataError):
            macd(D(range(1, 35)), 12, 26, 9)


class TestBollingerBands:
    """Tests for bollinger_bands."""

    def test_flat_series_collapses_bands(self):
        bands = bollinger_bands(D([2] * 20), 20)
        assert bands.upper == bands.middle == bands.lower == Decimal("2")

    def test_population_std(self):
        """Test bands use population standard deviation."""
        # mean 5, population variance 4, std 2
        bands = bollinger_bands(D([2, 4, 4, 4, 5, 5, 7, 9]), 8, Decimal("2"))
        assert bands.middle == Decimal("5")
        assert bands.upper == Decimal("9")
        assert bands.lower == Decimal("1")

    def test_uses_last_period_closes(self):
        bands = bollinger_bands(D([100, 1, 1, 1]), 3)
        assert bands.middle == Decimal("1")


class TestVWAP:
    """Tests for vwap."""

    def test_flat_klines(self, flat_klines):
        assert vwap(flat_klines) == Decimal("0.1")

    def test_volume_weighting(self, kline_factory):
        klines = kline_factory(["1", "4"], volumes=["1", "3"], spread="0")
        # typical prices: 1 and (4 + 1 + 4) / 3 = 3
        assert vwap(klines) == Decimal("2.5")

    def test_zero_volume_returns_zero(self, kline_factory):
        klines = kline_factory(["1", "2"], volumes=["0", "0"])
        assert vwap(klines) == Decimal("0")


class TestIndicatorCalculator:
    """Tests for IndicatorCalculator."""

    def test_required_candles(self):
        calculator = IndicatorCalculator(IndicatorConfig())
        # MACD long + signal = 35 is the longest lookback
        assert calculator.required_candles == 35

    def test_rising_snapshot(self, rising_klines):
        snapshot = IndicatorCalculator(IndicatorConfig()).calculate(rising_klines)

        assert snapshot.short_ema > snapshot.long_ema
        assert snapshot.rsi == Decimal("100")
        assert snapshot.price == rising_klines[-1].close
        assert snapshot.lower_band < snapshot.middle_band < snapshot.upper_band
        assert snapshot.average_volume == Decimal("1000")
        assert snapshot.last_volume == Decimal("1000")

    def test_falling_snapshot(self, falling_klines):
        snapshot = IndicatorCalculator(IndicatorConfig()).calculate(falling_klines)

        assert snapshot.short_ema < snapshot.long_ema
        assert snapshot.macd_line < 0
        assert snapshot.rsi == Decimal("0")

    def test_short_window_raises(self, rising_klines):
        calculator = IndicatorCalculator(IndicatorConfig())
        with pytest.raises(InsufficientDataError) as exc_info:
            calculator.calculate(rising_klines[:20])
        assert exc_info.value.required == 35
        assert exc_info.value.actual == 20
