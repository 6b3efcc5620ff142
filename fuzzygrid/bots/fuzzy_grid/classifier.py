"""
Market Condition Classifier.

Two gates per cycle:

1. Extreme condition: ATR in the high and extreme volatility bands, a
   volume spike, and price far from VWAP are aggregated; at or above the
   extreme threshold the verdict is EXTREME and nothing else runs.
2. Direction: five BUY and five mirrored SELL signals are aggregated into
   scores. LONG needs buy > sell and buy >= threshold, SHORT the mirror;
   anything else is NEUTRAL. The threshold rises with ATR.
"""

from decimal import Decimal
from typing import List, Sequence

from fuzzygrid.core import get_logger

from .fuzzy import FuzzyRule, FuzzySignal, MembershipShape, membership
from .indicators import IndicatorCalculator, KlineProtocol
from .models import Classification, IndicatorSnapshot, MarketVerdict

logger = get_logger(__name__)

ZERO = Decimal("0")
ONE = Decimal("1")


class MarketClassifier:
    """
    Fuzzy-logic market classifier.

    Example:
        >>> classifier = MarketClassifier(StrategyConfig(symbol="DOGEUSDT"))
        >>> result = classifier.classify(klines)
        >>> if result.verdict.is_directional:
        ...     print(result.verdict.order_side)
    """

    def __init__(self, config):
        """
        Initialize classifier.

        Args:
            config: StrategyConfig (indicator periods, bands, weights, thresholds)
        """
        self._config = config
        self._calculator = IndicatorCalculator(config.indicators)

    @property
    def required_candles(self) -> int:
        return self._calculator.required_candles

    # =========================================================================
    # Gate 1: Extreme Condition
    # =========================================================================

    def extreme_signals(self, snapshot: IndicatorSnapshot) -> List[FuzzySignal]:
        """Build the five extreme-condition signals."""
        cfg = self._config.extreme
        atr = snapshot.atr
        price = snapshot.price
        vwap = snapshot.vwap
        avg_volume = snapshot.average_volume

        return [
            FuzzySignal(
                "atr_high_volatility",
                membership(atr, *cfg.high_volatility_band, MembershipShape.TRAPEZOID),
            ),
            FuzzySignal(
                "atr_extreme_volatility",
                membership(atr, *cfg.extreme_volatility_band, MembershipShape.TRAPEZOID),
            ),
            FuzzySignal(
                "volume_spike",
                membership(
                    snapshot.last_volume,
                    avg_volume * cfg.volume_spike_band[0],
                    avg_volume * cfg.volume_spike_band[1],
                    MembershipShape.TRIANGLE,
                ),
            ),
            FuzzySignal(
                "price_below_vwap",
                membership(price, vwap * cfg.below_vwap_band[0], vwap * cfg.below_vwap_band[1]),
            ),
            FuzzySignal(
                "price_above_vwap",
                membership(price, vwap * cfg.above_vwap_band[0], vwap * cfg.above_vwap_band[1]),
            ),
        ]

    def extreme_rule(self, snapshot: IndicatorSnapshot) -> FuzzyRule:
        cfg = self._config.extreme
        return FuzzyRule(
            signals=self.extreme_signals(snapshot),
            weights=list(cfg.weights),
            threshold=cfg.threshold,
        )

    # =========================================================================
    # Gate 2: Direction
    # =========================================================================

    def dynamic_threshold(self, atr: Decimal) -> Decimal:
        """
        Confidence required for a directional verdict.

        Args:
            atr: Current ATR

        Returns:
            high_volatility above high_atr, low_volatility below low_atr,
            base otherwise
        """
        cfg = self._config.threshold
        if atr > cfg.high_atr:
            return cfg.high_volatility
        if atr < cfg.low_atr:
            return cfg.low_volatility
        return cfg.base

    def buy_signals(self, snapshot: IndicatorSnapshot) -> List[FuzzySignal]:
        cfg = self._config.signals
        lower = snapshot.lower_band
        vwap = snapshot.vwap
        return [
            FuzzySignal("rsi_oversold", membership(snapshot.rsi, *cfg.oversold_rsi_band)),
            FuzzySignal.from_bool("macd_above_signal", snapshot.macd_line > snapshot.signal_line),
            FuzzySignal(
                "near_lower_band",
                membership(
                    snapshot.price,
                    lower,
                    lower * (ONE + cfg.band_proximity),
                    MembershipShape.TRAPEZOID,
                ),
            ),
            FuzzySignal(
                "below_vwap",
                membership(snapshot.price, vwap * (ONE - cfg.vwap_proximity), vwap),
            ),
            FuzzySignal.from_bool("ema_uptrend", snapshot.short_ema > snapshot.long_ema),
        ]

    def sell_signals(self, snapshot: IndicatorSnapshot) -> List[FuzzySignal]:
        cfg = self._config.signals
        upper = snapshot.upper_band
        vwap = snapshot.vwap
        return [
            FuzzySignal("rsi_overbought", membership(snapshot.rsi, *cfg.overbought_rsi_band)),
            FuzzySignal.from_bool("macd_below_signal", snapshot.macd_line < snapshot.signal_line),
            FuzzySignal(
                "near_upper_band",
                membership(
                    snapshot.price,
                    upper * (ONE - cfg.band_proximity),
                    upper,
                    MembershipShape.TRAPEZOID,
                ),
            ),
            FuzzySignal(
                "above_vwap",
                membership(snapshot.price, vwap, vwap * (ONE + cfg.vwap_proximity)),
            ),
            FuzzySignal.from_bool("ema_downtrend", snapshot.short_ema < snapshot.long_ema),
        ]

    def decide(self, buy_score: Decimal, sell_score: Decimal, threshold: Decimal) -> MarketVerdict:
        """Directional rule; ties and sub-threshold scores are NEUTRAL."""
        if buy_score > sell_score and buy_score >= threshold:
            return MarketVerdict.LONG
        if sell_score > buy_score and sell_score >= threshold:
            return MarketVerdict.SHORT
        return MarketVerdict.NEUTRAL

    # =========================================================================
    # Classification
    # =========================================================================

    def classify(self, klines: Sequence[KlineProtocol]) -> Classification:
        """
        Classify the market from a kline window.

        Args:
            klines: Klines ordered oldest to newest

        Returns:
            Classification with verdict and scores

        Raises:
            InsufficientDataError: If the window is too short
        """
        snapshot = self._calculator.calculate(klines)
        return self.classify_snapshot(snapshot)

    def classify_snapshot(self, snapshot: IndicatorSnapshot) -> Classification:
        threshold = self.dynamic_threshold(snapshot.atr)

        # No volume history means no basis for an extreme call
        if snapshot.average_volume > 0:
            extreme = self.extreme_rule(snapshot)
            extreme_score = extreme.score()
            logger.debug(f"Extreme check: {extreme.describe()}")
            if extreme_score >= extreme.threshold:
                logger.warning(
                    f"Extreme market condition: {extreme_score * 100:.2f}% "
                    f"(ATR={snapshot.atr:.6f}, VWAP={snapshot.vwap:.6f}, price={snapshot.price})"
                )
                return Classification(
                    verdict=MarketVerdict.EXTREME,
                    buy_score=ZERO,
                    sell_score=ZERO,
                    threshold=threshold,
                    extreme_score=extreme_score,
                    snapshot=snapshot,
                )
        else:
            extreme_score = ZERO

        signals_cfg = self._config.signals
        buy = FuzzyRule(self.buy_signals(snapshot), signals_cfg.buy_weights, threshold)
        sell = FuzzyRule(self.sell_signals(snapshot), signals_cfg.sell_weights, threshold)
        buy_score = buy.score()
        sell_score = sell.score()

        logger.debug(f"BUY {buy.describe()}")
        logger.debug(f"SELL {sell.describe()}")

        verdict = self.decide(buy_score, sell_score, threshold)
        result = Classification(
            verdict=verdict,
            buy_score=buy_score,
            sell_score=sell_score,
            threshold=threshold,
            extreme_score=extreme_score,
            snapshot=snapshot,
        )
        logger.info(f"Market verdict: {result.describe()}")
        return result
