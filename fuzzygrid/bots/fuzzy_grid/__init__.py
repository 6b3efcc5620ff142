"""
Fuzzy Grid Bot.

A futures grid bot driven by a fuzzy-logic market classifier.

Features:
- EMA, RSI, ATR, MACD, Bollinger Bands and VWAP indicators
- Weighted fuzzy membership aggregation with an ATR-dependent threshold
- Extreme market condition gate that flattens all exposure
- ATR-spaced LIMIT grid with reduce-only take-profit/stop-loss brackets
- Reconciliation loop that flattens unprotected or conflicting exposure
"""

from .models import (
    BandsResult,
    BotState,
    BracketPlan,
    Classification,
    CycleAction,
    CycleResult,
    ExposureSnapshot,
    IndicatorSnapshot,
    MACDResult,
    MarketVerdict,
    PlacementReport,
    SessionState,
)
from .fuzzy import FuzzyRule, FuzzySignal, MembershipShape, aggregate, membership
from .indicators import (
    IndicatorCalculator,
    atr,
    bollinger_bands,
    ema,
    ema_series,
    macd,
    rsi,
    vwap,
)
from .classifier import MarketClassifier
from .planner import GridPlanner
from .bot import FuzzyGridBot

__all__ = [
    # Models
    "MarketVerdict",
    "BotState",
    "CycleAction",
    "MACDResult",
    "BandsResult",
    "IndicatorSnapshot",
    "Classification",
    "ExposureSnapshot",
    "BracketPlan",
    "PlacementReport",
    "CycleResult",
    "SessionState",
    # Fuzzy
    "MembershipShape",
    "membership",
    "aggregate",
    "FuzzySignal",
    "FuzzyRule",
    # Indicators
    "ema_series",
    "ema",
    "rsi",
    "atr",
    "macd",
    "bollinger_bands",
    "vwap",
    "IndicatorCalculator",
    # Classifier
    "MarketClassifier",
    # Planner
    "GridPlanner",
    # Bot
    "FuzzyGridBot",
]
