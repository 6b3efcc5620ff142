"""
Pytest configuration and fixtures for fuzzy grid bot tests.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

import pytest

from fuzzygrid.bots.fuzzy_grid import (
    Classification,
    IndicatorSnapshot,
    MarketVerdict,
)
from fuzzygrid.config import AppConfig, BotConfig, GridConfig, StrategyConfig
from fuzzygrid.core.models import Kline, SymbolInfo
from tests.mocks import MockGateway


SYMBOL = "DOGEUSDT"


# =============================================================================
# Kline Fixtures
# =============================================================================


def build_klines(
    closes: list,
    volumes: Optional[list] = None,
    spread: Decimal | str = "0.0005",
    symbol: str = SYMBOL,
) -> list[Kline]:
    """
    Build 15m klines around a close series.

    Each bar opens at the previous close, with high/low `spread` away from
    the larger/smaller of open and close.
    """
    spread = Decimal(str(spread))
    start_time = datetime(2024, 1, 1, tzinfo=timezone.utc)
    klines = []
    prev_close = Decimal(str(closes[0]))

    for i, raw_close in enumerate(closes):
        close = Decimal(str(raw_close))
        open_price = prev_close
        volume = Decimal(str(volumes[i])) if volumes else Decimal("1000")
        open_time = start_time + timedelta(minutes=15 * i)

        klines.append(Kline(
            symbol=symbol,
            interval="15m",
            open_time=open_time,
            open=open_price,
            high=max(open_price, close) + spread,
            low=min(open_price, close) - spread,
            close=close,
            volume=volume,
            close_time=open_time + timedelta(minutes=15) - timedelta(milliseconds=1),
        ))
        prev_close = close

    return klines


@pytest.fixture
def kline_factory():
    """Factory fixture around build_klines."""
    return build_klines


@pytest.fixture
def rising_klines() -> list[Kline]:
    """
    60 klines with strictly increasing closes.

    Properties:
    - Starting price: 0.1
    - Step: +0.0005 per bar
    - Constant volume
    """
    closes = [Decimal("0.1") + Decimal("0.0005") * i for i in range(60)]
    return build_klines(closes)


@pytest.fixture
def falling_klines() -> list[Kline]:
    """60 klines with strictly decreasing closes from 0.13."""
    closes = [Decimal("0.13") - Decimal("0.0005") * i for i in range(60)]
    return build_klines(closes)


@pytest.fixture
def flat_klines() -> list[Kline]:
    """60 klines with an unchanged close of 0.1."""
    return build_klines([Decimal("0.1")] * 60)


# =============================================================================
# Classification Fixtures
# =============================================================================


def build_snapshot(**overrides) -> IndicatorSnapshot:
    """Neutral-looking snapshot at price 0.1; any field can be overridden."""
    values = dict(
        short_ema=Decimal("0.1"),
        long_ema=Decimal("0.1"),
        rsi=Decimal("50"),
        atr=Decimal("0.002"),
        macd_line=Decimal("0"),
        signal_line=Decimal("0"),
        upper_band=Decimal("0.11"),
        middle_band=Decimal("0.1"),
        lower_band=Decimal("0.09"),
        vwap=Decimal("0.1"),
        price=Decimal("0.1"),
        last_volume=Decimal("1000"),
        average_volume=Decimal("1000"),
    )
    values.update(overrides)
    return IndicatorSnapshot(**values)


@pytest.fixture
def snapshot_factory():
    return build_snapshot


@pytest.fixture
def classification_factory():
    """Factory for Classification results with a given verdict."""

    def _make(verdict: MarketVerdict, atr: Decimal | str = "0.002") -> Classification:
        return Classification(
            verdict=verdict,
            buy_score=Decimal("0.8") if verdict == MarketVerdict.LONG else Decimal("0"),
            sell_score=Decimal("0.8") if verdict == MarketVerdict.SHORT else Decimal("0"),
            threshold=Decimal("0.65"),
            extreme_score=Decimal("0"),
            snapshot=build_snapshot(atr=Decimal(str(atr))),
        )

    return _make


# =============================================================================
# Config Fixtures
# =============================================================================


@pytest.fixture
def grid_config() -> GridConfig:
    """Three-leg grid without pauses."""
    return GridConfig(
        grid_count=3,
        base_notional=Decimal("10"),
        leverage=10,
        order_pause=0,
        bracket_pause=0,
    )


@pytest.fixture
def strategy_config(grid_config) -> StrategyConfig:
    return StrategyConfig(symbol=SYMBOL, interval="15m", candle_limit=100, grid=grid_config)


@pytest.fixture
def app_config(strategy_config, tmp_path) -> AppConfig:
    """App config with test credentials and the P/L log under tmp_path."""
    return AppConfig(
        environment="test",
        exchange={"api_key": "test_key", "api_secret": "test_secret", "testnet": True},
        strategy=strategy_config,
        bot=BotConfig(
            poll_interval=0.01,
            max_consecutive_failures=3,
            failure_backoff=0,
            flatten_on_start=False,
            pnl_log_path=tmp_path / "profit_loss_logs.txt",
        ),
    )


# =============================================================================
# Gateway Fixtures
# =============================================================================


@pytest.fixture
def symbol_filters() -> SymbolInfo:
    """DOGEUSDT-like filters: 5 price decimals, whole-coin quantities."""
    return SymbolInfo(
        symbol=SYMBOL,
        price_precision=5,
        quantity_precision=0,
        tick_size=Decimal("0.00001"),
        step_size=Decimal("1"),
    )


@pytest.fixture
def mock_gateway(symbol_filters, rising_klines) -> MockGateway:
    """Mock gateway priced at 0.1 with rising klines loaded."""
    gateway = MockGateway(SYMBOL)
    gateway.set_price("0.1")
    gateway.set_filters(symbol_filters)
    gateway.set_klines(rising_klines)
    return gateway
