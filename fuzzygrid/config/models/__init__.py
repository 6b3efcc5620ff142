# Configuration models
from .app import AppConfig, BotConfig
from .base import BaseConfig
from .exchange import ExchangeConfig
from .strategy import (
    ExtremeConfig,
    GridConfig,
    IndicatorConfig,
    SignalConfig,
    StrategyConfig,
    ThresholdConfig,
)

__all__ = [
    "BaseConfig",
    "ExchangeConfig",
    "IndicatorConfig",
    "ExtremeConfig",
    "ThresholdConfig",
    "SignalConfig",
    "GridConfig",
    "StrategyConfig",
    "BotConfig",
    "AppConfig",
]
