# Config module - Application configuration system
from .exceptions import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigParseError,
    ConfigValidationError,
)
from .loader import ConfigLoader, load_config
from .models import (
    AppConfig,
    BaseConfig,
    BotConfig,
    ExchangeConfig,
    ExtremeConfig,
    GridConfig,
    IndicatorConfig,
    SignalConfig,
    StrategyConfig,
    ThresholdConfig,
)

__all__ = [
    # Exceptions
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigParseError",
    "ConfigValidationError",
    # Loader
    "ConfigLoader",
    "load_config",
    # Models
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
