"""
Application Configuration Model.

Top-level configuration combining the exchange, strategy and bot-loop settings.
"""

from pathlib import Path
from typing import Any

from pydantic import Field, field_validator

from .base import BaseConfig
from .exchange import ExchangeConfig
from .strategy import StrategyConfig


class BotConfig(BaseConfig):
    """Reconciliation loop settings."""

    poll_interval: float = Field(
        default=10.0,
        gt=0,
        description="Seconds between reconciliation cycles",
    )
    max_consecutive_failures: int = Field(
        default=5,
        ge=1,
        description="Failed cycles in a row before reconnecting the gateway",
    )
    failure_backoff: float = Field(
        default=5.0,
        ge=0,
        description="Seconds to wait after a reconnect",
    )
    flatten_on_start: bool = Field(
        default=True,
        description="Cancel leftover orders and close positions before the first cycle",
    )
    pnl_log_path: Path = Field(
        default=Path("profit_loss_logs.txt"),
        description="Append-only profit/loss text log",
    )


class AppConfig(BaseConfig):
    """
    Main application configuration.

    Example:
        >>> config = AppConfig(
        ...     exchange=ExchangeConfig(api_key="${API_KEY}", api_secret="${API_SECRET}"),
        ...     strategy=StrategyConfig(symbol="BTCUSDT"),
        ... )
        >>> config.validate_for_trading()
        []
    """

    app_name: str = Field(
        default="Fuzzy Grid Bot",
        description="Application name",
    )
    environment: str = Field(
        default="development",
        description="Environment (development, production, test)",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )

    exchange: ExchangeConfig = Field(default_factory=ExchangeConfig)
    strategy: StrategyConfig = Field(default_factory=StrategyConfig)
    bot: BotConfig = Field(default_factory=BotConfig)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate and normalize environment."""
        v = v.lower().strip()
        valid_envs = {"development", "production", "dev", "prod", "test"}
        if v not in valid_envs:
            v = "development"
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        v = v.upper().strip()
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v not in valid_levels:
            v = "INFO"
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment in ("production", "prod")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AppConfig":
        """
        Create configuration from dictionary.

        Args:
            data: Configuration dictionary

        Returns:
            AppConfig instance
        """
        return cls(**data)

    def validate_for_trading(self) -> list[str]:
        """
        Validate configuration for live trading.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if not self.exchange.api_key:
            errors.append("API key not configured (exchange.api_key / API_KEY)")
        if not self.exchange.api_secret:
            errors.append("API secret not configured (exchange.api_secret / API_SECRET)")

        if self.strategy.grid.leverage > 20 and self.is_production:
            errors.append("High leverage (>20x) not allowed in production")

        return errors
