"""
Exchange Configuration Model.

Credentials and connection settings for the Binance USDT-M Futures gateway.
"""

from pydantic import Field, field_validator

from .base import BaseConfig


class ExchangeConfig(BaseConfig):
    """
    Exchange connection configuration.

    Example:
        >>> config = ExchangeConfig(
        ...     api_key="${API_KEY}",
        ...     api_secret="${API_SECRET}",
        ...     testnet=True,
        ... )
    """

    name: str = Field(
        default="binance",
        description="Exchange name",
    )
    testnet: bool = Field(
        default=False,
        description="Use testnet endpoints",
    )
    api_key: str = Field(
        default="",
        description="API key for authentication",
    )
    api_secret: str = Field(
        default="",
        description="API secret for authentication",
    )
    recv_window: int = Field(
        default=5000,
        ge=1000,
        le=60000,
        description="Receive window in milliseconds",
    )
    timeout: int = Field(
        default=30,
        ge=1,
        description="HTTP request timeout in seconds",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retries for rate-limit and network errors",
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Normalize exchange name."""
        return v.lower().strip()

    @property
    def is_testnet(self) -> bool:
        """Check if using testnet."""
        return self.testnet or "testnet" in self.name
