# Binance USDT-M Futures adapter
from .auth import BinanceAuth
from .constants import (
    FUTURES_PRIVATE_ENDPOINTS,
    FUTURES_PUBLIC_ENDPOINTS,
    FUTURES_REST_URL,
    FUTURES_TESTNET_URL,
)
from .futures_api import BinanceFuturesGateway

__all__ = [
    "BinanceAuth",
    "BinanceFuturesGateway",
    "FUTURES_PRIVATE_ENDPOINTS",
    "FUTURES_PUBLIC_ENDPOINTS",
    "FUTURES_REST_URL",
    "FUTURES_TESTNET_URL",
]
