# Exchange module - gateway interface and adapters
from .base import ExchangeGateway, OrderIntent, OrderResult
from .binance import BinanceFuturesGateway

__all__ = [
    "ExchangeGateway",
    "OrderIntent",
    "OrderResult",
    "BinanceFuturesGateway",
]
