"""
fuzzygrid - fuzzy-logic grid trading bot for Binance USDT-M Futures.
"""

__version__ = "0.1.0"
