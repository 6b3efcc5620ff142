"""
Binance USDT-M Futures API constants and endpoint definitions.
"""

# =============================================================================
# Base URLs
# =============================================================================

FUTURES_REST_URL = "https://fapi.binance.com"
FUTURES_TESTNET_URL = "https://testnet.binancefuture.com"


# =============================================================================
# Public Endpoints (No signature required)
# =============================================================================

FUTURES_PUBLIC_ENDPOINTS = {
    "PING": {"path": "/fapi/v1/ping", "method": "GET"},
    "SERVER_TIME": {"path": "/fapi/v1/time", "method": "GET"},
    "EXCHANGE_INFO": {"path": "/fapi/v1/exchangeInfo", "method": "GET"},
    "KLINES": {"path": "/fapi/v1/klines", "method": "GET"},
    "TICKER_PRICE": {"path": "/fapi/v1/ticker/price", "method": "GET"},
}


# =============================================================================
# Private Endpoints (Signature required)
# =============================================================================

FUTURES_PRIVATE_ENDPOINTS = {
    "POSITION": {"path": "/fapi/v2/positionRisk", "method": "GET"},
    "LEVERAGE": {"path": "/fapi/v1/leverage", "method": "POST"},
    "ORDER": {"path": "/fapi/v1/order", "method": "POST"},
    "ORDER_DELETE": {"path": "/fapi/v1/order", "method": "DELETE"},
    "OPEN_ORDERS": {"path": "/fapi/v1/openOrders", "method": "GET"},
    # Conditional orders (TP/SL/trailing) live on the algo order API
    "ALGO_ORDER": {"path": "/fapi/v1/algoOrder", "method": "POST"},
    "ALGO_ORDER_DELETE": {"path": "/fapi/v1/algoOrder", "method": "DELETE"},
    "OPEN_ALGO_ORDERS": {"path": "/fapi/v1/openAlgoOrders", "method": "GET"},
}


# =============================================================================
# Binance Error Codes
# =============================================================================

BINANCE_ERROR_CODES = {
    -1000: "UNKNOWN",           # Unknown error
    -1002: "UNAUTHORIZED",      # Not authorized
    -1003: "TOO_MANY_REQUESTS", # Rate limit
    -1021: "INVALID_TIMESTAMP", # Timestamp outside of recvWindow
    -1022: "INVALID_SIGNATURE", # Signature verification failed
    -2010: "NEW_ORDER_REJECTED",
    -2011: "CANCEL_REJECTED",
    -2013: "NO_SUCH_ORDER",
    -2014: "BAD_API_KEY_FMT",
    -2015: "REJECTED_MBX_KEY",
    -2019: "MARGIN_NOT_SUFFICIENT",
    -2021: "ORDER_WOULD_IMMEDIATELY_TRIGGER",
    -2022: "REDUCE_ONLY_REJECT",
    -4164: "MIN_NOTIONAL",
}

AUTH_ERROR_CODES = frozenset({-1002, -2014, -2015})
RATE_LIMIT_ERROR_CODES = frozenset({-1003})
BALANCE_ERROR_CODES = frozenset({-2019})
TIMESTAMP_ERROR_CODES = frozenset({-1021, -1022})

# Any code in the order range is a rejection of one order, not a transport failure
ORDER_ERROR_CODES = frozenset({-2010, -2011, -2013, -2021, -2022})
ORDER_ERROR_RANGES = ((-1199, -1100), (-4999, -4000))
