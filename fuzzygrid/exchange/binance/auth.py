"""
Binance API authentication and signature handling.
"""

import hashlib
import hmac
from urllib.parse import urlencode

from fuzzygrid.core.utils import now_timestamp


class BinanceAuth:
    """
    Handles Binance API authentication and request signing.

    Uses HMAC-SHA256 algorithm to sign requests as required by Binance API.

    Example:
        >>> auth = BinanceAuth("api_key", "api_secret")
        >>> params = auth.sign_params({"symbol": "BTCUSDT"}, recv_window=5000)
        >>> headers = auth.get_headers()
    """

    def __init__(self, api_key: str, api_secret: str):
        """
        Initialize BinanceAuth.

        Args:
            api_key: Binance API key
            api_secret: Binance API secret
        """
        self.api_key = api_key
        self.api_secret = api_secret
        self.time_offset = 0

    def set_time_offset(self, server_time_ms: int, latency_ms: int = 0) -> None:
        """
        Record the difference between server and local clock.

        Args:
            server_time_ms: Server time from /fapi/v1/time
            latency_ms: Round-trip latency of that request
        """
        self.time_offset = server_time_ms + latency_ms // 2 - now_timestamp(unit="ms")

    def sign_params(self, params: dict | None = None, recv_window: int | None = None) -> dict:
        """
        Sign parameters with HMAC-SHA256.

        Steps:
        1. Add timestamp (and recvWindow) to params
        2. URL-encode params in insertion order
        3. Calculate HMAC-SHA256 signature
        4. Add signature to params

        Args:
            params: Request parameters to sign
            recv_window: Optional receive window in milliseconds

        Returns:
            Parameters with timestamp and signature added
        """
        params = dict(params) if params else {}

        if recv_window:
            params["recvWindow"] = recv_window
        params["timestamp"] = now_timestamp(unit="ms") + self.time_offset

        params["signature"] = self.sign_query_string(urlencode(params))
        return params

    def get_headers(self) -> dict:
        """
        Get request headers with API key.

        Returns:
            Headers dict with X-MBX-APIKEY
        """
        return {"X-MBX-APIKEY": self.api_key}

    def sign_query_string(self, query_string: str) -> str:
        """
        Sign an existing query string.

        Args:
            query_string: URL encoded query string

        Returns:
            HMAC-SHA256 signature as hex string
        """
        return hmac.new(
            self.api_secret.encode("utf-8"),
            query_string.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()
