"""
Binance USDT-M Futures gateway.

Async REST adapter implementing ExchangeGateway on top of aiohttp, with
request signing, retry with exponential backoff, error-code mapping and
routing of conditional orders to the algo order API.
"""

import asyncio
import time
from decimal import Decimal
from typing import Optional

import aiohttp

from fuzzygrid.core import get_logger
from fuzzygrid.core.exceptions import (
    AuthenticationError,
    ConnectionError,
    GatewayError,
    InsufficientBalanceError,
    OrderError,
    RateLimitError,
)
from fuzzygrid.core.models import (
    Kline,
    KlineInterval,
    Order,
    OrderType,
    Position,
    SymbolInfo,
)
from fuzzygrid.exchange.base import ExchangeGateway, OrderIntent, OrderResult

from .auth import BinanceAuth
from .constants import (
    AUTH_ERROR_CODES,
    BALANCE_ERROR_CODES,
    FUTURES_PRIVATE_ENDPOINTS,
    FUTURES_PUBLIC_ENDPOINTS,
    FUTURES_REST_URL,
    FUTURES_TESTNET_URL,
    ORDER_ERROR_CODES,
    ORDER_ERROR_RANGES,
    RATE_LIMIT_ERROR_CODES,
    TIMESTAMP_ERROR_CODES,
)

logger = get_logger(__name__)


class BinanceFuturesGateway(ExchangeGateway):
    """
    Binance USDT-M Futures gateway.

    Conditional orders (TAKE_PROFIT_MARKET, STOP_MARKET, TRAILING_STOP_MARKET)
    go through the algo order endpoint and are read back from the open algo
    orders endpoint, so get_open_orders returns both kinds.

    Example:
        >>> async with BinanceFuturesGateway(api_key="...", api_secret="...") as gw:
        ...     price = await gw.get_ticker("BTCUSDT")
        ...     klines = await gw.get_candles("BTCUSDT", KlineInterval.m15, 100)
    """

    def __init__(
        self,
        api_key: str = "",
        api_secret: str = "",
        testnet: bool = False,
        timeout: int = 30,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        recv_window: int = 5000,
    ):
        """
        Initialize BinanceFuturesGateway.

        Args:
            api_key: Binance API key (optional for public endpoints)
            api_secret: Binance API secret (optional for public endpoints)
            testnet: Use testnet URL if True
            timeout: Request timeout in seconds
            max_retries: Maximum number of retries for transient errors
            retry_delay: Initial delay between retries (exponential backoff)
            recv_window: Receive window for signed requests in milliseconds
        """
        self._base_url = FUTURES_TESTNET_URL if testnet else FUTURES_REST_URL
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None
        self._auth: Optional[BinanceAuth] = None

        if api_key and api_secret:
            self._auth = BinanceAuth(api_key, api_secret)

        self._testnet = testnet
        self._recv_window = recv_window

        # Retry configuration
        self._max_retries = max_retries
        self._retry_delay = retry_delay

        self._symbol_filters: dict[str, SymbolInfo] = {}

    @classmethod
    def from_config(cls, config) -> "BinanceFuturesGateway":
        """
        Build a gateway from an ExchangeConfig.

        Args:
            config: ExchangeConfig instance

        Returns:
            BinanceFuturesGateway
        """
        return cls(
            api_key=config.api_key,
            api_secret=config.api_secret,
            testnet=config.is_testnet,
            timeout=config.timeout,
            max_retries=config.max_retries,
            recv_window=config.recv_window,
        )

    # =========================================================================
    # Lifecycle Management
    # =========================================================================

    async def connect(self) -> None:
        """Create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            logger.debug(f"Connected to {self._base_url}")

    async def close(self) -> None:
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
            logger.debug("Session closed")

    async def reconnect(self) -> None:
        """Re-create the HTTP session and re-sync the clock."""
        await super().reconnect()
        await self.sync_time()

    async def sync_time(self) -> None:
        """Sync local time with Binance Futures server time."""
        if self._auth is None:
            return

        start = time.time()
        data = await self._request("GET", FUTURES_PUBLIC_ENDPOINTS["SERVER_TIME"]["path"])
        latency_ms = int((time.time() - start) * 1000)

        server_time_ms = data.get("serverTime", 0)
        if server_time_ms:
            self._auth.set_time_offset(server_time_ms, latency_ms)
            logger.info(
                f"Futures time synced, offset: {self._auth.time_offset}ms "
                f"(latency: {latency_ms}ms)"
            )

    # =========================================================================
    # Request Handling
    # =========================================================================

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: dict | None = None,
        signed: bool = False,
    ) -> dict | list:
        """
        Send HTTP request to Binance Futures API with retry logic.

        Args:
            method: HTTP method (GET, POST, DELETE)
            endpoint: API endpoint path
            params: Request parameters
            signed: Whether to sign the request

        Returns:
            JSON response as dict or list

        Raises:
            ConnectionError: Connection failed after retries
            AuthenticationError: Authentication failed
            RateLimitError: Rate limit exceeded after retries
            InsufficientBalanceError: Insufficient margin
            OrderError: Order rejected
            GatewayError: Other exchange errors
        """
        if self._session is None or self._session.closed:
            await self.connect()

        url = f"{self._base_url}{endpoint}"
        original_params = dict(params) if params else {}

        for attempt in range(self._max_retries + 1):
            headers = {}
            params = dict(original_params)

            # Re-sign on each attempt since the timestamp changes
            if signed:
                if self._auth is None:
                    raise AuthenticationError("API key and secret required for signed requests")
                params = self._auth.sign_params(params, recv_window=self._recv_window)
                headers = self._auth.get_headers()

            logger.debug(f"Request: {method} {endpoint} (attempt {attempt + 1}/{self._max_retries + 1})")

            try:
                async with self._session.request(method, url, params=params, headers=headers) as resp:
                    return await self._handle_response(resp)

            except (RateLimitError, ConnectionError) as e:
                if attempt < self._max_retries:
                    delay = self._retry_delay * (2 ** attempt)
                    if isinstance(e, RateLimitError):
                        delay = max(delay, 1.0)
                    logger.warning(
                        f"Retryable error on {endpoint}: {e}. "
                        f"Retrying in {delay:.1f}s (attempt {attempt + 1}/{self._max_retries})"
                    )
                    await asyncio.sleep(delay)
                    continue
                raise

            except GatewayError as e:
                if e.code in {str(c) for c in TIMESTAMP_ERROR_CODES} and attempt < self._max_retries:
                    logger.warning(
                        f"Timestamp error on {endpoint}: {e}. "
                        f"Re-syncing time and retrying (attempt {attempt + 1}/{self._max_retries})"
                    )
                    await self.sync_time()
                    continue
                raise

            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                if attempt < self._max_retries:
                    delay = self._retry_delay * (2 ** attempt)
                    logger.warning(
                        f"Network error on {endpoint}: {e}. "
                        f"Retrying in {delay:.1f}s (attempt {attempt + 1}/{self._max_retries})"
                    )
                    await asyncio.sleep(delay)
                    continue
                logger.error(f"Connection error after {self._max_retries + 1} attempts: {e}")
                raise ConnectionError(f"Failed to connect to Binance Futures: {e}") from e

        raise GatewayError(f"Request failed after {self._max_retries + 1} attempts")

    async def _handle_response(self, response: aiohttp.ClientResponse) -> dict | list:
        """
        Handle API response and raise appropriate exceptions.

        Args:
            response: aiohttp response object

        Returns:
            Parsed JSON response
        """
        status = response.status
        logger.debug(f"Response status: {status}")

        if status == 429:
            retry_after = int(response.headers.get("Retry-After", "1"))
            raise RateLimitError(
                f"Rate limited (HTTP 429). Retry after: {retry_after}s",
                retry_after=retry_after,
                code="429",
            )

        if status == 418:
            logger.critical("IP banned by Binance (HTTP 418)")
            retry_after = int(response.headers.get("Retry-After", "300"))
            raise RateLimitError(
                "IP banned by Binance (HTTP 418). Must wait before retrying.",
                retry_after=retry_after,
                code="418",
            )

        try:
            data = await response.json(content_type=None)
        except ValueError as e:
            text = await response.text()
            raise GatewayError(
                f"Unexpected non-JSON response (HTTP {status}): {text[:200] if text else '(empty)'}"
            ) from e

        if isinstance(data, dict) and "code" in data and "msg" in data:
            code = data["code"]
            if code not in (0, 200, "0", "200"):
                self._raise_exception(int(code), data["msg"])

        if status >= 400:
            raise GatewayError(f"HTTP {status}: {data}", code=str(status))

        return data

    def _raise_exception(self, code: int, msg: str) -> None:
        """
        Raise appropriate exception based on Binance error code.

        Args:
            code: Binance error code
            msg: Error message
        """
        error_info = f"[{code}] {msg}"

        if code in AUTH_ERROR_CODES:
            raise AuthenticationError(error_info, code=str(code))
        if code in RATE_LIMIT_ERROR_CODES:
            raise RateLimitError(error_info, code=str(code))
        if code in BALANCE_ERROR_CODES:
            raise InsufficientBalanceError(error_info, code=str(code))
        if code in ORDER_ERROR_CODES or any(low <= code <= high for low, high in ORDER_ERROR_RANGES):
            raise OrderError(error_info, code=str(code))
        raise GatewayError(error_info, code=str(code))

    # =========================================================================
    # Public API - Market Data
    # =========================================================================

    async def ping(self) -> bool:
        """Test connectivity to the REST API."""
        await self._request("GET", FUTURES_PUBLIC_ENDPOINTS["PING"]["path"])
        return True

    async def get_ticker(self, symbol: str) -> Decimal:
        """Get the latest traded price for a symbol."""
        data = await self._request(
            "GET",
            FUTURES_PUBLIC_ENDPOINTS["TICKER_PRICE"]["path"],
            {"symbol": symbol},
        )
        return Decimal(str(data["price"]))

    async def get_candles(
        self,
        symbol: str,
        interval: KlineInterval | str,
        limit: int = 100,
    ) -> list[Kline]:
        """
        Get klines ordered oldest to newest.

        Args:
            symbol: Trading pair
            interval: Kline interval
            limit: Number of klines (max 1500)

        Returns:
            List of Kline objects
        """
        interval_str = interval.value if isinstance(interval, KlineInterval) else interval
        data = await self._request(
            "GET",
            FUTURES_PUBLIC_ENDPOINTS["KLINES"]["path"],
            {"symbol": symbol, "interval": interval_str, "limit": min(limit, 1500)},
        )
        return [Kline.from_binance(row, symbol, interval_str) for row in data]

    async def get_symbol_filters(self, symbol: str) -> SymbolInfo:
        """
        Get precision and tick size, cached per symbol.

        Args:
            symbol: Trading pair

        Returns:
            SymbolInfo

        Raises:
            GatewayError: If the symbol is not listed
        """
        cached = self._symbol_filters.get(symbol)
        if cached is not None:
            return cached

        data = await self._request(
            "GET",
            FUTURES_PUBLIC_ENDPOINTS["EXCHANGE_INFO"]["path"],
        )
        for item in data.get("symbols", []):
            if item.get("symbol") == symbol:
                info = SymbolInfo.from_binance(item)
                self._symbol_filters[symbol] = info
                logger.info(
                    f"Symbol filters for {symbol}: tick={info.tick_size}, "
                    f"price_precision={info.price_precision}, "
                    f"quantity_precision={info.quantity_precision}"
                )
                return info

        raise GatewayError(f"Symbol {symbol} not found in exchange info", code="UNKNOWN_SYMBOL")

    # =========================================================================
    # Private API - Account
    # =========================================================================

    async def get_positions(self, symbol: str) -> list[Position]:
        """
        Get non-zero positions for a symbol.

        Args:
            symbol: Trading pair

        Returns:
            List of Position objects
        """
        data = await self._request(
            "GET",
            FUTURES_PRIVATE_ENDPOINTS["POSITION"]["path"],
            {"symbol": symbol},
            signed=True,
        )
        return [
            Position.from_binance(item)
            for item in data
            if Decimal(str(item.get("positionAmt", "0"))) != 0
        ]

    async def get_open_orders(self, symbol: str) -> list[Order]:
        """
        Get open standard and conditional orders for a symbol.

        Args:
            symbol: Trading pair

        Returns:
            Standard orders followed by conditional (algo) orders
        """
        standard = await self._request(
            "GET",
            FUTURES_PRIVATE_ENDPOINTS["OPEN_ORDERS"]["path"],
            {"symbol": symbol},
            signed=True,
        )
        algo = await self._request(
            "GET",
            FUTURES_PRIVATE_ENDPOINTS["OPEN_ALGO_ORDERS"]["path"],
            {"symbol": symbol},
            signed=True,
        )
        # The algo endpoint returns either a bare list or {"orders": [...]}
        if isinstance(algo, dict):
            algo = algo.get("orders", [])

        orders = [Order.from_binance(item) for item in standard]
        orders.extend(Order.from_binance_algo(item) for item in algo)
        return orders

    async def set_leverage(self, symbol: str, leverage: int) -> int:
        """
        Set leverage for a symbol.

        Args:
            symbol: Trading pair
            leverage: Leverage value (1-125 depending on symbol)

        Returns:
            Leverage accepted by the exchange
        """
        data = await self._request(
            "POST",
            FUTURES_PRIVATE_ENDPOINTS["LEVERAGE"]["path"],
            {"symbol": symbol, "leverage": leverage},
            signed=True,
        )
        accepted = int(data.get("leverage", leverage))
        logger.debug(f"Leverage for {symbol} set to {accepted}x")
        return accepted

    # =========================================================================
    # Private API - Orders
    # =========================================================================

    async def place_order(self, intent: OrderIntent) -> OrderResult:
        """
        Submit an order, mapping exchange rejections to a failed OrderResult.

        Args:
            intent: Order to submit

        Returns:
            OrderResult

        Raises:
            GatewayError: On transport, authentication or rate-limit failures
        """
        try:
            if intent.is_conditional:
                order = await self._create_algo_order(intent)
            else:
                order = await self._create_order(intent)
        except (OrderError, InsufficientBalanceError) as e:
            logger.warning(f"Order rejected: {intent.describe()}: {e}")
            return OrderResult.failure(intent, e.message, e.code)

        logger.info(f"Order placed: {intent.describe()} (id={order.order_id})")
        return OrderResult.from_order(order)

    async def _create_order(self, intent: OrderIntent) -> Order:
        order_type = OrderType(intent.order_type)
        params = {
            "symbol": intent.symbol,
            "side": intent.side.value if hasattr(intent.side, "value") else intent.side,
            "type": order_type.value,
            "quantity": str(intent.quantity),
        }

        if order_type == OrderType.LIMIT:
            if intent.price is None:
                raise OrderError("price is required for LIMIT orders", symbol=intent.symbol)
            params["price"] = str(intent.price)
            params["timeInForce"] = intent.time_in_force

        if intent.reduce_only:
            params["reduceOnly"] = "true"

        if intent.client_order_id:
            params["newClientOrderId"] = intent.client_order_id

        params["newOrderRespType"] = "RESULT"

        data = await self._request(
            "POST",
            FUTURES_PRIVATE_ENDPOINTS["ORDER"]["path"],
            params,
            signed=True,
        )
        return Order.from_binance(data)

    async def _create_algo_order(self, intent: OrderIntent) -> Order:
        order_type = OrderType(intent.order_type)
        side = intent.side.value if hasattr(intent.side, "value") else intent.side
        params = {
            "symbol": intent.symbol,
            "side": side,
            "type": order_type.value,
            "algoType": "CONDITIONAL",
            "quantity": str(intent.quantity),
            "workingType": "MARK_PRICE",
        }

        if order_type == OrderType.TRAILING_STOP_MARKET:
            if intent.callback_rate is None:
                raise OrderError("callback_rate is required for trailing stops", symbol=intent.symbol)
            params["callbackRate"] = str(intent.callback_rate)
            if intent.activation_price is not None:
                params["activatePrice"] = str(intent.activation_price)
        else:
            if intent.stop_price is None:
                raise OrderError("stop_price is required for conditional orders", symbol=intent.symbol)
            params["triggerPrice"] = str(intent.stop_price)

        if intent.reduce_only:
            params["reduceOnly"] = "true"

        if intent.client_order_id:
            params["clientAlgoId"] = intent.client_order_id

        data = await self._request(
            "POST",
            FUTURES_PRIVATE_ENDPOINTS["ALGO_ORDER"]["path"],
            params,
            signed=True,
        )

        # The algo response may omit echo fields; fill them from the intent
        defaults = {
            "symbol": intent.symbol,
            "side": side,
            "orderType": order_type.value,
            "quantity": str(intent.quantity),
            "triggerPrice": str(intent.stop_price) if intent.stop_price is not None else None,
            "activatePrice": str(intent.activation_price) if intent.activation_price is not None else None,
            "reduceOnly": intent.reduce_only,
        }
        merged = {**defaults, **{k: v for k, v in data.items() if v is not None}}
        return Order.from_binance_algo(merged)

    async def cancel_order(
        self,
        symbol: str,
        order_id: str,
        is_algo: bool = False,
    ) -> bool:
        """
        Cancel an open order.

        Args:
            symbol: Trading pair
            order_id: Order ID, or algo ID for conditional orders
            is_algo: Cancel through the algo order endpoint

        Returns:
            True if cancelled, False if the exchange rejected the cancel
        """
        if is_algo:
            endpoint = FUTURES_PRIVATE_ENDPOINTS["ALGO_ORDER_DELETE"]["path"]
            params = {"symbol": symbol, "algoId": order_id}
        else:
            endpoint = FUTURES_PRIVATE_ENDPOINTS["ORDER_DELETE"]["path"]
            params = {"symbol": symbol, "orderId": order_id}

        try:
            await self._request("DELETE", endpoint, params, signed=True)
        except OrderError as e:
            logger.warning(f"Cancel rejected for {symbol} order {order_id}: {e}")
            return False

        logger.info(f"Cancelled {'algo ' if is_algo else ''}order {order_id} on {symbol}")
        return True
