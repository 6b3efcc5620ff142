"""
Fuzzy Grid Bot.

Periodic reconciliation loop for one futures symbol. Every cycle re-reads
the exchange, classifies the market and either holds, places a protected
grid, or flattens everything.

Cycle:
    1. ticker
    2. set leverage
    3. candles -> classifier (EXTREME => flatten, end cycle)
    4. open orders + positions -> exposure state
    5. conflicting exposure or unprotected state => flatten
    6. FLAT with a directional verdict => place grid
    7. otherwise hold
    8. log P/L totals

Per-cycle errors never escape run_cycle. After max_consecutive_failures
gateway failures in a row the gateway is reconnected.
"""

import asyncio
from typing import Optional

from fuzzygrid.core import get_logger
from fuzzygrid.core.exceptions import GatewayError, InsufficientDataError
from fuzzygrid.core.models import OrderSide, OrderType
from fuzzygrid.exchange.base import ExchangeGateway, OrderIntent
from fuzzygrid.monitoring import ProfitLossLogger

from .classifier import MarketClassifier
from .models import (
    BotState,
    Classification,
    CycleAction,
    CycleResult,
    ExposureSnapshot,
    MarketVerdict,
    SessionState,
)
from .planner import GridPlanner

logger = get_logger(__name__)


class FuzzyGridBot:
    """
    Fuzzy-logic grid bot for a single symbol.

    Example:
        >>> async with BinanceFuturesGateway.from_config(config.exchange) as gateway:
        ...     bot = FuzzyGridBot(config, gateway)
        ...     await bot.run()
    """

    def __init__(
        self,
        config,
        gateway: ExchangeGateway,
        pnl_logger: Optional[ProfitLossLogger] = None,
    ):
        """
        Initialize FuzzyGridBot.

        Args:
            config: AppConfig
            gateway: Exchange gateway
            pnl_logger: Profit/loss file log (defaults to bot.pnl_log_path)
        """
        self._config = config
        self._strategy = config.strategy
        self._gateway = gateway
        self._pnl = pnl_logger or ProfitLossLogger(config.bot.pnl_log_path)

        self._classifier = MarketClassifier(self._strategy)
        self._planner = GridPlanner(self._strategy.symbol, self._strategy.grid, gateway)
        self._session = SessionState()

        self._running = False
        self._stop_event = asyncio.Event()

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def symbol(self) -> str:
        return self._strategy.symbol

    @property
    def session(self) -> SessionState:
        return self._session

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def classifier(self) -> MarketClassifier:
        return self._classifier

    @property
    def planner(self) -> GridPlanner:
        return self._planner

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Log settings and clear leftovers from a previous run."""
        grid = self._strategy.grid
        logger.info(f"Starting Fuzzy Grid Bot for {self.symbol}")
        logger.info(f"  Interval: {self._strategy.interval}")
        logger.info(f"  Grid Count: {grid.grid_count}")
        logger.info(f"  Base Notional: {grid.base_notional} USDT")
        logger.info(f"  Leverage: {grid.leverage}x")
        logger.info(f"  Poll Interval: {self._config.bot.poll_interval}s")

        if self._config.bot.flatten_on_start:
            try:
                await self.flatten("startup cleanup")
            except GatewayError as e:
                logger.error(f"Startup cleanup failed: {e}")

    async def run(self) -> None:
        """Run cycles until stop() is called."""
        self._running = True
        self._stop_event.clear()
        await self.start()

        while self._running:
            await self.run_cycle()
            if not self._running:
                break
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=self._config.bot.poll_interval,
                )
            except asyncio.TimeoutError:
                pass

        logger.info(
            f"Fuzzy Grid Bot stopped after {self._session.cycles} cycles "
            f"(net P/L {self._session.net_pnl:.2f} USDT)"
        )

    async def stop(self, flatten: bool = False) -> None:
        """
        Stop the loop after the current cycle.

        Args:
            flatten: Also cancel all orders and close all positions
        """
        logger.info(f"Stopping Fuzzy Grid Bot for {self.symbol}")
        self._running = False
        self._stop_event.set()

        if flatten:
            try:
                await self.flatten("bot stopped")
            except GatewayError as e:
                logger.error(f"Flatten on stop failed: {e}")

    # =========================================================================
    # Reconciliation
    # =========================================================================

    async def run_cycle(self) -> CycleResult:
        """
        Run one reconciliation cycle. Never raises.

        Returns:
            CycleResult describing the action taken
        """
        self._session.cycles += 1

        try:
            result = await self._reconcile()
        except InsufficientDataError as e:
            logger.warning(f"Skipping cycle: {e}")
            self._session.record_success()
            return CycleResult(action=CycleAction.SKIPPED, reason=str(e), error=e)
        except GatewayError as e:
            logger.error(f"Cycle failed on gateway error: {e}")
            await self._on_gateway_failure()
            return CycleResult(action=CycleAction.FAILED, reason=str(e), error=e)
        except Exception as e:
            logger.exception(f"Unexpected error in cycle: {e}")
            return CycleResult(action=CycleAction.FAILED, reason=str(e), error=e)

        self._session.record_success()
        self._log_totals()
        return result

    async def _reconcile(self) -> CycleResult:
        symbol = self.symbol

        price = await self._gateway.get_ticker(symbol)
        await self._gateway.set_leverage(symbol, self._strategy.grid.leverage)

        klines = await self._gateway.get_candles(
            symbol, self._strategy.interval, self._strategy.candle_limit
        )
        classification = self._classifier.classify(klines)
        verdict = classification.verdict
        self._session.last_verdict = verdict

        if verdict == MarketVerdict.EXTREME:
            await self.flatten("extreme market condition")
            return CycleResult(action=CycleAction.FLATTENED, verdict=verdict, reason="extreme")

        exposure = await self._read_exposure()
        state = exposure.state
        self._session.last_state = state
        logger.info(
            f"{symbol} state={state.value}, orders={len(exposure.open_orders)}, "
            f"position={exposure.position.quantity if exposure.position else 0}"
        )

        if self.has_conflict(verdict, exposure):
            await self.flatten(f"exposure conflicts with {verdict.value} verdict", exposure)
            return CycleResult(
                action=CycleAction.FLATTENED, verdict=verdict, state=state, reason="conflict"
            )

        if state == BotState.IN_POSITION_UNPROTECTED:
            await self.flatten("take-profit or stop-loss missing", exposure)
            return CycleResult(
                action=CycleAction.FLATTENED, verdict=verdict, state=state, reason="unprotected"
            )

        if state == BotState.FLAT and verdict.is_directional:
            placed = await self._open_grid(classification, price)
            return CycleResult(
                action=CycleAction.GRID_PLACED,
                verdict=verdict,
                state=state,
                orders_placed=placed,
            )

        logger.info(f"No new signal for {symbol} ({verdict.value}, {state.value}); holding")
        return CycleResult(action=CycleAction.HOLD, verdict=verdict, state=state)

    async def _read_exposure(self) -> ExposureSnapshot:
        open_orders = await self._gateway.get_open_orders(self.symbol)
        positions = await self._gateway.get_positions(self.symbol)
        return ExposureSnapshot(open_orders=open_orders, positions=positions)

    @staticmethod
    def has_conflict(verdict: MarketVerdict, exposure: ExposureSnapshot) -> bool:
        """
        Check whether a directional verdict contradicts current exposure.

        Args:
            verdict: Classifier verdict
            exposure: Open orders and positions

        Returns:
            True if a LIMIT BUY rests under a SHORT verdict, a LIMIT SELL under a
            LONG verdict, or the position points against the verdict
        """
        if not verdict.is_directional:
            return False

        for order in exposure.limit_orders:
            if verdict == MarketVerdict.SHORT and order.side == OrderSide.BUY:
                return True
            if verdict == MarketVerdict.LONG and order.side == OrderSide.SELL:
                return True

        position = exposure.position
        if position is not None and position.direction != verdict.value:
            return True

        return False

    async def _open_grid(self, classification: Classification, price) -> int:
        verdict = classification.verdict
        atr = classification.snapshot.atr
        report = await self._planner.place_grid(verdict, price, atr)
        placed = report.orders_placed

        if self._strategy.grid.open_market_entry and report.legs_placed:
            if await self._market_entry(verdict, price):
                placed += 1

        return placed

    async def _market_entry(self, verdict: MarketVerdict, price) -> bool:
        filters = await self._gateway.get_symbol_filters(self.symbol)
        quantity = self._planner.order_quantity(price, filters)
        if quantity <= 0:
            return False

        intent = OrderIntent(
            symbol=self.symbol,
            side=verdict.order_side,
            order_type=OrderType.MARKET,
            quantity=quantity,
        )
        try:
            result = await self._gateway.place_order(intent)
        except GatewayError as e:
            logger.error(f"Market entry failed: {e}")
            return False

        if not result.success:
            logger.warning(f"Market entry rejected: {result.error_message}")
            return False

        logger.info(f"{verdict.value} position opened: {quantity} {self.symbol}")
        return True

    # =========================================================================
    # Flatten
    # =========================================================================

    async def flatten(self, reason: str, exposure: Optional[ExposureSnapshot] = None) -> None:
        """
        Cancel every open order, then close every position at market.

        Per-order failures are logged and the sweep continues.

        Args:
            reason: Logged reason
            exposure: Snapshot to act on; re-read from the gateway when omitted

        Raises:
            GatewayError: If the exposure cannot be read
        """
        if exposure is None:
            exposure = await self._read_exposure()

        if not exposure.open_orders and exposure.position is None:
            logger.info(f"Flatten ({reason}): nothing open on {self.symbol}")
            return

        logger.warning(
            f"Flattening {self.symbol} ({reason}): {len(exposure.open_orders)} orders, "
            f"{len(exposure.positions)} positions"
        )

        for order in exposure.open_orders:
            try:
                await self._gateway.cancel_order(self.symbol, order.order_id, is_algo=order.is_algo)
            except GatewayError as e:
                logger.error(f"Failed to cancel order {order.order_id}: {e}")

        for position in exposure.positions:
            if position.quantity == 0:
                continue

            pnl = position.realized_pnl()
            intent = OrderIntent(
                symbol=self.symbol,
                side=position.close_side,
                order_type=OrderType.MARKET,
                quantity=position.size,
                reduce_only=True,
            )
            try:
                result = await self._gateway.place_order(intent)
            except GatewayError as e:
                logger.error(f"Failed to close {position.direction} position: {e}")
                continue

            if not result.success:
                logger.error(f"Close of {position.direction} position rejected: {result.error_message}")
                continue

            self._session.record_close(pnl)
            self._pnl.log_close(self.symbol, pnl)
            logger.info(f"Closed {position.direction} {position.size} {self.symbol}, P/L {pnl:.2f} USDT")

    # =========================================================================
    # Failure Handling
    # =========================================================================

    async def _on_gateway_failure(self) -> None:
        failures = self._session.record_failure()
        limit = self._config.bot.max_consecutive_failures
        if failures < limit:
            return

        logger.critical(
            f"{failures} consecutive gateway failures; reconnecting in "
            f"{self._config.bot.failure_backoff}s"
        )
        try:
            await self._gateway.reconnect()
        except GatewayError as e:
            logger.error(f"Reconnect failed: {e}")

        await asyncio.sleep(self._config.bot.failure_backoff)
        self._session.consecutive_failures = 0

    def _log_totals(self) -> None:
        session = self._session
        logger.info(
            f"Total Profit: {session.total_profit:.2f} USDT, "
            f"Total Loss: {session.total_loss:.2f} USDT"
        )
        self._pnl.log_totals(session.total_profit, session.total_loss)
