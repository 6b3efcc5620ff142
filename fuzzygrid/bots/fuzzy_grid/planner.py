"""
Grid Order Planner.

Builds a ladder of LIMIT legs away from the current price in the verdict's
direction and protects each acknowledged leg with a reduce-only
take-profit/stop-loss bracket (plus an optional trailing stop).

Spacing:
    minimum_distance = max(min_tick_multiple * tick, min_price_ratio * price)
    spacing          = max(atr * spacing_atr_multiplier, minimum_distance)
    leg_i            = price -/+ spacing * i -/+ atr * entry_offset_atr_ratio
    bracket_offset   = atr * bracket_atr_multiplier
                       + max(atr * bracket_extra_ratio, minimum_distance)

Placement is idempotent: legs already resting at the same rounded price are
skipped, and brackets are re-checked against fresh open orders right before
submission.
"""

import asyncio
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional, Set

from fuzzygrid.core import get_logger
from fuzzygrid.core.exceptions import GatewayError, InvalidPriceLevelError
from fuzzygrid.core.models import Order, OrderSide, OrderType, SymbolInfo
from fuzzygrid.core.utils import clamp, generate_client_order_id, round_decimal, round_price
from fuzzygrid.exchange.base import ExchangeGateway, OrderIntent

from .models import BracketPlan, MarketVerdict, PlacementReport

logger = get_logger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CALLBACK_STEP = Decimal("0.1")


class GridPlanner:
    """
    Plans and places grid legs with brackets for one symbol.

    Example:
        >>> planner = GridPlanner("DOGEUSDT", GridConfig(grid_count=3), gateway)
        >>> report = await planner.place_grid(MarketVerdict.LONG, price, atr)
        >>> report.orders_placed
        6
    """

    def __init__(self, symbol: str, config, gateway: ExchangeGateway):
        """
        Initialize planner.

        Args:
            symbol: Trading pair
            config: GridConfig
            gateway: Exchange gateway used for placement
        """
        self._symbol = symbol
        self._config = config
        self._gateway = gateway

    # =========================================================================
    # Price Math
    # =========================================================================

    def minimum_distance(self, price: Decimal, filters: SymbolInfo) -> Decimal:
        """Smallest allowed distance between price levels."""
        return max(
            filters.tick_size * self._config.min_tick_multiple,
            price * self._config.min_price_ratio,
        )

    def grid_spacing(self, price: Decimal, atr: Decimal, filters: SymbolInfo) -> Decimal:
        return max(atr * self._config.spacing_atr_multiplier, self.minimum_distance(price, filters))

    def entry_offset(self, atr: Decimal) -> Decimal:
        return atr * self._config.entry_offset_atr_ratio

    def bracket_offset(self, price: Decimal, atr: Decimal, filters: SymbolInfo) -> Decimal:
        cfg = self._config
        return atr * cfg.bracket_atr_multiplier + max(
            atr * cfg.bracket_extra_ratio,
            self.minimum_distance(price, filters),
        )

    def order_quantity(self, price: Decimal, filters: SymbolInfo) -> Decimal:
        """(base_notional * leverage) / price, rounded down to quantity precision."""
        if price <= 0:
            return ZERO
        raw = self._config.base_notional * self._config.leverage / price
        return round_decimal(raw, filters.quantity_precision, ROUND_DOWN)

    def _round(self, price: Decimal, filters: SymbolInfo) -> Decimal:
        return round_price(price, filters.tick_size, filters.price_precision)

    def callback_rate(self, price: Decimal, atr: Decimal) -> Decimal:
        """Trailing callback rate in percent, from ATR relative to price."""
        cfg = self._config
        raw = HUNDRED * atr / price * cfg.trailing_callback_atr_multiplier
        rate = clamp(raw, cfg.min_callback_rate, cfg.max_callback_rate)
        return rate.quantize(CALLBACK_STEP, rounding=ROUND_HALF_UP)

    # =========================================================================
    # Planning
    # =========================================================================

    def plan_legs(
        self,
        verdict: MarketVerdict,
        price: Decimal,
        atr: Decimal,
        filters: SymbolInfo,
        existing_prices: Optional[Iterable[Decimal]] = None,
        report: Optional[PlacementReport] = None,
    ) -> List[OrderIntent]:
        """
        Plan LIMIT legs for a directional verdict.

        Args:
            verdict: LONG (legs below price) or SHORT (legs above price)
            price: Current price
            atr: Current ATR
            filters: Symbol precision and tick size
            existing_prices: Prices of orders already resting on the book
            report: Optional report that counts skipped legs

        Returns:
            Legs in ladder order, without duplicates
        """
        side = verdict.order_side
        if side is None:
            return []

        quantity = self.order_quantity(price, filters)
        if quantity <= 0:
            logger.warning(
                f"Order quantity rounds to zero for {self._symbol} at {price}; no legs planned"
            )
            return []

        direction = Decimal("-1") if side == OrderSide.BUY else Decimal("1")
        spacing = self.grid_spacing(price, atr, filters)
        offset = self.entry_offset(atr)
        seen: Set[Decimal] = {self._round(p, filters) for p in (existing_prices or [])}

        logger.info(
            f"Planning {self._config.grid_count} {side.value} legs for {self._symbol}: "
            f"price={price}, spacing={spacing:.8f}, offset={offset:.8f}, qty={quantity}"
        )

        legs = []
        for i in range(1, self._config.grid_count + 1):
            level = self._round(price + direction * (spacing * i + offset), filters)
            try:
                self._validate_leg(level, price)
            except InvalidPriceLevelError as e:
                logger.error(f"Skipping leg {i}: {e}")
                if report is not None:
                    report.rejected += 1
                continue

            if level in seen:
                logger.info(f"Skipping leg {i}: order already exists at {level}")
                if report is not None:
                    report.duplicates_skipped += 1
                continue
            seen.add(level)

            legs.append(OrderIntent(
                symbol=self._symbol,
                side=side,
                order_type=OrderType.LIMIT,
                quantity=quantity,
                price=level,
                time_in_force="GTC",
                client_order_id=generate_client_order_id("GRID"),
            ))

        return legs

    @staticmethod
    def _validate_leg(level: Decimal, price: Decimal) -> None:
        if level <= 0:
            raise InvalidPriceLevelError(level, "price must be positive")
        if level >= price * 2:
            raise InvalidPriceLevelError(level, f"price must be below twice the market price {price}")

    def plan_bracket(
        self,
        leg: OrderIntent,
        verdict: MarketVerdict,
        atr: Decimal,
        filters: SymbolInfo,
    ) -> BracketPlan:
        """
        Plan the protective orders for one leg.

        Args:
            leg: The LIMIT leg being protected
            verdict: Direction of the leg
            atr: Current ATR
            filters: Symbol precision and tick size

        Returns:
            BracketPlan with reduce-only close-side orders

        Raises:
            InvalidPriceLevelError: If the take-profit or stop-loss would sit on
                the wrong side of the entry (and so trigger immediately)
        """
        entry = leg.price
        is_long = verdict == MarketVerdict.LONG
        close_side = verdict.order_side.opposite
        sign = Decimal("1") if is_long else Decimal("-1")

        offset = self.bracket_offset(entry, atr, filters)
        take_profit = self._round(entry + sign * offset, filters)
        stop_loss = self._round(entry - sign * offset, filters)

        if is_long and not (take_profit > entry > stop_loss > 0):
            raise InvalidPriceLevelError(
                stop_loss if stop_loss >= entry or stop_loss <= 0 else take_profit,
                f"LONG bracket TP={take_profit} SL={stop_loss} on wrong side of entry {entry}",
            )
        if not is_long and not (0 < take_profit < entry < stop_loss):
            raise InvalidPriceLevelError(
                take_profit if take_profit >= entry or take_profit <= 0 else stop_loss,
                f"SHORT bracket TP={take_profit} SL={stop_loss} on wrong side of entry {entry}",
            )

        plan = BracketPlan(
            take_profit=OrderIntent(
                symbol=self._symbol,
                side=close_side,
                order_type=OrderType.TAKE_PROFIT_MARKET,
                quantity=leg.quantity,
                stop_price=take_profit,
                reduce_only=True,
                client_order_id=generate_client_order_id("TP"),
            ),
            stop_loss=OrderIntent(
                symbol=self._symbol,
                side=close_side,
                order_type=OrderType.STOP_MARKET,
                quantity=leg.quantity,
                stop_price=stop_loss,
                reduce_only=True,
                client_order_id=generate_client_order_id("SL"),
            ),
        )

        if self._config.use_trailing_stop:
            activation = self._round(
                entry + sign * atr * self._config.trailing_activation_atr_ratio,
                filters,
            )
            plan.trailing_stop = OrderIntent(
                symbol=self._symbol,
                side=close_side,
                order_type=OrderType.TRAILING_STOP_MARKET,
                quantity=leg.quantity,
                activation_price=activation,
                callback_rate=self.callback_rate(entry, atr),
                reduce_only=True,
                client_order_id=generate_client_order_id("TS"),
            )

        return plan

    # =========================================================================
    # Placement
    # =========================================================================

    async def place_grid(
        self,
        verdict: MarketVerdict,
        price: Decimal,
        atr: Decimal,
    ) -> PlacementReport:
        """
        Place grid legs and their brackets.

        Each leg is independent: a rejection or gateway error skips that order
        only. A leg's bracket is placed only after the leg is acknowledged.

        Args:
            verdict: LONG or SHORT
            price: Current price
            atr: Current ATR

        Returns:
            PlacementReport

        Raises:
            GatewayError: If the filters or open orders cannot be fetched
        """
        report = PlacementReport()
        if not verdict.is_directional:
            return report

        filters = await self._gateway.get_symbol_filters(self._symbol)
        open_orders = await self._gateway.get_open_orders(self._symbol)
        existing = [o.price for o in open_orders if o.order_type == OrderType.LIMIT and o.price]

        planned = self.plan_legs(verdict, price, atr, filters, existing, report)

        for index, leg in enumerate(planned):
            if index > 0 and self._config.order_pause > 0:
                await asyncio.sleep(self._config.order_pause)

            if not await self._submit(leg, report, report.legs_placed):
                continue

            try:
                bracket = self.plan_bracket(leg, verdict, atr, filters)
            except InvalidPriceLevelError as e:
                logger.error(f"Skipping bracket for leg at {leg.price}: {e}")
                report.rejected += 1
                continue

            await self._place_bracket(bracket, filters, report)

        logger.info(
            f"Grid placement for {self._symbol}: legs={len(report.legs_placed)}, "
            f"brackets={len(report.brackets_placed)}, duplicates={report.duplicates_skipped}, "
            f"rejected={report.rejected}, failed={report.failed}"
        )
        return report

    async def _place_bracket(
        self,
        bracket: BracketPlan,
        filters: SymbolInfo,
        report: PlacementReport,
    ) -> None:
        if self._config.bracket_pause > 0:
            await asyncio.sleep(self._config.bracket_pause)

        try:
            open_orders = await self._gateway.get_open_orders(self._symbol)
        except GatewayError as e:
            logger.error(f"Could not re-query open orders before bracket: {e}")
            report.failed += len(bracket.intents)
            return

        for intent in bracket.intents:
            if self._bracket_exists(intent, open_orders, filters):
                logger.info(
                    f"{OrderType(intent.order_type).value} already exists at "
                    f"{intent.trigger_price}; skipping"
                )
                report.duplicates_skipped += 1
                continue
            await self._submit(intent, report, report.brackets_placed)

    def _bracket_exists(
        self,
        intent: OrderIntent,
        open_orders: List[Order],
        filters: SymbolInfo,
    ) -> bool:
        target = self._round(intent.trigger_price, filters)
        for order in open_orders:
            if order.order_type != intent.order_type:
                continue
            trigger = order.trigger_price
            if trigger is not None and self._round(trigger, filters) == target:
                return True
        return False

    async def _submit(
        self,
        intent: OrderIntent,
        report: PlacementReport,
        placed: List[OrderIntent],
    ) -> bool:
        try:
            result = await self._gateway.place_order(intent)
        except GatewayError as e:
            logger.error(f"Failed to place {intent.describe()}: {e}")
            report.failed += 1
            return False

        if not result.success:
            logger.warning(f"Rejected {intent.describe()}: {result.error_message}")
            report.rejected += 1
            return False

        logger.info(f"Placed {intent.describe()}")
        placed.append(intent)
        return True
