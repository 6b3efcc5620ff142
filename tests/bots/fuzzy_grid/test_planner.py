"""
Tests for GridPlanner.

Covers spacing math, leg deduplication, bracket side safety, idempotent
placement and per-order failure handling.
"""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from fuzzygrid.bots.fuzzy_grid import GridPlanner, MarketVerdict, PlacementReport
from fuzzygrid.core.exceptions import GatewayError, InvalidPriceLevelError
from fuzzygrid.core.models import OrderSide, OrderType
from fuzzygrid.exchange.base import OrderIntent


PRICE = Decimal("0.1")
ATR = Decimal("0.002")


@pytest.fixture
def planner(grid_config, mock_gateway) -> GridPlanner:
    return GridPlanner("DOGEUSDT", grid_config, mock_gateway)


def _planner(grid_config, gateway, **updates) -> GridPlanner:
    return GridPlanner("DOGEUSDT", grid_config.model_copy(update=updates), gateway)


# =============================================================================
# Price Math
# =============================================================================


class TestPriceMath:
    """Tests for spacing, offsets and sizing."""

    def test_minimum_distance(self, planner, symbol_filters):
        # max(5 ticks = 0.00005, 0.2% of price = 0.0002)
        assert planner.minimum_distance(PRICE, symbol_filters) == Decimal("0.0002")

    def test_spacing_uses_atr(self, planner, symbol_filters):
        assert planner.grid_spacing(PRICE, ATR, symbol_filters) == ATR

    def test_spacing_floor(self, planner, symbol_filters):
        assert planner.grid_spacing(PRICE, Decimal("0"), symbol_filters) == Decimal("0.0002")

    def test_order_quantity(self, planner, symbol_filters):
        # 10 USDT * 10x / 0.1, whole coins
        assert planner.order_quantity(PRICE, symbol_filters) == Decimal("1000")
        assert planner.order_quantity(Decimal("0.3"), symbol_filters) == Decimal("333")

    def test_order_quantity_non_positive_price(self, planner, symbol_filters):
        assert planner.order_quantity(Decimal("0"), symbol_filters) == 0

    @pytest.mark.parametrize("atr,expected", [
        ("0.002", "2.0"),
        ("0.1", "5.0"),
        ("0.000001", "0.1"),
    ])
    def test_callback_rate_clamped(self, planner, atr, expected):
        assert planner.callback_rate(PRICE, Decimal(atr)) == Decimal(expected)


# =============================================================================
# Leg Planning
# =============================================================================


class TestPlanLegs:
    """Tests for plan_legs."""

    def test_long_legs_below_price(self, planner, symbol_filters):
        legs = planner.plan_legs(MarketVerdict.LONG, PRICE, ATR, symbol_filters)

        assert [leg.price for leg in legs] == [
            Decimal("0.0978"),
            Decimal("0.0958"),
            Decimal("0.0938"),
        ]
        for leg in legs:
            assert leg.side == OrderSide.BUY
            assert leg.order_type == OrderType.LIMIT
            assert leg.time_in_force == "GTC"
            assert leg.quantity == Decimal("1000")
            assert leg.client_order_id.startswith("GRID_")

    def test_short_legs_above_price(self, planner, symbol_filters):
        legs = planner.plan_legs(MarketVerdict.SHORT, PRICE, ATR, symbol_filters)

        assert [leg.price for leg in legs] == [
            Decimal("0.1022"),
            Decimal("0.1042"),
            Decimal("0.1062"),
        ]
        assert all(leg.side == OrderSide.SELL for leg in legs)

    @pytest.mark.parametrize("verdict", [MarketVerdict.NEUTRAL, MarketVerdict.EXTREME])
    def test_non_directional_plans_nothing(self, planner, symbol_filters, verdict):
        assert planner.plan_legs(verdict, PRICE, ATR, symbol_filters) == []

    @pytest.mark.parametrize("atr", ["0", "0.000001", "0.00002", "0.002", "0.01"])
    @pytest.mark.parametrize("verdict", [MarketVerdict.LONG, MarketVerdict.SHORT])
    def test_legs_are_unique(self, grid_config, mock_gateway, symbol_filters, atr, verdict):
        planner = _planner(grid_config, mock_gateway, grid_count=10)
        legs = planner.plan_legs(verdict, PRICE, Decimal(atr), symbol_filters)
        prices = [leg.price for leg in legs]

        assert len(prices) == len(set(prices))

    def test_existing_prices_are_skipped(self, planner, symbol_filters):
        legs = planner.plan_legs(
            MarketVerdict.LONG,
            PRICE,
            ATR,
            symbol_filters,
            existing_prices=[Decimal("0.097800001"), Decimal("0.0938")],
        )
        assert [leg.price for leg in legs] == [Decimal("0.0958")]

    def test_invalid_levels_are_rejected(self, planner, symbol_filters):
        report = PlacementReport()
        legs = planner.plan_legs(
            MarketVerdict.LONG, Decimal("0.001"), ATR, symbol_filters, report=report
        )

        assert legs == []
        assert report.rejected == 3

    def test_zero_quantity_plans_nothing(self, planner, symbol_filters):
        assert planner.plan_legs(MarketVerdict.LONG, Decimal("100000"), ATR, symbol_filters) == []


# =============================================================================
# Bracket Planning
# =============================================================================


class TestPlanBracket:
    """Tests for plan_bracket."""

    def test_long_bracket(self, planner, symbol_filters):
        leg = planner.plan_legs(MarketVerdict.LONG, PRICE, ATR, symbol_filters)[0]
        plan = planner.plan_bracket(leg, MarketVerdict.LONG, ATR, symbol_filters)

        assert plan.take_profit.stop_price == Decimal("0.1")
        assert plan.stop_loss.stop_price == Decimal("0.0956")
        assert plan.take_profit.order_type == OrderType.TAKE_PROFIT_MARKET
        assert plan.stop_loss.order_type == OrderType.STOP_MARKET
        for intent in plan.intents:
            assert intent.side == OrderSide.SELL
            assert intent.reduce_only
            assert intent.quantity == leg.quantity
        assert plan.trailing_stop is None

    def test_short_bracket(self, planner, symbol_filters):
        leg = planner.plan_legs(MarketVerdict.SHORT, PRICE, ATR, symbol_filters)[0]
        plan = planner.plan_bracket(leg, MarketVerdict.SHORT, ATR, symbol_filters)

        assert plan.take_profit.stop_price == Decimal("0.1")
        assert plan.stop_loss.stop_price == Decimal("0.1044")
        assert all(intent.side == OrderSide.BUY for intent in plan.intents)

    @pytest.mark.parametrize("atr", ["0", "0.0001", "0.002", "0.02"])
    @pytest.mark.parametrize("verdict", [MarketVerdict.LONG, MarketVerdict.SHORT])
    def test_bracket_sides(self, planner, symbol_filters, atr, verdict):
        """Test take-profit and stop-loss never sit on the wrong side of entry."""
        atr = Decimal(atr)
        for leg in planner.plan_legs(verdict, PRICE, atr, symbol_filters):
            plan = planner.plan_bracket(leg, verdict, atr, symbol_filters)
            tp = plan.take_profit.stop_price
            sl = plan.stop_loss.stop_price
            if verdict == MarketVerdict.LONG:
                assert sl < leg.price < tp
            else:
                assert tp < leg.price < sl

    def test_wrong_side_raises(self, planner, symbol_filters):
        leg = OrderIntent(
            symbol="DOGEUSDT",
            side=OrderSide.BUY,
            order_type=OrderType.LIMIT,
            quantity=Decimal("1000"),
            price=Decimal("0.00005"),
        )
        with pytest.raises(InvalidPriceLevelError):
            planner.plan_bracket(leg, MarketVerdict.LONG, Decimal("0.001"), symbol_filters)

    def test_trailing_stop(self, grid_config, mock_gateway, symbol_filters):
        planner = _planner(grid_config, mock_gateway, use_trailing_stop=True)
        leg = planner.plan_legs(MarketVerdict.LONG, PRICE, ATR, symbol_filters)[0]

        plan = planner.plan_bracket(leg, MarketVerdict.LONG, ATR, symbol_filters)

        trailing = plan.trailing_stop
        assert len(plan.intents) == 3
        assert trailing.order_type == OrderType.TRAILING_STOP_MARKET
        assert trailing.activation_price == Decimal("0.0988")
        assert trailing.callback_rate == Decimal("2.0")
        assert trailing.reduce_only


# =============================================================================
# Placement
# =============================================================================


class TestPlaceGrid:
    """Tests for place_grid against the mock gateway."""

    @pytest.mark.asyncio
    async def test_places_legs_and_brackets(self, planner, mock_gateway):
        report = await planner.place_grid(MarketVerdict.LONG, PRICE, ATR)

        assert len(report.legs_placed) == 3
        assert len(report.brackets_placed) == 6
        assert report.orders_placed == 9
        assert report.rejected == report.failed == report.duplicates_skipped == 0
        assert len(mock_gateway.open_orders) == 9

    @pytest.mark.asyncio
    async def test_bracket_follows_acknowledged_leg(self, grid_config, mock_gateway):
        planner = _planner(grid_config, mock_gateway, grid_count=1)

        await planner.place_grid(MarketVerdict.LONG, PRICE, ATR)

        placed = [args.order_type for name, args in mock_gateway.calls if name == "place_order"]
        assert placed == [OrderType.LIMIT, OrderType.TAKE_PROFIT_MARKET, OrderType.STOP_MARKET]
        # open orders are re-queried between the leg and its bracket
        names = mock_gateway.call_names
        first_place = names.index("place_order")
        assert "get_open_orders" in names[first_place + 1:first_place + 2]

    @pytest.mark.asyncio
    async def test_second_call_places_nothing(self, planner, mock_gateway):
        """Test placement is idempotent against an unchanged exchange."""
        await planner.place_grid(MarketVerdict.LONG, PRICE, ATR)
        placed_before = len(mock_gateway.placed)

        report = await planner.place_grid(MarketVerdict.LONG, PRICE, ATR)

        assert report.orders_placed == 0
        assert report.duplicates_skipped == 3
        assert len(mock_gateway.placed) == placed_before

    @pytest.mark.asyncio
    async def test_existing_bracket_is_skipped(self, grid_config, mock_gateway):
        planner = _planner(grid_config, mock_gateway, grid_count=1)
        mock_gateway.add_order("SELL", OrderType.TAKE_PROFIT_MARKET, stop_price="0.10000")

        report = await planner.place_grid(MarketVerdict.LONG, PRICE, ATR)

        assert report.duplicates_skipped == 1
        assert [i.order_type for i in report.brackets_placed] == [OrderType.STOP_MARKET]

    @pytest.mark.asyncio
    async def test_rejected_bracket_does_not_stop_grid(self, planner, mock_gateway):
        mock_gateway.reject(OrderType.TAKE_PROFIT_MARKET)

        report = await planner.place_grid(MarketVerdict.LONG, PRICE, ATR)

        assert len(report.legs_placed) == 3
        assert len(report.brackets_placed) == 3
        assert report.rejected == 3

    @pytest.mark.asyncio
    async def test_gateway_error_skips_order(self, planner, mock_gateway):
        mock_gateway.fail_on("place_order", GatewayError("timeout"))

        report = await planner.place_grid(MarketVerdict.LONG, PRICE, ATR)

        assert report.orders_placed == 0
        assert report.failed == 3

    @pytest.mark.asyncio
    async def test_bracket_requery_failure(self, grid_config, mock_gateway):
        planner = _planner(grid_config, mock_gateway, grid_count=1)
        mock_gateway.get_open_orders = AsyncMock(side_effect=[[], GatewayError("timeout")])

        report = await planner.place_grid(MarketVerdict.LONG, PRICE, ATR)

        assert len(report.legs_placed) == 1
        assert report.brackets_placed == []
        assert report.failed == 2

    @pytest.mark.asyncio
    async def test_filters_failure_propagates(self, planner, mock_gateway):
        mock_gateway.fail_on("get_symbol_filters", GatewayError("down"))
        with pytest.raises(GatewayError):
            await planner.place_grid(MarketVerdict.LONG, PRICE, ATR)

    @pytest.mark.asyncio
    async def test_neutral_places_nothing(self, planner, mock_gateway):
        report = await planner.place_grid(MarketVerdict.NEUTRAL, PRICE, ATR)
        assert report.orders_placed == 0
        assert mock_gateway.calls == []
