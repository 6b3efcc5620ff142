"""
Unit tests for fuzzy membership and aggregation.
"""

from decimal import Decimal

import pytest

from fuzzygrid.bots.fuzzy_grid import (
    FuzzyRule,
    FuzzySignal,
    MembershipShape,
    aggregate,
    membership,
)


def D(value) -> Decimal:
    return Decimal(str(value))


class TestLinearMembership:
    """Tests for the falling linear ramp."""

    def test_midpoint(self):
        assert membership(D(40), D(30), D(50)) == D("0.5")

    def test_edges(self):
        assert membership(D(30), D(30), D(50)) == 1
        assert membership(D(50), D(30), D(50)) == 0

    def test_outside_band_is_bounded(self):
        assert membership(D(-1000), D(30), D(50)) == 1
        assert membership(D(1000), D(30), D(50)) == 0

    def test_monotonically_non_increasing(self):
        values = [D(v) for v in range(0, 81, 5)]
        degrees = [membership(v, D(30), D(50), "linear") for v in values]

        assert all(a >= b for a, b in zip(degrees, degrees[1:]))
        assert all(0 <= d <= 1 for d in degrees)

    def test_degenerate_band_is_a_step(self):
        assert membership(D(1), D(2), D(2)) == 1
        assert membership(D(3), D(2), D(2)) == 0


class TestTriangleMembership:
    """Tests for the triangle shape."""

    def test_peak_at_midpoint(self):
        assert membership(D(2250), D(1500), D(3000), MembershipShape.TRIANGLE) == 1

    def test_zero_at_and_outside_edges(self):
        for value in (1500, 3000, 1000, 5000):
            assert membership(D(value), D(1500), D(3000), "triangle") == 0

    def test_rising_and_falling_sides(self):
        assert membership(D(1875), D(1500), D(3000), "triangle") == D("0.5")
        assert membership(D(2625), D(1500), D(3000), "triangle") == D("0.5")

    def test_degenerate_band_is_zero(self):
        assert membership(D(1), D(1), D(1), "triangle") == 0


class TestTrapezoidMembership:
    """Tests for the trapezoid shape."""

    def test_full_membership_inside_band(self):
        """Test an ATR of 0.2 against the extreme band [0.1, 0.2]."""
        assert membership(D("0.2"), D("0.1"), D("0.2"), "trapezoid") == 1
        assert membership(D("0.15"), D("0.1"), D("0.2"), "trapezoid") == 1

    def test_ramps_outside_band(self):
        # ramp width = 0.1 * (0.2 - 0.1) = 0.01
        assert membership(D("0.205"), D("0.1"), D("0.2"), "trapezoid") == D("0.5")
        assert membership(D("0.095"), D("0.1"), D("0.2"), "trapezoid") == D("0.5")

    def test_zero_beyond_ramps(self):
        assert membership(D("0.21"), D("0.1"), D("0.2"), "trapezoid") == 0
        assert membership(D("0.05"), D("0.1"), D("0.2"), "trapezoid") == 0

    def test_degenerate_band_is_zero(self):
        assert membership(D("0.1"), D("0.1"), D("0.1"), "trapezoid") == 0
        assert membership(D("0.1"), D("0.2"), D("0.1"), "trapezoid") == 0

    def test_unknown_shape(self):
        with pytest.raises(ValueError):
            membership(D(1), D(0), D(2), "gaussian")


class TestAggregate:
    """Tests for weighted aggregation."""

    def test_empty_is_zero(self):
        assert aggregate([], []) == 0
        assert aggregate([]) == 0

    def test_equal_weights_by_default(self):
        assert aggregate([D(1), D(0), D("0.5"), D("0.5")]) == D("0.5")

    def test_weighted_mean(self):
        # (1 * 3 + 0 * 1) / 4
        assert aggregate([D(1), D(0)], [D(3), D(1)]) == D("0.75")

    def test_zero_total_weight_is_zero(self):
        assert aggregate([D(1), D(1)], [D(0), D(0)]) == 0

    def test_length_mismatch(self):
        with pytest.raises(ValueError, match="weights length"):
            aggregate([D(1), D(1)], [D(1)])


class TestFuzzySignal:
    """Tests for FuzzySignal."""

    def test_clamps_value(self):
        assert FuzzySignal("high", D("1.5")).value == 1
        assert FuzzySignal("low", D("-0.5")).value == 0

    def test_accepts_non_decimal(self):
        assert FuzzySignal("float", 0.5).value == D("0.5")

    def test_from_bool(self):
        assert FuzzySignal.from_bool("yes", True).value == 1
        assert FuzzySignal.from_bool("no", False).value == 0


class TestFuzzyRule:
    """Tests for FuzzyRule."""

    @pytest.fixture
    def signals(self):
        return [
            FuzzySignal("a", D(1)),
            FuzzySignal("b", D(1)),
            FuzzySignal("c", D(1)),
            FuzzySignal("d", D(0)),
        ]

    def test_score_and_fires(self, signals):
        rule = FuzzyRule(signals, threshold=D("0.75"))
        assert rule.score() == D("0.75")
        assert rule.fires()

    def test_below_threshold(self, signals):
        rule = FuzzyRule(signals, threshold=D("0.8"))
        assert not rule.fires()

    def test_weights_shift_score(self, signals):
        rule = FuzzyRule(signals, weights=[D(0), D(0), D(0), D(1)], threshold=D("0.5"))
        assert rule.score() == 0
        assert not rule.fires()

    def test_describe_lists_signals(self, signals):
        text = FuzzyRule(signals).describe()
        assert "a=1.00" in text
        assert "d=0.00" in text
        assert "0.750" in text
