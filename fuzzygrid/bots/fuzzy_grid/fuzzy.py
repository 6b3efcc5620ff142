"""
Fuzzy membership functions and weighted aggregation.

Both classifier gates are FuzzyRule instances: several membership signals
aggregated with a weight vector and compared to a threshold.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Sequence

from fuzzygrid.core import get_logger

logger = get_logger(__name__)

ZERO = Decimal("0")
ONE = Decimal("1")
TWO = Decimal("2")
TRAPEZOID_RAMP = Decimal("0.1")


class MembershipShape(str, Enum):
    """Membership function shape."""

    LINEAR = "linear"
    TRIANGLE = "triangle"
    TRAPEZOID = "trapezoid"


def _linear(value: Decimal, low: Decimal, high: Decimal) -> Decimal:
    # Falling ramp
    if value <= low:
        return ONE
    if value >= high:
        return ZERO
    return (high - value) / (high - low)


def _triangle(value: Decimal, low: Decimal, high: Decimal) -> Decimal:
    if value <= low or value >= high:
        return ZERO
    mid = (low + high) / TWO
    if value <= mid:
        return (value - low) / (mid - low)
    return (high - value) / (high - mid)


def _trapezoid(value: Decimal, low: Decimal, high: Decimal) -> Decimal:
    if low <= value <= high:
        return ONE
    ramp = (high - low) * TRAPEZOID_RAMP
    if low - ramp < value < low:
        return (value - (low - ramp)) / ramp
    if high < value < high + ramp:
        return ((high + ramp) - value) / ramp
    return ZERO


def membership(
    value: Decimal,
    low: Decimal,
    high: Decimal,
    shape: MembershipShape | str = MembershipShape.LINEAR,
) -> Decimal:
    """
    Degree of membership of value in the band [low, high].

    Shapes:
        linear: 1 at or below low, 0 at or above high, falling in between
        triangle: 0 outside (low, high), 1 at the midpoint
        trapezoid: 1 inside [low, high], ramps of width 0.1 * (high - low) outside

    Args:
        value: Observed value
        low: Band low edge
        high: Band high edge
        shape: Membership shape

    Returns:
        Membership degree in [0, 1]; an empty or reversed band (high <= low)
        gives 0 for triangle and trapezoid

    Example:
        >>> membership(Decimal("40"), Decimal("30"), Decimal("50"))
        Decimal('0.5')
    """
    shape = MembershipShape(shape)

    if shape is MembershipShape.LINEAR:
        if high <= low:
            return ONE if value <= low else ZERO
        return _linear(value, low, high)
    if high <= low:
        return ZERO
    if shape is MembershipShape.TRIANGLE:
        return _triangle(value, low, high)
    return _trapezoid(value, low, high)


def aggregate(
    signals: Sequence[Decimal],
    weights: Optional[Sequence[Decimal]] = None,
) -> Decimal:
    """
    Weighted mean of membership signals.

    Args:
        signals: Membership degrees
        weights: Optional weights, equal weighting when omitted

    Returns:
        sum(signal * weight) / sum(weight); 0 for no signals or zero total weight

    Raises:
        ValueError: If weights and signals differ in length
    """
    if not signals:
        return ZERO

    if weights is None:
        weights = [ONE] * len(signals)
    elif len(weights) != len(signals):
        raise ValueError(
            f"weights length {len(weights)} does not match signals length {len(signals)}"
        )

    total_weight = sum(weights, ZERO)
    if total_weight == 0:
        return ZERO

    weighted = sum((s * w for s, w in zip(signals, weights)), ZERO)
    return weighted / total_weight


@dataclass(frozen=True)
class FuzzySignal:
    """A named membership degree, clamped to [0, 1]."""

    name: str
    value: Decimal

    def __post_init__(self):
        value = self.value if isinstance(self.value, Decimal) else Decimal(str(self.value))
        object.__setattr__(self, "value", min(max(value, ZERO), ONE))

    @classmethod
    def from_bool(cls, name: str, condition: bool) -> "FuzzySignal":
        """Crisp condition as membership 1 or 0."""
        return cls(name, ONE if condition else ZERO)


@dataclass
class FuzzyRule:
    """
    Aggregate signals with weights and compare to a threshold.

    Example:
        >>> rule = FuzzyRule(signals, weights=None, threshold=Decimal("0.75"))
        >>> rule.fires()
        False
    """

    signals: List[FuzzySignal]
    weights: Optional[List[Decimal]] = None
    threshold: Decimal = field(default_factory=lambda: Decimal("0.75"))

    def score(self) -> Decimal:
        return aggregate([s.value for s in self.signals], self.weights)

    def fires(self) -> bool:
        return self.score() >= self.threshold

    def describe(self) -> str:
        parts = ", ".join(f"{s.name}={s.value:.2f}" for s in self.signals)
        return f"[{parts}] -> {self.score():.3f} (threshold {self.threshold})"
