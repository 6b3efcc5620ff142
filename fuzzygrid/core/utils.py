"""
Utility functions for the fuzzy grid bot.

Includes time conversion, decimal rounding and client order IDs.
"""

import random
import string
import time
from datetime import datetime, timezone
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal


# =============================================================================
# Time-related functions
# =============================================================================


def timestamp_to_datetime(ts: int, unit: str = "ms") -> datetime:
    """
    Convert timestamp to datetime (UTC).

    Args:
        ts: Timestamp value
        unit: "ms" for milliseconds, "s" for seconds

    Returns:
        UTC datetime object

    Example:
        >>> timestamp_to_datetime(1704067200000)
        datetime.datetime(2024, 1, 1, 0, 0, tzinfo=datetime.timezone.utc)
    """
    if unit == "ms":
        ts = ts / 1000
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def now_timestamp(unit: str = "ms") -> int:
    """
    Get current timestamp.

    Args:
        unit: "ms" for milliseconds, "s" for seconds

    Returns:
        Current timestamp as integer
    """
    ts = time.time()
    if unit == "ms":
        return int(ts * 1000)
    return int(ts)


# =============================================================================
# Numeric functions
# =============================================================================


def round_decimal(
    value: Decimal,
    precision: int,
    rounding: str = ROUND_DOWN,
) -> Decimal:
    """
    Round a Decimal to specified precision.

    Args:
        value: Decimal value to round
        precision: Number of decimal places
        rounding: Rounding mode (default ROUND_DOWN)

    Returns:
        Rounded Decimal

    Example:
        >>> round_decimal(Decimal("123.456"), 2)
        Decimal('123.45')
    """
    if precision < 0:
        precision = 0

    quantize_str = "1." + "0" * precision if precision > 0 else "1"
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def round_to_tick(
    value: Decimal,
    tick_size: Decimal,
    rounding: str = ROUND_HALF_UP,
) -> Decimal:
    """
    Round value to a whole number of ticks.

    Args:
        value: Value to round
        tick_size: Minimum price increment (e.g., 0.01)
        rounding: Rounding mode (default nearest tick, half up)

    Returns:
        Value rounded to tick size

    Example:
        >>> round_to_tick(Decimal("123.456"), Decimal("0.01"))
        Decimal('123.46')
        >>> round_to_tick(Decimal("123.456"), Decimal("0.05"))
        Decimal('123.45')
    """
    if tick_size <= 0:
        return value

    ticks = (value / tick_size).to_integral_value(rounding=rounding)
    return ticks * tick_size


def round_price(value: Decimal, tick_size: Decimal, precision: int) -> Decimal:
    """
    Round a price to the nearest tick, then to the pair's price precision.

    Every grid and bracket price goes through here, and so do the keys used
    to compare against existing open orders.

    Args:
        value: Raw price
        tick_size: Pair tick size
        precision: Pair price precision (decimal places)

    Returns:
        Exchange-valid price
    """
    return round_decimal(round_to_tick(value, tick_size), precision, ROUND_HALF_UP)


def clamp(value: Decimal, lower: Decimal, upper: Decimal) -> Decimal:
    """Clamp value into [lower, upper]."""
    return max(lower, min(upper, value))


# =============================================================================
# String functions
# =============================================================================


def generate_client_order_id(prefix: str = "FGRID") -> str:
    """
    Generate a unique client order ID.

    Format: PREFIX_TIMESTAMP_RANDOM

    Args:
        prefix: Prefix for the order ID

    Returns:
        Unique order ID string

    Example:
        >>> generate_client_order_id("TP")
        'TP_1704067200000_A3B2C1'
    """
    timestamp = now_timestamp()
    random_suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=6))
    return f"{prefix}_{timestamp}_{random_suffix}"
