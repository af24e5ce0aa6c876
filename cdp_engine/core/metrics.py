"""
Numeric helpers shared by the components.

Rounding is half away from zero, matching SQL ROUND on numerics, so report
values stay identical to what the dashboard showed when this logic lived in
SQL. Zero denominators resolve to 0, never NaN.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round half away from zero to ``ndigits`` decimals."""
    quantum = Decimal(1).scaleb(-ndigits)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def round_seconds(value: float) -> int:
    """Round a duration in seconds to the nearest whole second."""
    return int(round_half_up(value, 0))


def safe_rate(numerator: float, denominator: float, ndigits: int = 2) -> float:
    """Percentage ``numerator / denominator * 100``; 0.0 when denominator is 0."""
    if denominator <= 0:
        return 0.0
    return round_half_up(numerator / denominator * 100, ndigits)


def mean(values: Iterable[float]) -> float:
    """Arithmetic mean; 0.0 for an empty iterable."""
    total = 0.0
    count = 0
    for value in values:
        total += value
        count += 1
    if count == 0:
        return 0.0
    return total / count


def percent_change(current: float, comparison: float | None, ndigits: int = 1) -> float | None:
    """
    Relative change from ``comparison`` to ``current`` in percent.

    Returns None when there is no comparison value or it is zero, so callers
    can render "-" instead of an infinite change.
    """
    if comparison is None or comparison == 0:
        return None
    return round_half_up((current - comparison) / comparison * 100, ndigits)
