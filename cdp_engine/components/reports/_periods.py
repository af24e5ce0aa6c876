"""
Period ranges and metric changes for period-over-period comparison.

All ranges are computed in UTC from an injected "now".
"""

from __future__ import annotations

from datetime import datetime, time, timedelta, tzinfo

from cdp_engine.core.entities import ensure_utc
from cdp_engine.core.metrics import round_half_up

from .models import MetricChange, PeriodRange


def _end_of_day(day: datetime) -> datetime:
    return datetime.combine(day.date(), time.max, tzinfo=day.tzinfo)


def _month_start(year: int, month: int, tz: tzinfo | None) -> datetime:
    # month may run below 1 when stepping back from January
    while month < 1:
        month += 12
        year -= 1
    return datetime(year, month, 1, tzinfo=tz)


def calculate_date_ranges(
    mode: str,
    now: datetime,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> tuple[PeriodRange, PeriodRange]:
    """
    Current and comparison ranges for a comparison mode.

    - wow: the last 7 days against the 7 days before
    - mom / qoq / yoy: month / quarter / year to date against the whole
      previous month / quarter / year
    - custom: [date_from, date_to] against the equally long range ending
      where the current one starts

    Raises:
        ValueError: Unknown mode, or custom mode without a valid range.
    """
    now = ensure_utc(now)
    tz = now.tzinfo

    if mode == "custom":
        if date_from is None or date_to is None:
            raise ValueError("custom mode requires date_from and date_to")
        start, end = ensure_utc(date_from), ensure_utc(date_to)
        if end < start:
            raise ValueError("date_to must not be before date_from")
        duration = end - start
        return PeriodRange(start, end), PeriodRange(start - duration, start)

    if mode == "wow":
        return (
            PeriodRange(now - timedelta(days=7), now),
            PeriodRange(now - timedelta(days=14), now - timedelta(days=7)),
        )

    if mode == "mom":
        current_start = _month_start(now.year, now.month, tz)
        previous_start = _month_start(now.year, now.month - 1, tz)
    elif mode == "qoq":
        quarter_month = (now.month - 1) // 3 * 3 + 1
        current_start = _month_start(now.year, quarter_month, tz)
        previous_start = _month_start(now.year, quarter_month - 3, tz)
    elif mode == "yoy":
        current_start = datetime(now.year, 1, 1, tzinfo=tz)
        previous_start = datetime(now.year - 1, 1, 1, tzinfo=tz)
    else:
        raise ValueError(f"Unknown comparison mode: {mode}")

    previous_end = _end_of_day(current_start - timedelta(days=1))
    return PeriodRange(current_start, now), PeriodRange(previous_start, previous_end)


def calculate_change(current: float, previous: float) -> MetricChange:
    """
    Change of a metric against the previous period.

    With a zero baseline the change is reported as the raw value with 100%
    (or 0% when both are zero) instead of an infinite percentage.
    """
    if previous == 0:
        return MetricChange(
            value=current,
            percentage=100.0 if current > 0 else 0.0,
            trend="up" if current > 0 else "neutral",
        )

    diff = current - previous
    return MetricChange(
        value=diff,
        percentage=round_half_up(diff / previous * 100, 1),
        trend="up" if diff > 0 else "down" if diff < 0 else "neutral",
    )
