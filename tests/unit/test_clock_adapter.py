"""
Tests for clock adapters.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

from cdp_engine.adapters.clock import FixedClock, SystemClock


class TestSystemClock:
    def test_returns_aware_utc(self) -> None:
        now = SystemClock().now_utc()
        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)


class TestFixedClock:
    def test_naive_instant_is_utc(self) -> None:
        clock = FixedClock(datetime(2024, 5, 1, 12, 0))
        assert clock.now_utc() == datetime(2024, 5, 1, 12, 0, tzinfo=UTC)

    def test_offset_instant_converted(self) -> None:
        clock = FixedClock(datetime(2024, 5, 1, 14, 0, tzinfo=timezone(timedelta(hours=2))))
        assert clock.now_utc() == datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
        assert clock.now_utc().tzinfo == UTC
