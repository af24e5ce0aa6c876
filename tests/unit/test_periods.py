"""
Tests for period-over-period date ranges and metric changes.
"""

from __future__ import annotations

from datetime import UTC, datetime, time, timedelta

import pytest

from cdp_engine.components.reports import calculate_change, calculate_date_ranges

NOW = datetime(2024, 5, 15, 12, 30, tzinfo=UTC)


class TestCalculateDateRanges:
    def test_week_over_week(self) -> None:
        current, previous = calculate_date_ranges("wow", NOW)
        assert current.date_from == NOW - timedelta(days=7)
        assert current.date_to == NOW
        assert previous.date_from == NOW - timedelta(days=14)
        assert previous.date_to == NOW - timedelta(days=7)

    def test_month_over_month(self) -> None:
        current, previous = calculate_date_ranges("mom", NOW)
        assert current.date_from == datetime(2024, 5, 1, tzinfo=UTC)
        assert previous.date_from == datetime(2024, 4, 1, tzinfo=UTC)
        assert previous.date_to == datetime.combine(datetime(2024, 4, 30), time.max, tzinfo=UTC)

    def test_month_over_month_in_january(self) -> None:
        _, previous = calculate_date_ranges("mom", datetime(2024, 1, 10, tzinfo=UTC))
        assert previous.date_from == datetime(2023, 12, 1, tzinfo=UTC)
        assert previous.date_to.date() == datetime(2023, 12, 31).date()

    def test_quarter_over_quarter(self) -> None:
        current, previous = calculate_date_ranges("qoq", NOW)
        assert current.date_from == datetime(2024, 4, 1, tzinfo=UTC)
        assert previous.date_from == datetime(2024, 1, 1, tzinfo=UTC)
        assert previous.date_to.date() == datetime(2024, 3, 31).date()

    def test_first_quarter_compares_with_last_year(self) -> None:
        _, previous = calculate_date_ranges("qoq", datetime(2024, 2, 1, tzinfo=UTC))
        assert previous.date_from == datetime(2023, 10, 1, tzinfo=UTC)

    def test_year_over_year(self) -> None:
        current, previous = calculate_date_ranges("yoy", NOW)
        assert current.date_from == datetime(2024, 1, 1, tzinfo=UTC)
        assert previous.date_from == datetime(2023, 1, 1, tzinfo=UTC)
        assert previous.date_to.date() == datetime(2023, 12, 31).date()

    def test_custom_range_and_equal_length_baseline(self) -> None:
        start = datetime(2024, 3, 10, tzinfo=UTC)
        end = datetime(2024, 3, 20, tzinfo=UTC)
        current, previous = calculate_date_ranges("custom", NOW, start, end)
        assert (current.date_from, current.date_to) == (start, end)
        assert previous.date_to == start
        assert previous.date_to - previous.date_from == end - start

    def test_custom_requires_both_dates(self) -> None:
        with pytest.raises(ValueError):
            calculate_date_ranges("custom", NOW, datetime(2024, 3, 1, tzinfo=UTC))

    def test_custom_rejects_inverted_range(self) -> None:
        with pytest.raises(ValueError):
            calculate_date_ranges(
                "custom", NOW, datetime(2024, 3, 2, tzinfo=UTC), datetime(2024, 3, 1, tzinfo=UTC)
            )

    def test_unknown_mode(self) -> None:
        with pytest.raises(ValueError, match="Unknown comparison mode"):
            calculate_date_ranges("dod", NOW)


class TestCalculateChange:
    def test_growth(self) -> None:
        change = calculate_change(150, 100)
        assert (change.value, change.percentage, change.trend) == (50, 50.0, "up")

    def test_decline(self) -> None:
        change = calculate_change(2, 3)
        assert change.value == -1
        assert change.percentage == -33.3
        assert change.trend == "down"

    def test_unchanged(self) -> None:
        assert calculate_change(7, 7).trend == "neutral"

    def test_zero_baseline_reports_raw_value(self) -> None:
        change = calculate_change(12, 0)
        assert (change.value, change.percentage, change.trend) == (12, 100.0, "up")

    def test_zero_to_zero(self) -> None:
        change = calculate_change(0, 0)
        assert (change.percentage, change.trend) == (0.0, "neutral")
