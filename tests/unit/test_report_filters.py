"""
Tests for report filter normalization and application.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from cdp_engine.components.attribution import create_attribution_service
from cdp_engine.components.reports import ReportFilters, apply_filters, normalize_filters
from cdp_engine.components.reports._filters import store_filters


class TestNormalizeFilters:
    def test_blank_strings_dropped(self) -> None:
        filters = normalize_filters(ReportFilters(source="  ", medium=" cpc ", country=""))
        assert filters.source is None
        assert filters.medium == "cpc"
        assert filters.country is None

    def test_naive_dates_become_utc(self) -> None:
        filters = normalize_filters(ReportFilters(date_from=datetime(2024, 1, 1)))
        assert filters.date_from == datetime(2024, 1, 1, tzinfo=UTC)

    def test_store_filters_exclude_attribution(self) -> None:
        """Source, medium and campaign are never pushed to the store."""
        pushed = store_filters(ReportFilters(source="google", country="DE"))
        assert pushed["country"] == "DE"
        assert "source" not in pushed
        assert "campaign" not in pushed


class TestApplyFilters:
    """In-memory conjunction over raw columns and resolved attribution."""

    def test_source_filter_uses_resolved_attribution(self, make_event) -> None:
        events = [
            make_event(utm_source="google", utm_medium="cpc"),
            make_event(page_url="https://shop.test/?gclid=abc"),
            make_event(utm_source="newsletter", utm_medium="email"),
            make_event(),
        ]
        window = apply_filters(events, ReportFilters(source="google"), create_attribution_service())

        assert len(window.events) == 2
        assert window.events_fetched == 4
        assert window.filtered_out == 2
        assert all(a.source == "google" for a in window.attributions)

    def test_direct_traffic_filter(self, make_event) -> None:
        events = [make_event(), make_event(utm_source="google")]
        window = apply_filters(events, ReportFilters(source="direct"), create_attribution_service())
        assert [a.medium for a in window.attributions] == ["none"]

    def test_conjunction_of_filters(self, make_event, t0) -> None:
        events = [
            make_event(utm_source="google", utm_campaign="spring", country="DE"),
            make_event(utm_source="google", utm_campaign="spring", country="US"),
            make_event(utm_source="google", utm_campaign="autumn", country="DE"),
            make_event(
                utm_source="google", utm_campaign="spring", country="DE", offset_seconds=86400
            ),
        ]
        filters = ReportFilters(
            campaign="spring",
            country="DE",
            date_to=t0 + timedelta(hours=1),
        )
        window = apply_filters(events, filters, create_attribution_service())

        assert [e.id for e in window.events] == [events[0].id]

    def test_attributions_stay_aligned(self, make_event) -> None:
        events = [make_event(utm_source="a"), make_event(utm_source="b"), make_event(utm_source="c")]
        window = apply_filters(events, ReportFilters(), create_attribution_service())
        assert [a.source for a in window.attributions] == ["a", "b", "c"]
