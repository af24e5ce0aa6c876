"""
Unit tests for Funnels component.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from cdp_engine.core.entities import Event
from cdp_engine.core.errors import DataUnavailableError
from cdp_engine.core.ports.events import EventQuery, FetchBudget

from .._match import like_to_regex, url_matches
from ..component import analyze, run_analyze_funnel, step_matches, validate_steps
from ..models import AnalyzeFunnelInput, FunnelConfig, FunnelStep

T0 = datetime(2024, 3, 1, 9, 0, 0, tzinfo=UTC)

PAGEVIEW_THEN_SUBMIT = (
    FunnelStep(kind="event", match_value="pageview", name="Visit"),
    FunnelStep(kind="event", match_value="form_submit", name="Submit"),
)


def make_event(
    event_id: str,
    visitor_id: str,
    offset_seconds: int,
    event_type: str = "pageview",
    **overrides: Any,
) -> Event:
    data: dict[str, Any] = {
        "id": event_id,
        "site_id": "site-1",
        "visitor_id": visitor_id,
        "session_id": f"s-{visitor_id}",
        "event_type": event_type,
        "timestamp": T0 + timedelta(seconds=offset_seconds),
    }
    data.update(overrides)
    return Event(**data)


class RecordingStore:
    """Event store double that records the queries it receives."""

    def __init__(self, events: list[Event] | None = None, error: Exception | None = None) -> None:
        self.events = events or []
        self.error = error
        self.queries: list[EventQuery] = []

    def fetch_events(self, query: EventQuery) -> list[Event]:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return list(self.events)


# --- Analysis ---


class TestAnalyze:
    """Funnel state machine over an event window."""

    def test_six_enter_three_convert(self) -> None:
        events: list[Event] = []
        for n in range(10):
            visitor = f"v{n}"
            if n < 6:
                events.append(make_event(f"p{n}", visitor, n * 10))
            else:
                events.append(make_event(f"i{n}", visitor, n * 10, "identify"))
            if n < 3:
                events.append(make_event(f"f{n}", visitor, n * 10 + 40, "form_submit"))

        analysis = analyze(PAGEVIEW_THEN_SUBMIT, events)

        assert [s.total_visitors for s in analysis.steps] == [6, 3]
        assert analysis.steps[1].conversion_rate == 50.0
        assert analysis.steps[1].dropoff_from_previous == 3
        assert analysis.steps[1].dropoff_rate == 50.0
        assert analysis.steps[1].avg_time_to_convert == 40
        assert analysis.overall.total_entries == 6
        assert analysis.overall.total_completions == 3
        assert analysis.overall.overall_conversion_rate == 50.0
        assert analysis.overall.avg_total_time_to_convert == 40

    def test_step_zero_rate(self) -> None:
        analysis = analyze(PAGEVIEW_THEN_SUBMIT, [make_event("e1", "a", 0)])

        first = analysis.steps[0]
        assert first.conversion_rate == 100.0
        assert first.dropoff_from_previous == 0
        assert first.step_name == "Visit"

    def test_empty_window_is_all_zero(self) -> None:
        analysis = analyze(PAGEVIEW_THEN_SUBMIT, [])

        assert [s.total_visitors for s in analysis.steps] == [0, 0]
        assert analysis.steps[0].conversion_rate == 0.0
        assert analysis.steps[1].conversion_rate == 0.0
        assert analysis.overall.overall_conversion_rate == 0.0

    def test_out_of_order_steps_do_not_count(self) -> None:
        events = [
            make_event("f", "a", 0, "form_submit"),
            make_event("p", "a", 60),
        ]

        analysis = analyze(PAGEVIEW_THEN_SUBMIT, events)

        assert [s.total_visitors for s in analysis.steps] == [1, 0]

    def test_one_event_satisfies_one_step(self) -> None:
        steps = (
            FunnelStep(kind="event", match_value="pageview"),
            FunnelStep(kind="event", match_value="pageview"),
        )

        single = analyze(steps, [make_event("p1", "a", 0)])
        double = analyze(steps, [make_event("p1", "a", 0), make_event("p2", "a", 5)])

        assert [s.total_visitors for s in single.steps] == [1, 0]
        assert [s.total_visitors for s in double.steps] == [1, 1]

    def test_visitor_not_entering_is_excluded(self) -> None:
        events = [make_event("f", "a", 0, "form_submit")]

        analysis = analyze(PAGEVIEW_THEN_SUBMIT, events)

        assert analysis.overall.total_entries == 0

    def test_step_name_defaults_to_value(self) -> None:
        steps = (
            FunnelStep(kind="url", match_value="/pricing%"),
            FunnelStep(kind="event", match_value="purchase"),
        )

        analysis = analyze(steps, [])

        assert analysis.steps[0].step_name == "/pricing%"
        assert analysis.steps[0].step_type == "url"

    def test_monotonic_three_steps(self) -> None:
        steps = (
            FunnelStep(kind="url", match_value="/"),
            FunnelStep(kind="url", match_value="/pricing"),
            FunnelStep(kind="event", match_value="purchase"),
        )
        events = [
            make_event("a1", "a", 0, page_url="/"),
            make_event("a2", "a", 10, page_url="/pricing"),
            make_event("a3", "a", 20, "purchase"),
            make_event("b1", "b", 0, page_url="/"),
            make_event("b2", "b", 30, page_url="/pricing"),
            make_event("c1", "c", 0, page_url="/"),
        ]

        analysis = analyze(steps, events)

        assert [s.total_visitors for s in analysis.steps] == [3, 2, 1]
        assert analysis.steps[1].avg_time_to_convert == 20
        assert analysis.overall.avg_total_time_to_convert == 20


# --- URL Matching ---


class TestUrlMatching:
    """LIKE and literal URL matching."""

    def test_like_wildcards(self) -> None:
        assert like_to_regex("/pricing%").fullmatch("/pricing/pro")
        assert like_to_regex("/p_ge").fullmatch("/page")
        assert not like_to_regex("/p_ge").fullmatch("/pge")

    def test_like_escape(self) -> None:
        assert like_to_regex(r"/a\_b").fullmatch("/a_b")
        assert not like_to_regex(r"/a\_b").fullmatch("/axb")
        assert like_to_regex(r"100\%").fullmatch("100%")

    def test_like_is_case_sensitive(self) -> None:
        assert not url_matches("/Pricing", "/pricing", "like")

    def test_path_patterns_ignore_host_and_query(self) -> None:
        assert url_matches("https://shop.example.com/pricing?plan=pro", "/pricing", "like")

    def test_full_url_patterns(self) -> None:
        url = "https://shop.example.com/checkout?step=2"

        assert url_matches(url, "%checkout%", "like")
        assert url_matches(url, "https://shop.example.com/", "prefix")
        assert url_matches(url, "step=2", "contains")
        assert not url_matches(url, "https://shop.example.com/checkout", "exact")

    def test_exact_on_path(self) -> None:
        assert url_matches("https://x.io/thanks", "/thanks", "exact")
        assert not url_matches("https://x.io/thanks/more", "/thanks", "exact")

    def test_missing_or_malformed_url(self) -> None:
        assert not url_matches(None, "/a", "like")
        assert not url_matches("http://[::1/a", "/a", "like")

    def test_default_mode_from_config(self) -> None:
        step = FunnelStep(kind="url", match_value="/blog")
        event = make_event("e1", "a", 0, page_url="/blog/post-1")

        assert not step_matches(step, event)
        assert step_matches(step, event, FunnelConfig(default_url_match="prefix"))


# --- Validation ---


class TestValidation:
    """Funnel definition validation."""

    def test_too_few_steps(self) -> None:
        errors = validate_steps([FunnelStep(kind="event", match_value="pageview")])

        assert [e.code for e in errors] == ["too_few_steps"]

    def test_blank_value(self) -> None:
        errors = validate_steps(
            [FunnelStep(kind="event", match_value="pageview"), FunnelStep(kind="event", match_value=" ")]
        )

        assert errors[0].code == "blank_match_value"
        assert errors[0].field_name == "steps[1].match_value"

    def test_unknown_kind_and_mode(self) -> None:
        errors = validate_steps(
            [
                FunnelStep(kind="click", match_value="x"),
                FunnelStep(kind="url", match_value="/a", url_match="regex"),
            ]
        )

        assert {e.code for e in errors} == {"unknown_step_kind", "unknown_url_match"}

    def test_valid_definition(self) -> None:
        assert validate_steps(PAGEVIEW_THEN_SUBMIT) == []


# --- Entry Point ---


class TestRunAnalyzeFunnel:
    """run_analyze_funnel wiring."""

    def test_invalid_input_does_not_fetch(self) -> None:
        store = RecordingStore()

        result = run_analyze_funnel(
            AnalyzeFunnelInput(site_id="", steps=PAGEVIEW_THEN_SUBMIT[:1]),
            event_store=store,
        )

        assert result.success is False
        assert result.analysis is None
        assert {e.code for e in result.errors} == {"missing_site_id", "too_few_steps"}
        assert store.queries == []

    def test_query_carries_window_and_budget(self) -> None:
        store = RecordingStore([make_event("p", "a", 0)])
        date_to = T0 + timedelta(days=1)

        result = run_analyze_funnel(
            AnalyzeFunnelInput(
                site_id="site-1", steps=PAGEVIEW_THEN_SUBMIT, date_from=T0, date_to=date_to, name="Signup"
            ),
            event_store=store,
            budget=FetchBudget(max_events=50, timeout_seconds=2.0),
        )

        assert result.success is True
        assert result.name == "Signup"
        assert result.events_fetched == 1
        query = store.queries[0]
        assert query.site_id == "site-1"
        assert query.date_from == T0
        assert query.date_to == date_to
        assert query.max_events == 50
        assert query.timeout_seconds == 2.0

    def test_store_failure_propagates(self) -> None:
        store = RecordingStore(error=DataUnavailableError("db down"))

        with pytest.raises(DataUnavailableError):
            run_analyze_funnel(
                AnalyzeFunnelInput(site_id="site-1", steps=PAGEVIEW_THEN_SUBMIT),
                event_store=store,
            )
