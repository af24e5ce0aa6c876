"""
Tests for the in-memory event store.
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from cdp_engine.adapters.memory_events import InMemoryEventStore
from cdp_engine.components.sessions import reconstruct
from cdp_engine.core.errors import DataUnavailableError, EventBudgetExceededError
from cdp_engine.core.ports import EventQuery, FetchBudget


class TestInMemoryEventStore:
    """Same window semantics as the SQLite store."""

    def test_ties_keep_insertion_order(self, make_event, memory_store: InMemoryEventStore) -> None:
        late = make_event(offset_seconds=60, id="a")
        tie_b = make_event(offset_seconds=0, id="c")
        tie_a = make_event(offset_seconds=0, id="b")
        memory_store.add_events([late, tie_b, tie_a])

        fetched = memory_store.fetch_events(EventQuery(site_id="site-1"))

        assert [e.id for e in fetched] == ["c", "b", "a"]

    def test_tied_landing_page_is_entry_page(self, make_event, memory_store: InMemoryEventStore) -> None:
        memory_store.add_events(
            [
                make_event(id="b", page_url="https://shop.test/landing"),
                make_event(id="a", page_url="https://shop.test/second"),
            ]
        )

        session = reconstruct(memory_store.fetch_events(EventQuery(site_id="site-1")))["s1"]

        assert session.entry_page == "https://shop.test/landing"
        assert session.exit_page == "https://shop.test/second"

    def test_duplicate_ids_ignored(self, make_event, memory_store: InMemoryEventStore) -> None:
        event = make_event(id="dup")
        assert memory_store.add_events([event, event]) == 1
        assert len(memory_store) == 1

    def test_filters_site_and_inclusive_dates(self, make_event, t0) -> None:
        store = InMemoryEventStore(
            [
                make_event(offset_seconds=0),
                make_event(offset_seconds=3600),
                make_event(offset_seconds=7200),
                make_event(offset_seconds=3600, site_id="other"),
            ]
        )
        query = EventQuery(
            site_id="site-1",
            date_from=t0 + timedelta(hours=1),
            date_to=t0 + timedelta(hours=2),
        )
        fetched = store.fetch_events(query)

        assert len(fetched) == 2
        assert all(e.site_id == "site-1" for e in fetched)

    def test_naive_query_dates_are_utc(self, make_event, t0) -> None:
        store = InMemoryEventStore([make_event(offset_seconds=0)])
        query = EventQuery(site_id="site-1", date_from=t0.replace(tzinfo=None))
        assert len(store.fetch_events(query)) == 1

    def test_raw_column_filters(self, make_event) -> None:
        store = InMemoryEventStore(
            [
                make_event(country="DE", device_type="mobile"),
                make_event(country="DE", device_type="desktop"),
                make_event(country="US", device_type="mobile", event_type="purchase"),
            ]
        )
        assert len(store.fetch_events(EventQuery(site_id="site-1", country="DE"))) == 2
        assert len(store.fetch_events(EventQuery(site_id="site-1", device_type="mobile"))) == 2
        assert len(store.fetch_events(EventQuery(site_id="site-1", event_type="purchase"))) == 1

    def test_budget_exceeded_raises(self, make_event) -> None:
        """A window over budget is an error, never a truncated list."""
        store = InMemoryEventStore([make_event() for _ in range(3)])

        with pytest.raises(EventBudgetExceededError) as exc_info:
            store.fetch_events(FetchBudget(max_events=2).query("site-1"))

        assert exc_info.value.limit == 2
        assert isinstance(exc_info.value, DataUnavailableError)
        assert exc_info.value.retryable is True

    def test_exactly_full_budget_is_fine(self, make_event) -> None:
        store = InMemoryEventStore([make_event() for _ in range(2)])
        assert len(store.fetch_events(FetchBudget(max_events=2).query("site-1"))) == 2
