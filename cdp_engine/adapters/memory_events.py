"""
In-memory event store.

Used by tests and by the CLI for JSON event files. Applies the same ordering,
row budget and deadline rules as the SQLite adapter.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable

from cdp_engine.core.entities import Event, ensure_utc
from cdp_engine.core.errors import EventBudgetExceededError, FetchTimeoutError
from cdp_engine.core.ports.events import EventQuery

logger = logging.getLogger(__name__)


def matches_query(event: Event, query: EventQuery) -> bool:
    if event.site_id != query.site_id:
        return False
    if query.date_from is not None and event.timestamp < ensure_utc(query.date_from):
        return False
    if query.date_to is not None and event.timestamp > ensure_utc(query.date_to):
        return False
    if query.country is not None and event.country != query.country:
        return False
    if query.device_type is not None and event.device_type != query.device_type:
        return False
    if query.event_type is not None and event.event_type != query.event_type:
        return False
    return True


class InMemoryEventStore:
    """In-memory implementation of EventStorePort."""

    def __init__(self, events: Iterable[Event] | None = None) -> None:
        self._events: dict[str, Event] = {}
        if events is not None:
            self.add_events(events)

    def add_events(self, events: Iterable[Event]) -> int:
        """Add events, ignoring ids already stored; returns events added."""
        added = 0
        for event in events:
            if event.id not in self._events:
                self._events[event.id] = event
                added += 1
        return added

    def fetch_events(self, query: EventQuery) -> list[Event]:
        started = time.monotonic()
        matched = [e for e in self._events.values() if matches_query(e, query)]

        if query.timeout_seconds is not None and time.monotonic() - started > query.timeout_seconds:
            logger.warning(
                "Event fetch for site %s exceeded %ss deadline", query.site_id, query.timeout_seconds
            )
            raise FetchTimeoutError(query.timeout_seconds)

        if query.max_events is not None and len(matched) > query.max_events:
            logger.warning(
                "Event window for site %s exceeds budget of %d events", query.site_id, query.max_events
            )
            raise EventBudgetExceededError(query.max_events)

        matched.sort(key=lambda e: e.timestamp)
        logger.debug("Fetched %d events for site %s", len(matched), query.site_id)
        return matched

    def __len__(self) -> int:
        return len(self._events)
