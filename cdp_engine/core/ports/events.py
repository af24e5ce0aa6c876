"""
Event store port.

The engine needs one capability from storage: the ordered event window of a
site, optionally narrowed by raw event columns. Adapters own concurrency and
must fail loudly (``DataUnavailableError``) rather than return a partial window.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from cdp_engine.core.entities import Event


@dataclass(frozen=True)
class EventQuery:
    """
    Window request for a single site.

    ``date_from`` and ``date_to`` are inclusive. ``max_events`` is a row budget:
    a window larger than the budget is an error, never a truncated result.
    """

    site_id: str
    date_from: datetime | None = None
    date_to: datetime | None = None
    country: str | None = None
    device_type: str | None = None
    event_type: str | None = None
    max_events: int | None = None
    timeout_seconds: float | None = None


class EventStorePort(Protocol):
    """Read-only event store interface."""

    def fetch_events(self, query: EventQuery) -> list[Event]:
        """
        Return the site's events matching the query in timestamp order.

        Equal timestamps keep insertion order.

        Raises:
            DataUnavailableError: store failure, budget exceeded or deadline hit.
        """
        ...


@dataclass(frozen=True)
class FetchBudget:
    """Row budget and deadline applied to every window fetch."""

    max_events: int | None = 200_000
    timeout_seconds: float | None = 30.0

    def query(self, site_id: str, **filters: object) -> EventQuery:
        """Build an EventQuery for ``site_id`` carrying this budget."""
        return EventQuery(
            site_id=site_id,
            max_events=self.max_events,
            timeout_seconds=self.timeout_seconds,
            **filters,  # type: ignore[arg-type]
        )


DEFAULT_BUDGET = FetchBudget()
