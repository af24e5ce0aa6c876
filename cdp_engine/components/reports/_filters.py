"""
Report filter application.

Raw-column filters are pushed down to the store to keep windows inside the
row budget, then every filter is applied again in memory. The second pass is
the one that counts: attribution filters can only be evaluated here, and the
diagnostics report what it removed.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from cdp_engine.components.attribution import Attribution, AttributionService
from cdp_engine.core.entities import Event, ensure_utc

from .models import ReportFilters


@dataclass(frozen=True)
class FilteredWindow:
    """Events kept by the filters, with their attributions aligned."""

    events: tuple[Event, ...]
    attributions: tuple[Attribution, ...]
    events_fetched: int

    @property
    def filtered_out(self) -> int:
        return self.events_fetched - len(self.events)


def normalize_filters(filters: ReportFilters) -> ReportFilters:
    """Return filters with UTC dates and blank strings dropped."""

    def clean(value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    return ReportFilters(
        date_from=ensure_utc(filters.date_from) if filters.date_from else None,
        date_to=ensure_utc(filters.date_to) if filters.date_to else None,
        source=clean(filters.source),
        medium=clean(filters.medium),
        campaign=clean(filters.campaign),
        country=clean(filters.country),
        device_type=clean(filters.device_type),
        event_type=clean(filters.event_type),
    )


def store_filters(filters: ReportFilters) -> dict[str, Any]:
    """EventQuery keyword arguments for the filters the store understands."""
    return {
        "date_from": filters.date_from,
        "date_to": filters.date_to,
        "country": filters.country,
        "device_type": filters.device_type,
        "event_type": filters.event_type,
    }


def event_matches(event: Event, attribution: Attribution, filters: ReportFilters) -> bool:
    """Check one event against every filter (conjunction)."""
    if filters.date_from is not None and event.timestamp < filters.date_from:
        return False
    if filters.date_to is not None and event.timestamp > filters.date_to:
        return False
    if filters.country is not None and event.country != filters.country:
        return False
    if filters.device_type is not None and event.device_type != filters.device_type:
        return False
    if filters.event_type is not None and event.event_type != filters.event_type:
        return False
    if filters.source is not None and attribution.source != filters.source:
        return False
    if filters.medium is not None and attribution.medium != filters.medium:
        return False
    if filters.campaign is not None and attribution.campaign != filters.campaign:
        return False
    return True


def apply_filters(
    events: Iterable[Event],
    filters: ReportFilters,
    attribution: AttributionService,
) -> FilteredWindow:
    """Resolve attribution for each event and keep the matching ones."""
    fetched = list(events)
    kept: list[Event] = []
    kept_attributions: list[Attribution] = []

    for event in fetched:
        resolved = attribution.resolve(event)
        if event_matches(event, resolved, filters):
            kept.append(event)
            kept_attributions.append(resolved)

    return FilteredWindow(
        events=tuple(kept),
        attributions=tuple(kept_attributions),
        events_fetched=len(fetched),
    )
