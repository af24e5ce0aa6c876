"""
Domain entities for the analytics engine.

Only raw events are entities here. Attributions, sessions, funnel steps and
cohorts are derived per request by the components and never persisted.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = [
    "Event",
    "ensure_utc",
    "parse_timestamp",
]


def ensure_utc(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC (naive values are treated as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_timestamp(value: str, *, end_of_day: bool = False) -> datetime:
    """
    Parse an ISO datetime or bare date into aware UTC.

    A bare date is the start of that day, or its last instant with
    ``end_of_day`` so an inclusive upper bound covers the whole day.

    Raises:
        ValueError: Not an ISO date or datetime.
    """
    raw = value.strip()
    if len(raw) == 10:
        day = date.fromisoformat(raw)
        return datetime.combine(day, time.max if end_of_day else time.min, tzinfo=UTC)
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(raw))


class Event(BaseModel):
    """
    Raw visitor event as produced by ingestion.

    Invariants:
    - immutable once created
    - timestamp is always aware UTC
    """

    model_config = ConfigDict(frozen=True)

    id: str
    site_id: str
    visitor_id: str
    session_id: str
    event_type: str
    timestamp: datetime
    page_url: str | None = None
    page_title: str | None = None

    # Campaign tagging captured by the pixel
    utm_source: str | None = None
    utm_medium: str | None = None
    utm_campaign: str | None = None
    utm_term: str | None = None
    utm_content: str | None = None

    # Enrichment
    country: str | None = None
    city: str | None = None
    device_type: str | None = None
    browser: str | None = None
    os: str | None = None

    properties: dict[str, Any] = Field(default_factory=dict)

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return ensure_utc(value)
