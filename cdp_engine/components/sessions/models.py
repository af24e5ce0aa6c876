"""
Sessions component models.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from cdp_engine.core.entities import Event

DEFAULT_PAGEVIEW_EVENT_TYPES: frozenset[str] = frozenset({"pageview", "page_view"})
DEFAULT_CONVERSION_EVENT_TYPES: frozenset[str] = frozenset(
    {"form_submit", "purchase", "sign_up", "lead_form"}
)


# --- Configuration ---


@dataclass(frozen=True)
class SessionConfig:
    """Session reconstruction configuration."""

    # The pixel has emitted both spellings over time
    pageview_event_types: frozenset[str] = DEFAULT_PAGEVIEW_EVENT_TYPES
    conversion_event_types: frozenset[str] = DEFAULT_CONVERSION_EVENT_TYPES


DEFAULT_CONFIG = SessionConfig()


# --- Session Model ---


@dataclass(frozen=True)
class Session:
    """
    Session derived from the events sharing one session id.

    Invariants:
    - entry_event / exit_event are the first / last event in stable timestamp order
    - duration_seconds == exit.timestamp - entry.timestamp (0 for a single event)
    - entry_page / exit_page are None when the session has no pageview with a URL
    """

    session_id: str
    site_id: str
    visitor_id: str
    entry_event: Event
    exit_event: Event
    event_count: int
    pageview_count: int
    duration_seconds: float
    converted: bool
    entry_page: str | None = None
    exit_page: str | None = None
    events: tuple[Event, ...] = field(default_factory=tuple, repr=False)


# --- Summaries ---


@dataclass(frozen=True)
class SessionSummary:
    """Window-level session metrics."""

    total_sessions: int
    converted_sessions: int
    conversion_rate: float
    avg_session_duration: int
    avg_pageviews_per_session: float
    bounce_rate: float


@dataclass(frozen=True)
class PageCount:
    """Number of sessions that entered or exited on a page."""

    page_url: str
    sessions: int


@dataclass(frozen=True)
class EntryExitTally:
    """Entry and exit page counts, each ordered by sessions desc then URL."""

    entry: tuple[PageCount, ...]
    exit: tuple[PageCount, ...]
