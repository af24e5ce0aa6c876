"""
Sessions component - Stateless session reconstruction.

Rebuilds sessions from an event window on every request.

Key behaviors:
- Events are ordered by timestamp with a stable sort: equal timestamps keep
  their arrival order, which makes entry/exit ranking deterministic
- One linear pass groups events by session id
- Sessions without pageviews still produce a record (event-only funnels)

Known limitation: a session straddling the window boundary is rebuilt from
its in-window events only. Durations and entry pages of such sessions are
biased; this is reported, not corrected.
"""

from __future__ import annotations

from collections.abc import Iterable

from cdp_engine.core.entities import Event
from cdp_engine.core.metrics import mean, round_half_up, round_seconds, safe_rate

from .models import (
    DEFAULT_CONFIG,
    EntryExitTally,
    PageCount,
    Session,
    SessionConfig,
    SessionSummary,
)

# --- Pure Functions (Functional Core) ---


def order_events(events: Iterable[Event]) -> list[Event]:
    """Return events in stable timestamp order (ties keep input order)."""
    return sorted(events, key=lambda e: e.timestamp)


def is_pageview(event: Event, config: SessionConfig = DEFAULT_CONFIG) -> bool:
    return event.event_type in config.pageview_event_types


def is_conversion(event: Event, config: SessionConfig = DEFAULT_CONFIG) -> bool:
    return event.event_type in config.conversion_event_types


def _build_session(session_id: str, events: list[Event], config: SessionConfig) -> Session:
    entry = events[0]
    exit_ = events[-1]

    pageview_urls = [e.page_url for e in events if is_pageview(e, config) and e.page_url]

    return Session(
        session_id=session_id,
        site_id=entry.site_id,
        visitor_id=entry.visitor_id,
        entry_event=entry,
        exit_event=exit_,
        event_count=len(events),
        pageview_count=sum(1 for e in events if is_pageview(e, config)),
        duration_seconds=(exit_.timestamp - entry.timestamp).total_seconds(),
        converted=any(is_conversion(e, config) for e in events),
        entry_page=pageview_urls[0] if pageview_urls else None,
        exit_page=pageview_urls[-1] if pageview_urls else None,
        events=tuple(events),
    )


def reconstruct(
    events: Iterable[Event],
    config: SessionConfig = DEFAULT_CONFIG,
) -> dict[str, Session]:
    """
    Reconstruct sessions from one site's event window.

    Returns:
        Mapping of session id to Session, in order of each session's
        first event.
    """
    grouped: dict[str, list[Event]] = {}
    for event in order_events(events):
        grouped.setdefault(event.session_id, []).append(event)

    return {
        session_id: _build_session(session_id, session_events, config)
        for session_id, session_events in grouped.items()
    }


def summarize_sessions(sessions: Iterable[Session]) -> SessionSummary:
    """
    Compute window-level session metrics.

    Bounce rate counts sessions with exactly one pageview against all sessions.
    """
    items = list(sessions)
    total = len(items)
    converted = sum(1 for s in items if s.converted)
    bounced = sum(1 for s in items if s.pageview_count == 1)

    return SessionSummary(
        total_sessions=total,
        converted_sessions=converted,
        conversion_rate=safe_rate(converted, total),
        avg_session_duration=round_seconds(mean(s.duration_seconds for s in items)),
        avg_pageviews_per_session=round_half_up(mean(s.pageview_count for s in items), 2),
        bounce_rate=safe_rate(bounced, total),
    )


def _rank_pages(counts: dict[str, int]) -> tuple[PageCount, ...]:
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return tuple(PageCount(page_url=url, sessions=n) for url, n in ranked)


def tally_entry_exit_pages(sessions: Iterable[Session]) -> EntryExitTally:
    """Count sessions per entry page and per exit page."""
    entry: dict[str, int] = {}
    exit_: dict[str, int] = {}

    for session in sessions:
        if session.entry_page is not None:
            entry[session.entry_page] = entry.get(session.entry_page, 0) + 1
        if session.exit_page is not None:
            exit_[session.exit_page] = exit_.get(session.exit_page, 0) + 1

    return EntryExitTally(entry=_rank_pages(entry), exit=_rank_pages(exit_))


def pageview_path(session: Session, config: SessionConfig = DEFAULT_CONFIG) -> list[str]:
    """Ordered page URLs viewed in a session."""
    return [e.page_url for e in session.events if is_pageview(e, config) and e.page_url]
