"""
SQLite event store adapter.

Implements ``EventStorePort`` on SQLite with Postgres-compatible SQL: bound
parameters only, no string-built predicates. Timestamps are stored as UTC
ISO-8601 text with microseconds so text comparison orders them correctly.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from cdp_engine.core.entities import Event
from cdp_engine.core.errors import (
    DataUnavailableError,
    EventBudgetExceededError,
    FetchTimeoutError,
)
from cdp_engine.core.ports.events import EventQuery

logger = logging.getLogger(__name__)

# SQLite VM instructions between deadline checks
PROGRESS_INTERVAL = 1000

EVENT_COLUMNS = (
    "id",
    "site_id",
    "visitor_id",
    "session_id",
    "event_type",
    "timestamp",
    "page_url",
    "page_title",
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_term",
    "utm_content",
    "country",
    "city",
    "device_type",
    "browser",
    "os",
    "properties",
)

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def format_ts(value: datetime) -> str:
    """Canonical stored form of a timestamp."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def build_event_query(query: EventQuery) -> tuple[str, list[Any]]:
    """Build the SELECT for an EventQuery; returns (sql, params)."""
    clauses = ["site_id = ?"]
    params: list[Any] = [query.site_id]

    if query.date_from is not None:
        clauses.append("timestamp >= ?")
        params.append(format_ts(query.date_from))
    if query.date_to is not None:
        clauses.append("timestamp <= ?")
        params.append(format_ts(query.date_to))
    if query.country is not None:
        clauses.append("country = ?")
        params.append(query.country)
    if query.device_type is not None:
        clauses.append("device_type = ?")
        params.append(query.device_type)
    if query.event_type is not None:
        clauses.append("event_type = ?")
        params.append(query.event_type)

    sql = (
        f"SELECT {', '.join(EVENT_COLUMNS)} FROM events "
        f"WHERE {' AND '.join(clauses)} "
        "ORDER BY timestamp, rowid"
    )
    if query.max_events is not None:
        # One extra row tells an exactly-full window from an overflowing one
        sql += " LIMIT ?"
        params.append(query.max_events + 1)
    return sql, params


# -----------------------------------------------------------------------------
# Base SQLite Repository
# -----------------------------------------------------------------------------


class SQLiteRepoBase:
    """Base class for SQLite repositories."""

    def __init__(self, db_path: str, connection: sqlite3.Connection | None = None):
        self.db_path = db_path
        self._external_conn = connection

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn

        return sqlite3.connect(self.db_path)

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None


# -----------------------------------------------------------------------------
# Event Store
# -----------------------------------------------------------------------------


class SQLiteEventStore(SQLiteRepoBase):
    """SQLite implementation of EventStorePort."""

    def fetch_events(self, query: EventQuery) -> list[Event]:
        sql, params = build_event_query(query)
        started = time.monotonic()
        deadline = started + query.timeout_seconds if query.timeout_seconds is not None else None

        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            logger.exception("Event store connection failed for site %s", query.site_id)
            raise DataUnavailableError(f"Event store unavailable: {e}") from e

        try:
            if deadline is not None:
                conn.set_progress_handler(lambda: int(time.monotonic() > deadline), PROGRESS_INTERVAL)
            cursor = conn.cursor()
            cursor.row_factory = dict_factory
            rows = cursor.execute(sql, params).fetchall()
        except sqlite3.OperationalError as e:
            if deadline is not None and time.monotonic() > deadline:
                logger.warning(
                    "Event fetch for site %s exceeded %ss deadline", query.site_id, query.timeout_seconds
                )
                raise FetchTimeoutError(query.timeout_seconds or 0) from e
            logger.exception("Event fetch failed for site %s", query.site_id)
            raise DataUnavailableError(f"Event store query failed: {e}") from e
        except sqlite3.Error as e:
            logger.exception("Event fetch failed for site %s", query.site_id)
            raise DataUnavailableError(f"Event store query failed: {e}") from e
        finally:
            if deadline is not None:
                conn.set_progress_handler(None, 0)
            if self._should_close():
                conn.close()

        if query.max_events is not None and len(rows) > query.max_events:
            logger.warning(
                "Event window for site %s exceeds budget of %d events", query.site_id, query.max_events
            )
            raise EventBudgetExceededError(query.max_events)

        events = [self._map_row(r) for r in rows]
        logger.debug(
            "Fetched %d events for site %s in %.3fs",
            len(events),
            query.site_id,
            time.monotonic() - started,
        )
        return events

    def add_events(self, events: Iterable[Event]) -> int:
        """Insert events, ignoring ids already stored; returns rows inserted."""
        placeholders = ", ".join("?" for _ in EVENT_COLUMNS)
        sql = f"INSERT OR IGNORE INTO events ({', '.join(EVENT_COLUMNS)}) VALUES ({placeholders})"

        conn = self._get_conn()
        try:
            before = conn.total_changes
            conn.executemany(sql, [self._to_row(e) for e in events])
            if self._should_close():
                conn.commit()
            return conn.total_changes - before
        finally:
            if self._should_close():
                conn.close()

    def _to_row(self, event: Event) -> tuple[Any, ...]:
        return (
            event.id,
            event.site_id,
            event.visitor_id,
            event.session_id,
            event.event_type,
            format_ts(event.timestamp),
            event.page_url,
            event.page_title,
            event.utm_source,
            event.utm_medium,
            event.utm_campaign,
            event.utm_term,
            event.utm_content,
            event.country,
            event.city,
            event.device_type,
            event.browser,
            event.os,
            json.dumps(event.properties, sort_keys=True),
        )

    def _map_row(self, row: dict[str, Any]) -> Event:
        data = dict(row)
        raw_properties = data.pop("properties") or "{}"
        try:
            properties = json.loads(raw_properties)
        except json.JSONDecodeError:
            logger.warning("Event %s has unparseable properties; treating as empty", data["id"])
            properties = {}
        if not isinstance(properties, dict):
            properties = {}
        data["timestamp"] = datetime.fromisoformat(data["timestamp"])
        return Event(**data, properties=properties)
