"""
Cohorts component - Retention matrices.

Visitors are bucketed by their first-seen (or first-conversion) day and
measured for activity at fixed day offsets from the start of their bucket.

Key behaviors:
- Buckets are UTC calendar days, ISO weeks starting Monday, or calendar months
- Retention at offset N counts cohort visitors active on the exact UTC day
  period_start + N; activity on other days does not count
- Rows are returned most recent first; ``limit`` caps rows only

Invariants:
- Bucketing partitions visitors: cohort sizes sum to the distinct visitor count
- retention_rate in [0, 100], one decimal, 0 for an empty cohort
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Set
from datetime import date, timedelta

from cdp_engine.core.entities import Event
from cdp_engine.core.metrics import safe_rate
from cdp_engine.core.ports.events import DEFAULT_BUDGET, EventStorePort, FetchBudget

from .models import (
    DATE_FIELDS,
    DEFAULT_CONFIG,
    INTERVAL_TYPES,
    AnalyzeCohortInput,
    CohortAnalysis,
    CohortAnalysisOutput,
    CohortConfig,
    CohortDefinition,
    CohortGroup,
    CohortValidationError,
    RetentionPoint,
    VisitorDates,
)

# --- Validation ---


def validate_definition(definition: CohortDefinition) -> list[CohortValidationError]:
    """Validate a cohort definition; returns an empty list when valid."""
    errors: list[CohortValidationError] = []

    if definition.interval_type not in INTERVAL_TYPES:
        errors.append(
            CohortValidationError(
                code="unknown_interval",
                message=f"Unknown interval type: {definition.interval_type}",
                field_name="interval_type",
            )
        )

    if definition.date_field not in DATE_FIELDS:
        errors.append(
            CohortValidationError(
                code="unknown_date_field",
                message=f"Unknown date field: {definition.date_field}",
                field_name="date_field",
            )
        )

    if definition.retention_periods is not None and any(
        period < 0 for period in definition.retention_periods
    ):
        errors.append(
            CohortValidationError(
                code="negative_retention_period",
                message="Retention periods must be zero or positive day offsets",
                field_name="retention_periods",
            )
        )

    return errors


# --- Bucketing ---


def cohort_period_start(day: date, interval_type: str) -> date:
    """First day of the bucket containing ``day``."""
    if interval_type == "daily":
        return day
    if interval_type == "weekly":
        return day - timedelta(days=day.weekday())
    if interval_type == "monthly":
        return day.replace(day=1)
    raise ValueError(f"Unknown interval type: {interval_type}")


def cohort_label(period_start: date, interval_type: str) -> str:
    """Display label: YYYY-MM-DD, YYYY-Www (ISO week) or YYYY-MM."""
    if interval_type == "daily":
        return period_start.isoformat()
    if interval_type == "weekly":
        iso = period_start.isocalendar()
        return f"{iso.year}-W{iso.week:02d}"
    if interval_type == "monthly":
        return f"{period_start.year:04d}-{period_start.month:02d}"
    raise ValueError(f"Unknown interval type: {interval_type}")


# --- Pure Functions (Functional Core) ---


def build_visitor_dates(
    events: Iterable[Event],
    date_field: str = "first_seen",
    config: CohortConfig = DEFAULT_CONFIG,
) -> VisitorDates:
    """
    Derive cohort dates and activity days from an event window.

    ``first_seen`` uses the visitor's earliest event day. ``first_conversion``
    uses the earliest conversion day; visitors who never converted are left
    out of the cohorts but keep their activity.
    """
    if date_field not in DATE_FIELDS:
        raise ValueError(f"Unknown date field: {date_field}")

    cohort_dates: dict[str, date] = {}
    activity: dict[str, set[date]] = {}

    for event in events:
        day = event.timestamp.date()
        activity.setdefault(event.visitor_id, set()).add(day)

        if date_field == "first_conversion" and event.event_type not in config.conversion_event_types:
            continue
        current = cohort_dates.get(event.visitor_id)
        if current is None or day < current:
            cohort_dates[event.visitor_id] = day

    return VisitorDates(
        cohort_dates=cohort_dates,
        activity={visitor: frozenset(days) for visitor, days in activity.items()},
    )


def analyze(
    definition: CohortDefinition,
    first_seen: Mapping[str, date],
    activity: Mapping[str, Set[date]],
    *,
    limit: int | None = None,
    config: CohortConfig = DEFAULT_CONFIG,
) -> CohortAnalysis:
    """
    Build the retention matrix for a (validated) definition.

    Args:
        definition: Interval and retention offsets.
        first_seen: Cohort date per visitor.
        activity: Active UTC days per visitor.
        limit: Optional cap on returned rows.
        config: Cohort configuration (default offsets).
    """
    periods = (
        definition.retention_periods
        if definition.retention_periods is not None
        else config.default_retention_periods
    )

    buckets: dict[date, list[str]] = {}
    for visitor_id, day in first_seen.items():
        start = cohort_period_start(day, definition.interval_type)
        buckets.setdefault(start, []).append(visitor_id)

    groups: list[CohortGroup] = []
    for start in sorted(buckets, reverse=True):
        visitors = buckets[start]
        size = len(visitors)
        points = []
        for period in periods:
            target = start + timedelta(days=period)
            returned = sum(1 for v in visitors if target in activity.get(v, ()))
            points.append(
                RetentionPoint(
                    period=period,
                    visitors_returned=returned,
                    retention_rate=safe_rate(returned, size, ndigits=1),
                )
            )
        groups.append(
            CohortGroup(
                cohort_period=cohort_label(start, definition.interval_type),
                period_start=start,
                cohort_size=size,
                retention_data=tuple(points),
            )
        )

    total = len(groups)
    if limit is not None:
        groups = groups[:limit]

    return CohortAnalysis(groups=tuple(groups), total_cohorts=total)


# --- Component Entry Points ---


def run_analyze_cohort(
    inp: AnalyzeCohortInput,
    *,
    event_store: EventStorePort,
    config: CohortConfig | None = None,
    budget: FetchBudget | None = None,
) -> CohortAnalysisOutput:
    """
    Analyze cohort retention over a site's event window.

    Returns:
        CohortAnalysisOutput with the matrix or validation errors.

    Raises:
        DataUnavailableError: The event window could not be fetched.
    """
    config = config or DEFAULT_CONFIG
    budget = budget or DEFAULT_BUDGET

    errors: list[CohortValidationError] = []
    if not inp.site_id or not inp.site_id.strip():
        errors.append(
            CohortValidationError(
                code="missing_site_id",
                message="site_id is required",
                field_name="site_id",
            )
        )
    errors.extend(validate_definition(inp.definition))
    if inp.limit is not None and inp.limit < 1:
        errors.append(
            CohortValidationError(
                code="invalid_limit",
                message="limit must be a positive integer",
                field_name="limit",
            )
        )

    if errors:
        return CohortAnalysisOutput(analysis=None, errors=errors, success=False)

    events = event_store.fetch_events(
        budget.query(inp.site_id, date_from=inp.date_from, date_to=inp.date_to)
    )
    dates = build_visitor_dates(events, inp.definition.date_field, config)

    return CohortAnalysisOutput(
        analysis=analyze(
            inp.definition,
            dates.cohort_dates,
            dates.activity,
            limit=inp.limit,
            config=config,
        ),
        events_fetched=len(events),
    )
