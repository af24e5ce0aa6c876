"""
Cohorts component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Literal

from cdp_engine.components.sessions.models import DEFAULT_CONVERSION_EVENT_TYPES

# --- Validation Error ---


@dataclass(frozen=True)
class CohortValidationError:
    """Cohort validation error."""

    code: str
    message: str
    field_name: str | None = None


# --- Enums ---


IntervalType = Literal["daily", "weekly", "monthly"]
DateField = Literal["first_seen", "first_conversion"]

INTERVAL_TYPES: frozenset[str] = frozenset({"daily", "weekly", "monthly"})
DATE_FIELDS: frozenset[str] = frozenset({"first_seen", "first_conversion"})


# --- Configuration ---


@dataclass(frozen=True)
class CohortConfig:
    """Cohort engine configuration."""

    default_retention_periods: tuple[int, ...] = (1, 7, 14, 30, 60, 90)
    conversion_event_types: frozenset[str] = DEFAULT_CONVERSION_EVENT_TYPES


DEFAULT_CONFIG = CohortConfig()


# --- Definition ---


@dataclass(frozen=True)
class CohortDefinition:
    """
    How visitors are bucketed and which day offsets are measured.

    ``retention_periods`` None means the configured defaults.
    """

    interval_type: str = "weekly"
    retention_periods: tuple[int, ...] | None = None
    date_field: str = "first_seen"


@dataclass(frozen=True)
class VisitorDates:
    """Per-visitor cohort date and set of active UTC days."""

    cohort_dates: dict[str, date]
    activity: dict[str, frozenset[date]]


# --- Results ---


@dataclass(frozen=True)
class RetentionPoint:
    """Retention of one cohort at one day offset."""

    period: int
    visitors_returned: int
    retention_rate: float


@dataclass(frozen=True)
class CohortGroup:
    """One cohort row."""

    cohort_period: str
    period_start: date
    cohort_size: int
    retention_data: tuple[RetentionPoint, ...]


@dataclass(frozen=True)
class CohortAnalysis:
    """Cohort rows, most recent first, with the unfiltered cohort count."""

    groups: tuple[CohortGroup, ...]
    total_cohorts: int


# --- Input Models ---


@dataclass(frozen=True)
class AnalyzeCohortInput:
    """Input for analyzing cohort retention over a site's event window."""

    site_id: str
    definition: CohortDefinition = field(default_factory=CohortDefinition)
    date_from: datetime | None = None
    date_to: datetime | None = None
    limit: int | None = None


# --- Output Models ---


@dataclass(frozen=True)
class CohortAnalysisOutput:
    """Output for cohort analysis."""

    analysis: CohortAnalysis | None
    events_fetched: int = 0
    errors: list[CohortValidationError] = field(default_factory=list)
    success: bool = True
