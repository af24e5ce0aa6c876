"""
Reports component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Literal

from cdp_engine.components.attribution.models import DEFAULT_CONFIG as DEFAULT_ATTRIBUTION_CONFIG
from cdp_engine.components.attribution.models import AttributionConfig
from cdp_engine.components.sessions.models import DEFAULT_CONFIG as DEFAULT_SESSION_CONFIG
from cdp_engine.components.sessions.models import (
    DEFAULT_CONVERSION_EVENT_TYPES,
    SessionConfig,
)

# --- Validation Error ---


@dataclass(frozen=True)
class ReportValidationError:
    """Report validation error."""

    code: str
    message: str
    field_name: str | None = None


# --- Enums ---


ReportType = Literal[
    "traffic_sources",
    "conversions",
    "geographic",
    "devices",
    "forms",
    "overview",
    "entry_exit",
    "journeys",
    "user_behavior",
]

REPORT_TYPES: tuple[str, ...] = (
    "traffic_sources",
    "conversions",
    "geographic",
    "devices",
    "forms",
    "overview",
    "entry_exit",
    "journeys",
    "user_behavior",
)

CompareMode = Literal["wow", "mom", "qoq", "yoy", "custom"]
COMPARE_MODES: tuple[str, ...] = ("wow", "mom", "qoq", "yoy", "custom")

Trend = Literal["up", "down", "neutral"]


# --- Configuration ---


@dataclass(frozen=True)
class RowLimits:
    """Row caps per report."""

    traffic_sources: int = 100
    conversions: int = 500
    geographic: int = 100
    devices: int = 100
    forms: int = 100
    entry_exit: int = 100
    top_pages: int = 50
    journey_flows: int = 50
    journey_paths: int = 20
    journey_pages: int = 10


@dataclass(frozen=True)
class ReportConfig:
    """Report aggregator configuration."""

    row_limits: RowLimits = field(default_factory=RowLimits)
    conversion_report_event_types: frozenset[str] = DEFAULT_CONVERSION_EVENT_TYPES | {"cta_click"}
    form_start_event: str = "form_start"
    form_submit_event: str = "form_submit"
    form_abandon_event: str = "form_abandon"
    compared_event_types: tuple[str, ...] = (
        "form_start",
        "form_submit",
        "purchase",
        "add_to_cart",
        "cart_abandon",
        "sign_up",
        "login",
    )
    unknown_label: str = "Unknown"
    session: SessionConfig = DEFAULT_SESSION_CONFIG
    attribution: AttributionConfig = DEFAULT_ATTRIBUTION_CONFIG


DEFAULT_CONFIG = ReportConfig()


# --- Filters ---


@dataclass(frozen=True)
class ReportFilters:
    """
    Conjunctive filters over the event population.

    source / medium / campaign compare against the resolved attribution;
    the other fields compare against raw event columns. Dates are inclusive.
    """

    date_from: datetime | None = None
    date_to: datetime | None = None
    source: str | None = None
    medium: str | None = None
    campaign: str | None = None
    country: str | None = None
    device_type: str | None = None
    event_type: str | None = None


# --- Diagnostics ---


@dataclass(frozen=True)
class ReportDiagnostics:
    """Counts explaining how a report was produced."""

    events_fetched: int = 0
    total_events_considered: int = 0
    events_filtered_out: int = 0
    pageview_events: int = 0
    events_with_url: int = 0
    total_sessions: int = 0
    event_types: dict[str, int] = field(default_factory=dict)
    sources: dict[str, int] = field(default_factory=dict)
    rows_total: int = 0
    rows_returned: int = 0
    truncated: bool = False


# --- Report Rows ---


@dataclass(frozen=True)
class TrafficSourceRow:
    source: str
    medium: str
    campaign: str
    unique_visitors: int
    sessions: int
    total_events: int
    pageviews: int
    conversions: int
    conversion_rate: float
    avg_session_duration: int


@dataclass(frozen=True)
class ConversionRow:
    event_type: str
    source: str
    medium: str
    conversion_date: date
    conversion_count: int
    unique_converters: int
    converting_sessions: int


@dataclass(frozen=True)
class GeographicRow:
    country: str
    city: str
    unique_visitors: int
    sessions: int
    total_events: int
    conversions: int
    conversion_rate: float


@dataclass(frozen=True)
class DeviceRow:
    device_type: str
    browser: str
    os: str
    unique_visitors: int
    sessions: int
    total_events: int
    conversions: int
    conversion_rate: float


@dataclass(frozen=True)
class FormRow:
    """
    Per-form interaction metrics.

    Rates are visitor based: completion_rate is the share of interacting
    visitors who submitted, abandon_rate the share who abandoned.
    """

    form_id: str
    form_name: str
    starts: int
    submits: int
    abandons: int
    unique_visitors: int
    completion_rate: float
    abandon_rate: float
    avg_time_to_complete: int
    avg_fields_abandoned: float


@dataclass(frozen=True)
class FormTotals:
    total_forms: int
    total_starts: int
    total_submits: int
    total_abandons: int
    overall_completion_rate: float


@dataclass(frozen=True)
class FormsReport:
    forms: tuple[FormRow, ...]
    totals: FormTotals


@dataclass(frozen=True)
class OverviewStats:
    total_visitors: int
    total_sessions: int
    total_events: int
    total_pageviews: int
    total_conversions: int
    conversion_rate: float
    avg_pageviews_per_session: float
    avg_session_duration: int
    bounce_rate: float


@dataclass(frozen=True)
class EntryExitRow:
    """
    Sessions entering or exiting on a page.

    ``unique_sessions`` counts distinct sessions that viewed the page at
    any point, so it is always >= ``sessions``.
    """

    page_type: Literal["entry", "exit"]
    page_url: str
    sessions: int
    unique_sessions: int


@dataclass(frozen=True)
class EntryExitReport:
    entry_pages: tuple[EntryExitRow, ...]
    exit_pages: tuple[EntryExitRow, ...]


@dataclass(frozen=True)
class TopPageRow:
    page_url: str
    page_title: str | None
    pageviews: int
    unique_visitors: int
    sessions: int
    avg_time_on_page: int


@dataclass(frozen=True)
class UserBehaviorReport:
    top_pages: tuple[TopPageRow, ...]
    entry_exit: EntryExitReport


@dataclass(frozen=True)
class JourneyNode:
    name: str
    category: Literal["entry", "conversion", "navigation"]


@dataclass(frozen=True)
class JourneyFlow:
    source: str
    target: str
    value: int


@dataclass(frozen=True)
class JourneyPath:
    path: tuple[str, ...]
    count: int
    percentage: float


@dataclass(frozen=True)
class JourneyPage:
    page: str
    count: int
    percentage: float


@dataclass(frozen=True)
class JourneyStats:
    total_sessions: int
    avg_session_depth: float
    unique_paths: int


@dataclass(frozen=True)
class JourneysReport:
    nodes: tuple[JourneyNode, ...]
    flows: tuple[JourneyFlow, ...]
    common_paths: tuple[JourneyPath, ...]
    top_entry_pages: tuple[JourneyPage, ...]
    top_exit_pages: tuple[JourneyPage, ...]
    stats: JourneyStats


# --- Input Models ---


@dataclass(frozen=True)
class RunReportInput:
    """Input for building one named report."""

    site_id: str
    report_type: str = "overview"
    filters: ReportFilters = field(default_factory=ReportFilters)


@dataclass(frozen=True)
class CompareEntryExitInput:
    """Input for comparing entry/exit pages between two windows."""

    site_id: str
    current: ReportFilters
    comparison: ReportFilters | None = None


@dataclass(frozen=True)
class ComparePeriodsInput:
    """
    Input for comparing overview stats between two periods.

    ``date_from`` / ``date_to`` are required for the ``custom`` mode only.
    """

    site_id: str
    mode: str = "wow"
    date_from: datetime | None = None
    date_to: datetime | None = None
    filters: ReportFilters = field(default_factory=ReportFilters)


# --- Output Models ---


@dataclass(frozen=True)
class ReportOutput:
    """Output for a named report."""

    report_type: str
    filters: ReportFilters
    data: Any = None
    diagnostics: ReportDiagnostics = field(default_factory=ReportDiagnostics)
    errors: list[ReportValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class EntryExitComparisonRow:
    page_type: Literal["entry", "exit"]
    page_url: str
    sessions: int
    unique_sessions: int
    comparison_sessions: int | None
    change_percent: float | None


@dataclass(frozen=True)
class EntryExitComparison:
    entry_pages: tuple[EntryExitComparisonRow, ...]
    exit_pages: tuple[EntryExitComparisonRow, ...]


@dataclass(frozen=True)
class CompareEntryExitOutput:
    """Output for entry/exit comparison."""

    data: EntryExitComparison | None
    diagnostics: ReportDiagnostics = field(default_factory=ReportDiagnostics)
    comparison_diagnostics: ReportDiagnostics | None = None
    errors: list[ReportValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class PeriodRange:
    date_from: datetime
    date_to: datetime


@dataclass(frozen=True)
class MetricChange:
    """Change of one metric between periods."""

    value: float
    percentage: float
    trend: Trend


@dataclass(frozen=True)
class PeriodStats:
    period: PeriodRange
    overview: OverviewStats
    event_counts: dict[str, int]
    diagnostics: ReportDiagnostics


@dataclass(frozen=True)
class ComparePeriodsOutput:
    """Output for period-over-period comparison."""

    mode: str
    current: PeriodStats | None = None
    comparison: PeriodStats | None = None
    changes: dict[str, MetricChange] = field(default_factory=dict)
    errors: list[ReportValidationError] = field(default_factory=list)
    success: bool = True
