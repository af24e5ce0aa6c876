from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

Trend = Literal["up", "down", "neutral"]


# --- Reports ---
class ReportFiltersModel(BaseModel):
    date_from: datetime | None = None
    date_to: datetime | None = None
    source: str | None = None
    medium: str | None = None
    campaign: str | None = None
    country: str | None = None
    device_type: str | None = None
    event_type: str | None = None


class DiagnosticsModel(BaseModel):
    events_fetched: int
    total_events_considered: int
    events_filtered_out: int
    pageview_events: int
    events_with_url: int
    total_sessions: int
    event_types: dict[str, int]
    sources: dict[str, int]
    rows_total: int
    rows_returned: int
    truncated: bool


class ReportResponse(BaseModel):
    report_type: str
    filters: ReportFiltersModel
    data: Any
    diagnostics: DiagnosticsModel


class EntryExitComparisonRowModel(BaseModel):
    page_type: Literal["entry", "exit"]
    page_url: str
    sessions: int
    unique_sessions: int
    comparison_sessions: int | None
    change_percent: float | None


class EntryExitComparisonResponse(BaseModel):
    entry_pages: list[EntryExitComparisonRowModel]
    exit_pages: list[EntryExitComparisonRowModel]
    diagnostics: DiagnosticsModel
    comparison_diagnostics: DiagnosticsModel | None = None


class PeriodRangeModel(BaseModel):
    date_from: datetime
    date_to: datetime


class OverviewModel(BaseModel):
    total_visitors: int
    total_sessions: int
    total_events: int
    total_pageviews: int
    total_conversions: int
    conversion_rate: float
    avg_pageviews_per_session: float
    avg_session_duration: int
    bounce_rate: float


class PeriodStatsModel(BaseModel):
    period: PeriodRangeModel
    overview: OverviewModel
    event_counts: dict[str, int]
    diagnostics: DiagnosticsModel


class MetricChangeModel(BaseModel):
    value: float
    percentage: float
    trend: Trend


class ComparePeriodsResponse(BaseModel):
    mode: str
    current: PeriodStatsModel
    comparison: PeriodStatsModel
    changes: dict[str, MetricChangeModel]


# --- Funnels ---
class FunnelStepRequest(BaseModel):
    kind: str = Field(description="url or event")
    match_value: str
    name: str | None = None
    url_match: str | None = Field(None, description="like, exact, prefix or contains")


class FunnelAnalyzeRequest(BaseModel):
    site_id: str
    steps: list[FunnelStepRequest]
    name: str | None = None
    date_from: str | None = None
    date_to: str | None = None


class FunnelStepBaseModel(BaseModel):
    step_index: int
    step_name: str
    step_type: str
    step_value: str
    total_visitors: int
    converted_from_previous: int
    dropoff_from_previous: int
    conversion_rate: float
    dropoff_rate: float
    avg_time_to_convert: int


class FunnelOverallModel(BaseModel):
    total_entries: int
    total_completions: int
    overall_conversion_rate: float
    avg_total_time_to_convert: int


class FunnelAnalysisResponse(BaseModel):
    name: str | None = None
    steps: list[FunnelStepBaseModel]
    overall: FunnelOverallModel
    events_fetched: int


# --- Cohorts ---
class CohortAnalyzeRequest(BaseModel):
    site_id: str
    interval_type: str = "weekly"
    date_field: str = "first_seen"
    retention_periods: list[int] | None = None
    date_from: str | None = None
    date_to: str | None = None
    limit: int | None = None


class RetentionPointModel(BaseModel):
    period: int
    visitors_returned: int
    retention_rate: float


class CohortGroupModel(BaseModel):
    cohort_period: str
    period_start: date
    cohort_size: int
    retention_data: list[RetentionPointModel]


class CohortAnalysisResponse(BaseModel):
    analysis: list[CohortGroupModel]
    total_cohorts: int
    events_fetched: int
