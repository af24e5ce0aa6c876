from typing import Annotated, Literal

from pydantic import BaseModel, Field


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class ClickIdMarkerRule(BaseModel):
    params: list[str] = Field(min_length=1)
    source: str
    medium: str = "cpc"


class AttributionRules(BaseModel):
    # Order is priority: first marker present in the URL wins
    click_id_markers: list[ClickIdMarkerRule]
    direct_source: str = "direct"
    default_medium: str = "none"
    default_campaign: str = "(not set)"


class SessionsRules(BaseModel):
    pageview_event_types: list[str] = Field(min_length=1)
    conversion_event_types: list[str] = Field(min_length=1)


class FunnelsRules(BaseModel):
    default_url_match: Literal["like", "exact", "prefix", "contains"] = "like"


class CohortsRules(BaseModel):
    default_retention_periods: list[Annotated[int, Field(ge=0)]] = Field(min_length=1)


class RowLimitRules(BaseModel):
    traffic_sources: int = Field(default=100, gt=0)
    conversions: int = Field(default=500, gt=0)
    geographic: int = Field(default=100, gt=0)
    devices: int = Field(default=100, gt=0)
    forms: int = Field(default=100, gt=0)
    entry_exit: int = Field(default=100, gt=0)
    top_pages: int = Field(default=50, gt=0)
    journey_flows: int = Field(default=50, gt=0)
    journey_paths: int = Field(default=20, gt=0)
    journey_pages: int = Field(default=10, gt=0)


class FormEventRules(BaseModel):
    start: str = "form_start"
    submit: str = "form_submit"
    abandon: str = "form_abandon"


class ReportsRules(BaseModel):
    row_limits: RowLimitRules = Field(default_factory=RowLimitRules)
    extra_conversion_report_event_types: list[str] = Field(default_factory=list)
    form_events: FormEventRules = Field(default_factory=FormEventRules)
    compared_event_types: list[str] = Field(default_factory=list)
    unknown_label: str = "Unknown"


class BudgetsRules(BaseModel):
    max_events: int = Field(gt=0)
    fetch_timeout_seconds: float = Field(gt=0)


class Rules(BaseModel):
    project: ProjectRules
    attribution: AttributionRules
    sessions: SessionsRules
    funnels: FunnelsRules
    cohorts: CohortsRules
    reports: ReportsRules
    budgets: BudgetsRules
