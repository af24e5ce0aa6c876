"""
Funnels component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

# --- Validation Error ---


@dataclass(frozen=True)
class FunnelValidationError:
    """Funnel validation error."""

    code: str
    message: str
    field_name: str | None = None


# --- Enums ---


StepKind = Literal["event", "url"]
UrlMatchMode = Literal["like", "exact", "prefix", "contains"]

STEP_KINDS: frozenset[str] = frozenset({"event", "url"})
URL_MATCH_MODES: frozenset[str] = frozenset({"like", "exact", "prefix", "contains"})
MIN_STEPS = 2


# --- Configuration ---


@dataclass(frozen=True)
class FunnelConfig:
    """Funnel engine configuration."""

    default_url_match: str = "like"


DEFAULT_CONFIG = FunnelConfig()


# --- Definition ---


@dataclass(frozen=True)
class FunnelStep:
    """
    One funnel checkpoint.

    ``kind`` and ``url_match`` are plain strings so that definitions coming
    from the API can be validated instead of failing on construction.
    ``url_match`` None means the configured default mode.
    """

    kind: str
    match_value: str
    name: str | None = None
    url_match: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.match_value


# --- Results ---


@dataclass(frozen=True)
class FunnelStepResult:
    """Per-step funnel metrics."""

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


@dataclass(frozen=True)
class FunnelOverall:
    """Whole-funnel metrics."""

    total_entries: int
    total_completions: int
    overall_conversion_rate: float
    avg_total_time_to_convert: int


@dataclass(frozen=True)
class FunnelAnalysis:
    """Funnel analysis result."""

    steps: tuple[FunnelStepResult, ...]
    overall: FunnelOverall


# --- Input Models ---


@dataclass(frozen=True)
class AnalyzeFunnelInput:
    """Input for analyzing a funnel over a site's event window."""

    site_id: str
    steps: tuple[FunnelStep, ...]
    date_from: datetime | None = None
    date_to: datetime | None = None
    name: str | None = None


# --- Output Models ---


@dataclass(frozen=True)
class FunnelAnalysisOutput:
    """Output for funnel analysis."""

    analysis: FunnelAnalysis | None
    name: str | None = None
    events_fetched: int = 0
    errors: list[FunnelValidationError] = field(default_factory=list)
    success: bool = True
