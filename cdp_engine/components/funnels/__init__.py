"""
Funnels component - Ordered multi-step conversion analysis.
"""

from ._match import like_to_regex, url_matches
from .component import (
    analyze,
    run_analyze_funnel,
    step_matches,
    validate_steps,
    visitor_step_times,
)
from .models import (
    DEFAULT_CONFIG,
    MIN_STEPS,
    STEP_KINDS,
    URL_MATCH_MODES,
    AnalyzeFunnelInput,
    FunnelAnalysis,
    FunnelAnalysisOutput,
    FunnelConfig,
    FunnelOverall,
    FunnelStep,
    FunnelStepResult,
    FunnelValidationError,
    StepKind,
    UrlMatchMode,
)

__all__ = [
    # Entry point
    "run_analyze_funnel",
    # Functional core
    "analyze",
    "step_matches",
    "validate_steps",
    "visitor_step_times",
    "like_to_regex",
    "url_matches",
    # Models
    "AnalyzeFunnelInput",
    "FunnelAnalysis",
    "FunnelAnalysisOutput",
    "FunnelConfig",
    "FunnelOverall",
    "FunnelStep",
    "FunnelStepResult",
    "FunnelValidationError",
    "StepKind",
    "UrlMatchMode",
    "DEFAULT_CONFIG",
    "MIN_STEPS",
    "STEP_KINDS",
    "URL_MATCH_MODES",
]
