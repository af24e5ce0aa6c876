"""
Cohorts component - Retention matrices.
"""

from .component import (
    analyze,
    build_visitor_dates,
    cohort_label,
    cohort_period_start,
    run_analyze_cohort,
    validate_definition,
)
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
    DateField,
    IntervalType,
    RetentionPoint,
    VisitorDates,
)

__all__ = [
    # Entry point
    "run_analyze_cohort",
    # Functional core
    "analyze",
    "build_visitor_dates",
    "cohort_label",
    "cohort_period_start",
    "validate_definition",
    # Models
    "AnalyzeCohortInput",
    "CohortAnalysis",
    "CohortAnalysisOutput",
    "CohortConfig",
    "CohortDefinition",
    "CohortGroup",
    "CohortValidationError",
    "DateField",
    "IntervalType",
    "RetentionPoint",
    "VisitorDates",
    "DATE_FIELDS",
    "DEFAULT_CONFIG",
    "INTERVAL_TYPES",
]
