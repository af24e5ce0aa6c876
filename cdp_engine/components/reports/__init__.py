"""
Reports component - Named report shapes over a filtered event window.
"""

from ._aggregate import BUILDERS, ReportContext, form_key, node_category
from ._filters import FilteredWindow, apply_filters, event_matches, normalize_filters
from ._periods import calculate_change, calculate_date_ranges
from .component import (
    compare_entry_exit,
    load_context,
    run_compare_entry_exit,
    run_compare_periods,
    run_report,
)
from .models import (
    COMPARE_MODES,
    DEFAULT_CONFIG,
    REPORT_TYPES,
    CompareEntryExitInput,
    CompareEntryExitOutput,
    CompareMode,
    ComparePeriodsInput,
    ComparePeriodsOutput,
    ConversionRow,
    DeviceRow,
    EntryExitComparison,
    EntryExitComparisonRow,
    EntryExitReport,
    EntryExitRow,
    FormRow,
    FormsReport,
    FormTotals,
    GeographicRow,
    JourneyFlow,
    JourneyNode,
    JourneyPage,
    JourneyPath,
    JourneysReport,
    JourneyStats,
    MetricChange,
    OverviewStats,
    PeriodRange,
    PeriodStats,
    ReportConfig,
    ReportDiagnostics,
    ReportFilters,
    ReportOutput,
    ReportType,
    ReportValidationError,
    RowLimits,
    RunReportInput,
    TopPageRow,
    TrafficSourceRow,
    UserBehaviorReport,
)

__all__ = [
    # Entry points
    "run_report",
    "run_compare_entry_exit",
    "run_compare_periods",
    # Functional core
    "compare_entry_exit",
    "load_context",
    "apply_filters",
    "event_matches",
    "normalize_filters",
    "calculate_change",
    "calculate_date_ranges",
    "form_key",
    "node_category",
    "BUILDERS",
    "FilteredWindow",
    "ReportContext",
    # Models
    "CompareEntryExitInput",
    "CompareEntryExitOutput",
    "CompareMode",
    "ComparePeriodsInput",
    "ComparePeriodsOutput",
    "ConversionRow",
    "DeviceRow",
    "EntryExitComparison",
    "EntryExitComparisonRow",
    "EntryExitReport",
    "EntryExitRow",
    "FormRow",
    "FormsReport",
    "FormTotals",
    "GeographicRow",
    "JourneyFlow",
    "JourneyNode",
    "JourneyPage",
    "JourneyPath",
    "JourneysReport",
    "JourneyStats",
    "MetricChange",
    "OverviewStats",
    "PeriodRange",
    "PeriodStats",
    "ReportConfig",
    "ReportDiagnostics",
    "ReportFilters",
    "ReportOutput",
    "ReportType",
    "ReportValidationError",
    "RowLimits",
    "RunReportInput",
    "TopPageRow",
    "TrafficSourceRow",
    "UserBehaviorReport",
    "COMPARE_MODES",
    "DEFAULT_CONFIG",
    "REPORT_TYPES",
]
