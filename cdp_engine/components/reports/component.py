"""
Reports component - Named report shapes over a filtered event window.

Every report follows the same pipeline:
1. validate the input (no fetch on invalid input)
2. fetch the site's window under the row budget and deadline
3. resolve attribution and apply the filters in memory
4. reconstruct sessions over the kept events
5. run the report builder and attach diagnostics

Invariants:
- Rates are percentages rounded to at most 2 decimals, 0 for empty denominators
- Rows are ordered by their primary count desc, then grouping key asc
- Capped reports say so in diagnostics (rows_total vs rows_returned)
"""

from __future__ import annotations

import sys
from dataclasses import asdict, replace

from cdp_engine.components.attribution import create_attribution_service
from cdp_engine.components.sessions import reconstruct, tally_entry_exit_pages
from cdp_engine.core.metrics import percent_change
from cdp_engine.core.ports.events import DEFAULT_BUDGET, FetchBudget

from ._aggregate import (
    BUILDERS,
    ReportContext,
    build_diagnostics,
    compute_entry_exit,
    compute_overview,
)
from ._filters import FilteredWindow, apply_filters, normalize_filters, store_filters
from ._periods import calculate_change, calculate_date_ranges
from .models import (
    COMPARE_MODES,
    DEFAULT_CONFIG,
    REPORT_TYPES,
    CompareEntryExitInput,
    CompareEntryExitOutput,
    ComparePeriodsInput,
    ComparePeriodsOutput,
    EntryExitComparison,
    EntryExitComparisonRow,
    EntryExitReport,
    EntryExitRow,
    PeriodRange,
    PeriodStats,
    ReportConfig,
    ReportFilters,
    ReportOutput,
    ReportValidationError,
    RunReportInput,
)
from .ports import EventStorePort, TimePort

# --- Validation ---


def validate_site_id(site_id: str | None) -> list[ReportValidationError]:
    if site_id and site_id.strip():
        return []
    return [
        ReportValidationError(
            code="missing_site_id",
            message="site_id is required",
            field_name="site_id",
        )
    ]


def validate_filters(
    filters: ReportFilters,
    field_prefix: str = "",
) -> list[ReportValidationError]:
    if filters.date_from and filters.date_to and filters.date_from > filters.date_to:
        return [
            ReportValidationError(
                code="invalid_date_range",
                message="date_from must not be after date_to",
                field_name=f"{field_prefix}date_from",
            )
        ]
    return []


# --- Window Loading ---


def load_context(
    site_id: str,
    filters: ReportFilters,
    *,
    event_store: EventStorePort,
    config: ReportConfig,
    budget: FetchBudget,
) -> tuple[ReportContext, FilteredWindow]:
    """
    Fetch, filter and sessionize one window.

    Raises:
        DataUnavailableError: The event window could not be fetched.
    """
    events = event_store.fetch_events(budget.query(site_id, **store_filters(filters)))
    window = apply_filters(events, filters, create_attribution_service(config.attribution))
    ctx = ReportContext(
        events=window.events,
        attributions=window.attributions,
        sessions=reconstruct(window.events, config.session),
        config=config,
    )
    return ctx, window


# --- Component Entry Points ---


def run_report(
    inp: RunReportInput,
    *,
    event_store: EventStorePort,
    config: ReportConfig | None = None,
    budget: FetchBudget | None = None,
) -> ReportOutput:
    """
    Build a named report.

    Args:
        inp: Site, report type and filters.
        event_store: Event store port.
        config: Optional report configuration.
        budget: Optional row budget and fetch deadline.

    Returns:
        ReportOutput with the report data and diagnostics, or validation errors.

    Raises:
        DataUnavailableError: The event window could not be fetched.
    """
    config = config or DEFAULT_CONFIG
    budget = budget or DEFAULT_BUDGET
    filters = normalize_filters(inp.filters)

    errors = validate_site_id(inp.site_id)
    if inp.report_type not in REPORT_TYPES:
        errors.append(
            ReportValidationError(
                code="unknown_report_type",
                message=f"Unknown report type: {inp.report_type}",
                field_name="report_type",
            )
        )
    errors.extend(validate_filters(filters))

    if errors:
        return ReportOutput(
            report_type=inp.report_type,
            filters=filters,
            errors=errors,
            success=False,
        )

    ctx, window = load_context(
        inp.site_id, filters, event_store=event_store, config=config, budget=budget
    )
    built = BUILDERS[inp.report_type](ctx)

    return ReportOutput(
        report_type=inp.report_type,
        filters=filters,
        data=built.data,
        diagnostics=build_diagnostics(ctx, events_fetched=window.events_fetched, built=built),
    )


def compare_entry_exit(
    current: EntryExitReport,
    comparison: EntryExitReport | None,
) -> EntryExitComparison:
    """
    Attach comparison-window session counts to the current entry/exit rows.

    comparison_sessions is None when the page has no row in the comparison
    window; change_percent is None when there is no non-zero baseline.
    """
    baseline: dict[tuple[str, str], int] = {}
    if comparison is not None:
        for row in (*comparison.entry_pages, *comparison.exit_pages):
            baseline[(row.page_type, row.page_url)] = row.sessions

    def compare(row: EntryExitRow) -> EntryExitComparisonRow:
        previous = baseline.get((row.page_type, row.page_url))
        return EntryExitComparisonRow(
            page_type=row.page_type,
            page_url=row.page_url,
            sessions=row.sessions,
            unique_sessions=row.unique_sessions,
            comparison_sessions=previous,
            change_percent=percent_change(row.sessions, previous),
        )

    return EntryExitComparison(
        entry_pages=tuple(compare(row) for row in current.entry_pages),
        exit_pages=tuple(compare(row) for row in current.exit_pages),
    )


def run_compare_entry_exit(
    inp: CompareEntryExitInput,
    *,
    event_store: EventStorePort,
    config: ReportConfig | None = None,
    budget: FetchBudget | None = None,
) -> CompareEntryExitOutput:
    """
    Entry/exit pages of the current window compared with a second window.

    Raises:
        DataUnavailableError: Either window could not be fetched.
    """
    config = config or DEFAULT_CONFIG
    budget = budget or DEFAULT_BUDGET
    current_filters = normalize_filters(inp.current)
    comparison_filters = normalize_filters(inp.comparison) if inp.comparison else None

    errors = validate_site_id(inp.site_id)
    errors.extend(validate_filters(current_filters))
    if comparison_filters is not None:
        errors.extend(validate_filters(comparison_filters, "comparison_"))
    if errors:
        return CompareEntryExitOutput(data=None, errors=errors, success=False)

    ctx, window = load_context(
        inp.site_id, current_filters, event_store=event_store, config=config, budget=budget
    )
    current, total = compute_entry_exit(ctx)
    returned = len(current.entry_pages) + len(current.exit_pages)
    diagnostics = replace(
        build_diagnostics(ctx, events_fetched=window.events_fetched),
        rows_total=total,
        rows_returned=returned,
        truncated=returned < total,
    )

    comparison = None
    comparison_diagnostics = None
    if comparison_filters is not None:
        # Every comparison page is needed as a baseline, not only the top rows
        uncapped = replace(config, row_limits=replace(config.row_limits, entry_exit=sys.maxsize))
        comparison_ctx, comparison_window = load_context(
            inp.site_id, comparison_filters, event_store=event_store, config=uncapped, budget=budget
        )
        comparison, _ = compute_entry_exit(comparison_ctx)
        comparison_diagnostics = build_diagnostics(
            comparison_ctx, events_fetched=comparison_window.events_fetched
        )

    return CompareEntryExitOutput(
        data=compare_entry_exit(current, comparison),
        diagnostics=diagnostics,
        comparison_diagnostics=comparison_diagnostics,
    )


def _period_stats(
    site_id: str,
    period: PeriodRange,
    filters: ReportFilters,
    *,
    event_store: EventStorePort,
    config: ReportConfig,
    budget: FetchBudget,
) -> PeriodStats:
    period_filters = replace(filters, date_from=period.date_from, date_to=period.date_to)
    ctx, window = load_context(
        site_id, period_filters, event_store=event_store, config=config, budget=budget
    )
    event_counts = {event_type: 0 for event_type in config.compared_event_types}
    for event in ctx.events:
        if event.event_type in event_counts:
            event_counts[event.event_type] += 1

    return PeriodStats(
        period=period,
        overview=compute_overview(ctx),
        event_counts=event_counts,
        diagnostics=build_diagnostics(ctx, events_fetched=window.events_fetched),
    )


def run_compare_periods(
    inp: ComparePeriodsInput,
    *,
    event_store: EventStorePort,
    time_port: TimePort,
    config: ReportConfig | None = None,
    budget: FetchBudget | None = None,
) -> ComparePeriodsOutput:
    """
    Compare overview metrics and tracked event counts between two periods.

    Raises:
        DataUnavailableError: Either period could not be fetched.
    """
    config = config or DEFAULT_CONFIG
    budget = budget or DEFAULT_BUDGET
    filters = normalize_filters(inp.filters)

    errors = validate_site_id(inp.site_id)
    ranges = None
    if inp.mode not in COMPARE_MODES:
        errors.append(
            ReportValidationError(
                code="unknown_compare_mode",
                message=f"Unknown comparison mode: {inp.mode}",
                field_name="mode",
            )
        )
    else:
        try:
            ranges = calculate_date_ranges(
                inp.mode, time_port.now_utc(), inp.date_from, inp.date_to
            )
        except ValueError as e:
            errors.append(
                ReportValidationError(
                    code="invalid_custom_range",
                    message=str(e),
                    field_name="date_from",
                )
            )

    if errors or ranges is None:
        return ComparePeriodsOutput(mode=inp.mode, errors=errors, success=False)

    current_range, comparison_range = ranges
    current = _period_stats(
        inp.site_id, current_range, filters, event_store=event_store, config=config, budget=budget
    )
    comparison = _period_stats(
        inp.site_id, comparison_range, filters, event_store=event_store, config=config, budget=budget
    )

    current_metrics = {**asdict(current.overview), **current.event_counts}
    comparison_metrics = {**asdict(comparison.overview), **comparison.event_counts}
    changes = {
        name: calculate_change(value, comparison_metrics[name])
        for name, value in current_metrics.items()
    }

    return ComparePeriodsOutput(
        mode=inp.mode,
        current=current,
        comparison=comparison,
        changes=changes,
    )
