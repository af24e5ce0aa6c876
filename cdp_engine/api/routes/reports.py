"""
Reports API.

Named reports over a site's event window, entry/exit comparison between two
windows, and period-over-period comparison.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query
from fastapi.encoders import jsonable_encoder

from cdp_engine.adapters.sqlite_db import SQLiteEventStore
from cdp_engine.api.common import data_unavailable_as_503, parse_datetime, validation_failed
from cdp_engine.api.deps import get_clock, get_engine_config, get_event_store
from cdp_engine.api.schemas import (
    ComparePeriodsResponse,
    DiagnosticsModel,
    EntryExitComparisonResponse,
    ReportFiltersModel,
    ReportResponse,
)
from cdp_engine.components.reports import (
    CompareEntryExitInput,
    ComparePeriodsInput,
    ReportFilters,
    RunReportInput,
    run_compare_entry_exit,
    run_compare_periods,
    run_report,
)
from cdp_engine.core.ports import TimePort
from cdp_engine.rules.configs import EngineConfig

router = APIRouter()


# --- Helpers ---


class FilterParams:
    """Attribute and dimension filters shared by every report route."""

    def __init__(
        self,
        source: str | None = Query(None, description="Resolved traffic source"),
        medium: str | None = Query(None, description="Resolved traffic medium"),
        campaign: str | None = Query(None, description="Resolved campaign"),
        country: str | None = Query(None),
        device_type: str | None = Query(None),
        event_type: str | None = Query(None),
    ) -> None:
        self.source = source
        self.medium = medium
        self.campaign = campaign
        self.country = country
        self.device_type = device_type
        self.event_type = event_type

    def to_filters(self, date_from: str | None, date_to: str | None, prefix: str = "") -> ReportFilters:
        return ReportFilters(
            date_from=parse_datetime(date_from, f"{prefix}date_from"),
            date_to=parse_datetime(date_to, f"{prefix}date_to", end_of_day=True),
            source=self.source,
            medium=self.medium,
            campaign=self.campaign,
            country=self.country,
            device_type=self.device_type,
            event_type=self.event_type,
        )


# --- Routes ---


@router.get("", response_model=ReportResponse)
def get_report(
    site_id: str = Query(..., description="Site whose events are reported"),
    report_type: str = Query("overview", description="Report to build"),
    date_from: str | None = Query(None, description="Start (ISO date or datetime)"),
    date_to: str | None = Query(None, description="End (ISO date or datetime, inclusive)"),
    filter_params: FilterParams = Depends(),
    event_store: SQLiteEventStore = Depends(get_event_store),
    engine: EngineConfig = Depends(get_engine_config),
) -> ReportResponse:
    """Build one named report with its diagnostics."""
    inp = RunReportInput(
        site_id=site_id,
        report_type=report_type,
        filters=filter_params.to_filters(date_from, date_to),
    )
    with data_unavailable_as_503(f"{report_type} report"):
        output = run_report(inp, event_store=event_store, config=engine.reports, budget=engine.budget)

    if not output.success:
        raise validation_failed(output.errors)

    return ReportResponse(
        report_type=output.report_type,
        filters=ReportFiltersModel.model_validate(asdict(output.filters)),
        data=jsonable_encoder(output.data),
        diagnostics=DiagnosticsModel.model_validate(asdict(output.diagnostics)),
    )


@router.get("/entry-exit/compare", response_model=EntryExitComparisonResponse)
def get_entry_exit_comparison(
    site_id: str = Query(...),
    date_from: str | None = Query(None),
    date_to: str | None = Query(None),
    compare_from: str | None = Query(None, description="Comparison window start"),
    compare_to: str | None = Query(None, description="Comparison window end"),
    filter_params: FilterParams = Depends(),
    event_store: SQLiteEventStore = Depends(get_event_store),
    engine: EngineConfig = Depends(get_engine_config),
) -> EntryExitComparisonResponse:
    """
    Entry and exit pages of the current window with comparison-window counts.

    Without compare_from/compare_to every row has a null comparison.
    """
    comparison = None
    if compare_from or compare_to:
        comparison = filter_params.to_filters(compare_from, compare_to, prefix="compare_")

    inp = CompareEntryExitInput(
        site_id=site_id,
        current=filter_params.to_filters(date_from, date_to),
        comparison=comparison,
    )
    with data_unavailable_as_503("entry/exit comparison"):
        output = run_compare_entry_exit(
            inp, event_store=event_store, config=engine.reports, budget=engine.budget
        )

    if not output.success or output.data is None:
        raise validation_failed(output.errors)

    return EntryExitComparisonResponse.model_validate(
        {
            **asdict(output.data),
            "diagnostics": asdict(output.diagnostics),
            "comparison_diagnostics": (
                asdict(output.comparison_diagnostics) if output.comparison_diagnostics else None
            ),
        }
    )


@router.get("/compare", response_model=ComparePeriodsResponse)
def get_period_comparison(
    site_id: str = Query(...),
    mode: str = Query("wow", description="wow, mom, qoq, yoy or custom"),
    date_from: str | None = Query(None, description="Custom range start"),
    date_to: str | None = Query(None, description="Custom range end"),
    filter_params: FilterParams = Depends(),
    event_store: SQLiteEventStore = Depends(get_event_store),
    clock: TimePort = Depends(get_clock),
    engine: EngineConfig = Depends(get_engine_config),
) -> ComparePeriodsResponse:
    """Overview metrics and tracked event counts against the previous period."""
    inp = ComparePeriodsInput(
        site_id=site_id,
        mode=mode,
        date_from=parse_datetime(date_from, "date_from"),
        date_to=parse_datetime(date_to, "date_to", end_of_day=True),
        filters=filter_params.to_filters(None, None),
    )
    with data_unavailable_as_503(f"{mode} period comparison"):
        output = run_compare_periods(
            inp,
            event_store=event_store,
            time_port=clock,
            config=engine.reports,
            budget=engine.budget,
        )

    if not output.success:
        raise validation_failed(output.errors)

    return ComparePeriodsResponse.model_validate(asdict(output))
