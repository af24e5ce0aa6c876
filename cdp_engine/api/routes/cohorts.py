"""
Cohorts API.

POST /analyze groups visitors into cohorts and reports retention per offset.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends

from cdp_engine.adapters.sqlite_db import SQLiteEventStore
from cdp_engine.api.common import data_unavailable_as_503, parse_datetime, validation_failed
from cdp_engine.api.deps import get_engine_config, get_event_store
from cdp_engine.api.schemas import CohortAnalysisResponse, CohortAnalyzeRequest
from cdp_engine.components.cohorts import AnalyzeCohortInput, CohortDefinition, run_analyze_cohort
from cdp_engine.rules.configs import EngineConfig

router = APIRouter()


@router.post("/analyze", response_model=CohortAnalysisResponse)
def analyze_cohort(
    request: CohortAnalyzeRequest,
    event_store: SQLiteEventStore = Depends(get_event_store),
    engine: EngineConfig = Depends(get_engine_config),
) -> CohortAnalysisResponse:
    """Cohort rows, most recent first, with retention at each period offset."""
    retention_periods = (
        tuple(request.retention_periods) if request.retention_periods is not None else None
    )
    inp = AnalyzeCohortInput(
        site_id=request.site_id,
        definition=CohortDefinition(
            interval_type=request.interval_type,
            retention_periods=retention_periods,
            date_field=request.date_field,
        ),
        date_from=parse_datetime(request.date_from, "date_from"),
        date_to=parse_datetime(request.date_to, "date_to", end_of_day=True),
        limit=request.limit,
    )
    with data_unavailable_as_503("cohort analysis"):
        output = run_analyze_cohort(
            inp, event_store=event_store, config=engine.cohorts, budget=engine.budget
        )

    if not output.success or output.analysis is None:
        raise validation_failed(output.errors)

    analysis = asdict(output.analysis)
    return CohortAnalysisResponse.model_validate(
        {
            "analysis": analysis["groups"],
            "total_cohorts": analysis["total_cohorts"],
            "events_fetched": output.events_fetched,
        }
    )
