"""
Funnels API.

POST /analyze runs an ordered funnel over a site's event window.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends

from cdp_engine.adapters.sqlite_db import SQLiteEventStore
from cdp_engine.api.common import data_unavailable_as_503, parse_datetime, validation_failed
from cdp_engine.api.deps import get_engine_config, get_event_store
from cdp_engine.api.schemas import FunnelAnalysisResponse, FunnelAnalyzeRequest
from cdp_engine.components.funnels import AnalyzeFunnelInput, FunnelStep, run_analyze_funnel
from cdp_engine.rules.configs import EngineConfig

router = APIRouter()


@router.post("/analyze", response_model=FunnelAnalysisResponse)
def analyze_funnel(
    request: FunnelAnalyzeRequest,
    event_store: SQLiteEventStore = Depends(get_event_store),
    engine: EngineConfig = Depends(get_engine_config),
) -> FunnelAnalysisResponse:
    """Per-step visitor counts, conversion and drop-off for the funnel."""
    inp = AnalyzeFunnelInput(
        site_id=request.site_id,
        steps=tuple(
            FunnelStep(
                kind=step.kind,
                match_value=step.match_value,
                name=step.name,
                url_match=step.url_match,
            )
            for step in request.steps
        ),
        date_from=parse_datetime(request.date_from, "date_from"),
        date_to=parse_datetime(request.date_to, "date_to", end_of_day=True),
        name=request.name,
    )
    with data_unavailable_as_503("funnel analysis"):
        output = run_analyze_funnel(
            inp, event_store=event_store, config=engine.funnels, budget=engine.budget
        )

    if not output.success or output.analysis is None:
        raise validation_failed(output.errors)

    return FunnelAnalysisResponse.model_validate(
        {**asdict(output.analysis), "name": output.name, "events_fetched": output.events_fetched}
    )
