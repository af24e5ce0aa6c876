"""
Funnels component - Ordered multi-step conversion analysis.

Each visitor is walked through the funnel with a small state machine:
the visitor waits on step k, and the first later event that satisfies
step k records its timestamp and moves the visitor to step k + 1.

Invariants:
- One event satisfies at most one step
- A step is only searched for in events after the previous step's event
- total_visitors never increases from one step to the next
- Every rate lies in [0, 100] and is 0 for an empty denominator
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime

from cdp_engine.components.sessions.component import order_events
from cdp_engine.core.entities import Event
from cdp_engine.core.metrics import mean, round_seconds, safe_rate
from cdp_engine.core.ports.events import DEFAULT_BUDGET, EventStorePort, FetchBudget

from ._match import url_matches
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
)

# --- Validation ---


def validate_steps(
    steps: Sequence[FunnelStep],
    config: FunnelConfig = DEFAULT_CONFIG,
) -> list[FunnelValidationError]:
    """Validate a funnel definition; returns an empty list when valid."""
    errors: list[FunnelValidationError] = []

    if len(steps) < MIN_STEPS:
        errors.append(
            FunnelValidationError(
                code="too_few_steps",
                message=f"A funnel needs at least {MIN_STEPS} steps",
                field_name="steps",
            )
        )

    for index, step in enumerate(steps):
        field_prefix = f"steps[{index}]"
        if step.kind not in STEP_KINDS:
            errors.append(
                FunnelValidationError(
                    code="unknown_step_kind",
                    message=f"Unknown step kind: {step.kind}",
                    field_name=f"{field_prefix}.kind",
                )
            )
        if not step.match_value or not step.match_value.strip():
            errors.append(
                FunnelValidationError(
                    code="blank_match_value",
                    message="Step match value is required",
                    field_name=f"{field_prefix}.match_value",
                )
            )
        mode = step.url_match or config.default_url_match
        if step.kind == "url" and mode not in URL_MATCH_MODES:
            errors.append(
                FunnelValidationError(
                    code="unknown_url_match",
                    message=f"Unknown URL match mode: {mode}",
                    field_name=f"{field_prefix}.url_match",
                )
            )

    return errors


# --- Pure Functions (Functional Core) ---


def step_matches(
    step: FunnelStep,
    event: Event,
    config: FunnelConfig = DEFAULT_CONFIG,
) -> bool:
    """Check whether a single event satisfies a step."""
    if step.kind == "event":
        return event.event_type == step.match_value
    return url_matches(event.page_url, step.match_value, step.url_match or config.default_url_match)


def visitor_step_times(
    steps: Sequence[FunnelStep],
    events: Iterable[Event],
    config: FunnelConfig = DEFAULT_CONFIG,
) -> list[datetime]:
    """
    Walk one visitor's ordered events through the funnel.

    Returns:
        Timestamps of the steps reached, in step order. Empty when the
        visitor never satisfied step 0.
    """
    reached: list[datetime] = []
    for event in events:
        if len(reached) == len(steps):
            break
        if step_matches(steps[len(reached)], event, config):
            reached.append(event.timestamp)
    return reached


def _group_by_visitor(events: Iterable[Event]) -> dict[str, list[Event]]:
    grouped: dict[str, list[Event]] = {}
    for event in order_events(events):
        grouped.setdefault(event.visitor_id, []).append(event)
    return grouped


def analyze(
    steps: Sequence[FunnelStep],
    events: Iterable[Event],
    config: FunnelConfig = DEFAULT_CONFIG,
) -> FunnelAnalysis:
    """
    Analyze a (validated) funnel over an event window.

    Visitors that never reach step 0 are not part of the funnel.
    """
    progress = [
        times
        for times in (
            visitor_step_times(steps, visitor_events, config)
            for visitor_events in _group_by_visitor(events).values()
        )
        if times
    ]

    totals = [sum(1 for times in progress if len(times) > i) for i in range(len(steps))]

    results: list[FunnelStepResult] = []
    for index, step in enumerate(steps):
        total = totals[index]
        if index == 0:
            converted = total
            dropoff = 0
            conversion_rate = 100.0 if total > 0 else 0.0
            dropoff_rate = 0.0
            avg_time = 0
        else:
            previous = totals[index - 1]
            converted = total
            dropoff = previous - total
            conversion_rate = safe_rate(converted, previous)
            dropoff_rate = safe_rate(dropoff, previous)
            avg_time = round_seconds(
                mean(
                    (times[index] - times[index - 1]).total_seconds()
                    for times in progress
                    if len(times) > index
                )
            )

        results.append(
            FunnelStepResult(
                step_index=index,
                step_name=step.display_name,
                step_type=step.kind,
                step_value=step.match_value,
                total_visitors=total,
                converted_from_previous=converted,
                dropoff_from_previous=dropoff,
                conversion_rate=conversion_rate,
                dropoff_rate=dropoff_rate,
                avg_time_to_convert=avg_time,
            )
        )

    entries = totals[0] if totals else 0
    completions = totals[-1] if totals else 0
    completers = [times for times in progress if len(times) == len(steps)]

    overall = FunnelOverall(
        total_entries=entries,
        total_completions=completions,
        overall_conversion_rate=safe_rate(completions, entries),
        avg_total_time_to_convert=round_seconds(
            mean((times[-1] - times[0]).total_seconds() for times in completers)
        ),
    )

    return FunnelAnalysis(steps=tuple(results), overall=overall)


# --- Component Entry Points ---


def run_analyze_funnel(
    inp: AnalyzeFunnelInput,
    *,
    event_store: EventStorePort,
    config: FunnelConfig | None = None,
    budget: FetchBudget | None = None,
) -> FunnelAnalysisOutput:
    """
    Analyze a funnel over a site's event window.

    Input is validated before the store is touched.

    Args:
        inp: Site, window and funnel definition.
        event_store: Event store port.
        config: Optional funnel configuration.
        budget: Optional row budget and fetch deadline.

    Returns:
        FunnelAnalysisOutput with the analysis or validation errors.

    Raises:
        DataUnavailableError: The event window could not be fetched.
    """
    config = config or DEFAULT_CONFIG
    budget = budget or DEFAULT_BUDGET

    errors: list[FunnelValidationError] = []
    if not inp.site_id or not inp.site_id.strip():
        errors.append(
            FunnelValidationError(
                code="missing_site_id",
                message="site_id is required",
                field_name="site_id",
            )
        )
    errors.extend(validate_steps(inp.steps, config))

    if errors:
        return FunnelAnalysisOutput(analysis=None, name=inp.name, errors=errors, success=False)

    events = event_store.fetch_events(
        budget.query(inp.site_id, date_from=inp.date_from, date_to=inp.date_to)
    )

    return FunnelAnalysisOutput(
        analysis=analyze(inp.steps, events, config),
        name=inp.name,
        events_fetched=len(events),
    )
