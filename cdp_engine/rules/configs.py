"""
Component configuration built from the rules file.

Components only see frozen config dataclasses; this module is the single
place that knows the rules schema.
"""

from __future__ import annotations

from dataclasses import dataclass

from cdp_engine.components.attribution import AttributionConfig, ClickIdMarker
from cdp_engine.components.cohorts import CohortConfig
from cdp_engine.components.funnels import FunnelConfig
from cdp_engine.components.reports import ReportConfig, RowLimits
from cdp_engine.components.sessions import SessionConfig
from cdp_engine.core.ports.events import FetchBudget
from cdp_engine.rules.models import Rules


@dataclass(frozen=True)
class EngineConfig:
    """Every component configuration for one rules file."""

    attribution: AttributionConfig
    sessions: SessionConfig
    funnels: FunnelConfig
    cohorts: CohortConfig
    reports: ReportConfig
    budget: FetchBudget


def build_attribution_config(rules: Rules) -> AttributionConfig:
    section = rules.attribution
    return AttributionConfig(
        click_id_markers=tuple(
            ClickIdMarker(params=tuple(m.params), source=m.source, medium=m.medium)
            for m in section.click_id_markers
        ),
        direct_source=section.direct_source,
        default_medium=section.default_medium,
        default_campaign=section.default_campaign,
    )


def build_session_config(rules: Rules) -> SessionConfig:
    return SessionConfig(
        pageview_event_types=frozenset(rules.sessions.pageview_event_types),
        conversion_event_types=frozenset(rules.sessions.conversion_event_types),
    )


def build_engine_config(rules: Rules) -> EngineConfig:
    attribution = build_attribution_config(rules)
    sessions = build_session_config(rules)
    reports = rules.reports

    report_config = ReportConfig(
        row_limits=RowLimits(**reports.row_limits.model_dump()),
        conversion_report_event_types=sessions.conversion_event_types
        | frozenset(reports.extra_conversion_report_event_types),
        form_start_event=reports.form_events.start,
        form_submit_event=reports.form_events.submit,
        form_abandon_event=reports.form_events.abandon,
        compared_event_types=tuple(reports.compared_event_types)
        or ReportConfig().compared_event_types,
        unknown_label=reports.unknown_label,
        session=sessions,
        attribution=attribution,
    )

    return EngineConfig(
        attribution=attribution,
        sessions=sessions,
        funnels=FunnelConfig(default_url_match=rules.funnels.default_url_match),
        cohorts=CohortConfig(
            default_retention_periods=tuple(rules.cohorts.default_retention_periods),
            conversion_event_types=sessions.conversion_event_types,
        ),
        reports=report_config,
        budget=FetchBudget(
            max_events=rules.budgets.max_events,
            timeout_seconds=rules.budgets.fetch_timeout_seconds,
        ),
    )
