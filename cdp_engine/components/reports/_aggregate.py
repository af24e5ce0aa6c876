"""
Report builders.

Each builder turns a filtered window and its reconstructed sessions into one
report shape. Builders are pure and share the same context object so a
request resolves attribution and sessions once.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Hashable, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

from cdp_engine.components.attribution import Attribution
from cdp_engine.components.sessions import (
    Session,
    is_conversion,
    is_pageview,
    pageview_path,
    summarize_sessions,
    tally_entry_exit_pages,
)
from cdp_engine.core.entities import Event
from cdp_engine.core.metrics import mean, round_half_up, round_seconds, safe_rate
from cdp_engine.core.urls import url_path

from .models import (
    ConversionRow,
    DeviceRow,
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
    OverviewStats,
    ReportConfig,
    ReportDiagnostics,
    TopPageRow,
    TrafficSourceRow,
    UserBehaviorReport,
)


NodeCategory = Literal["entry", "conversion", "navigation"]


@dataclass(frozen=True)
class ReportContext:
    """Inputs shared by every builder for one request."""

    events: tuple[Event, ...]
    attributions: tuple[Attribution, ...]
    sessions: dict[str, Session]
    config: ReportConfig


@dataclass(frozen=True)
class BuiltReport:
    """A report payload plus row accounting for diagnostics."""

    data: Any
    rows_total: int
    rows_returned: int


# --- Helpers ---


@dataclass
class _GroupStats:
    visitors: set[str] = field(default_factory=set)
    sessions: set[str] = field(default_factory=set)
    converted_sessions: set[str] = field(default_factory=set)
    events: int = 0
    pageviews: int = 0
    conversions: int = 0

    def add(self, event: Event, config: ReportConfig) -> None:
        self.visitors.add(event.visitor_id)
        self.sessions.add(event.session_id)
        self.events += 1
        if is_pageview(event, config.session):
            self.pageviews += 1
        if is_conversion(event, config.session):
            self.conversions += 1
            self.converted_sessions.add(event.session_id)

    @property
    def conversion_rate(self) -> float:
        return safe_rate(len(self.converted_sessions), len(self.sessions))


def _group(
    ctx: ReportContext,
    key: Callable[[Event, Attribution], Hashable],
) -> dict[Any, _GroupStats]:
    groups: dict[Any, _GroupStats] = {}
    for event, attribution in zip(ctx.events, ctx.attributions, strict=True):
        groups.setdefault(key(event, attribution), _GroupStats()).add(event, ctx.config)
    return groups


def _cap(rows: Sequence[Any], limit: int) -> BuiltReport:
    return BuiltReport(data=tuple(rows[:limit]), rows_total=len(rows), rows_returned=min(len(rows), limit))


def _as_number(value: Any) -> float | None:
    """Parse a numeric event property; None when absent or not numeric."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def page_label(url: str) -> str:
    """Path of a page URL, falling back to the raw URL."""
    return url_path(url) or url


# --- Attribution Reports ---


def build_traffic_sources(ctx: ReportContext) -> BuiltReport:
    """Visitors, sessions and conversions per (source, medium, campaign)."""
    groups = _group(ctx, lambda _event, attribution: attribution.as_tuple())

    rows = [
        TrafficSourceRow(
            source=source,
            medium=medium,
            campaign=campaign,
            unique_visitors=len(stats.visitors),
            sessions=len(stats.sessions),
            total_events=stats.events,
            pageviews=stats.pageviews,
            conversions=stats.conversions,
            conversion_rate=stats.conversion_rate,
            avg_session_duration=round_seconds(
                mean(ctx.sessions[sid].duration_seconds for sid in sorted(stats.sessions))
            ),
        )
        for (source, medium, campaign), stats in groups.items()
    ]
    rows.sort(key=lambda r: (-r.unique_visitors, r.source, r.medium, r.campaign))
    return _cap(rows, ctx.config.row_limits.traffic_sources)


def build_conversions(ctx: ReportContext) -> BuiltReport:
    """Conversion events per type, source, medium and UTC day."""
    counts: dict[tuple[Any, ...], list[Any]] = {}
    for event, attribution in zip(ctx.events, ctx.attributions, strict=True):
        if event.event_type not in ctx.config.conversion_report_event_types:
            continue
        key = (event.event_type, attribution.source, attribution.medium, event.timestamp.date())
        bucket = counts.setdefault(key, [0, set(), set()])
        bucket[0] += 1
        bucket[1].add(event.visitor_id)
        bucket[2].add(event.session_id)

    rows = [
        ConversionRow(
            event_type=event_type,
            source=source,
            medium=medium,
            conversion_date=day,
            conversion_count=count,
            unique_converters=len(visitors),
            converting_sessions=len(sessions),
        )
        for (event_type, source, medium, day), (count, visitors, sessions) in counts.items()
    ]
    rows.sort(
        key=lambda r: (-r.conversion_count, r.event_type, r.source, r.medium, r.conversion_date)
    )
    return _cap(rows, ctx.config.row_limits.conversions)


# --- Audience Reports ---


def build_geographic(ctx: ReportContext) -> BuiltReport:
    unknown = ctx.config.unknown_label
    groups = _group(ctx, lambda event, _attribution: (event.country or unknown, event.city or unknown))

    rows = [
        GeographicRow(
            country=country,
            city=city,
            unique_visitors=len(stats.visitors),
            sessions=len(stats.sessions),
            total_events=stats.events,
            conversions=stats.conversions,
            conversion_rate=stats.conversion_rate,
        )
        for (country, city), stats in groups.items()
    ]
    rows.sort(key=lambda r: (-r.unique_visitors, r.country, r.city))
    return _cap(rows, ctx.config.row_limits.geographic)


def build_devices(ctx: ReportContext) -> BuiltReport:
    unknown = ctx.config.unknown_label
    groups = _group(
        ctx,
        lambda event, _attribution: (
            event.device_type or unknown,
            event.browser or unknown,
            event.os or unknown,
        ),
    )

    rows = [
        DeviceRow(
            device_type=device_type,
            browser=browser,
            os=os_name,
            unique_visitors=len(stats.visitors),
            sessions=len(stats.sessions),
            total_events=stats.events,
            conversions=stats.conversions,
            conversion_rate=stats.conversion_rate,
        )
        for (device_type, browser, os_name), stats in groups.items()
    ]
    rows.sort(key=lambda r: (-r.unique_visitors, r.device_type, r.browser, r.os))
    return _cap(rows, ctx.config.row_limits.devices)


# --- Forms ---


@dataclass
class _FormStats:
    form_name: str
    starts: int = 0
    submits: int = 0
    abandons: int = 0
    visitors: set[str] = field(default_factory=set)
    submit_visitors: set[str] = field(default_factory=set)
    abandon_visitors: set[str] = field(default_factory=set)
    completion_times: list[float] = field(default_factory=list)
    fields_abandoned: list[float] = field(default_factory=list)


def form_key(event: Event) -> str:
    """Form identity: properties.form_id, else the page path, else "unknown"."""
    form_id = event.properties.get("form_id")
    if form_id is not None and str(form_id).strip():
        return str(form_id).strip()
    if event.page_url:
        path = url_path(event.page_url)
        if path:
            return path
    return "unknown"


def build_forms(ctx: ReportContext) -> BuiltReport:
    """Start, submit and abandon activity per form."""
    config = ctx.config
    form_events = {config.form_start_event, config.form_submit_event, config.form_abandon_event}
    forms: dict[str, _FormStats] = {}

    for event in ctx.events:
        if event.event_type not in form_events:
            continue
        key = form_key(event)
        stats = forms.get(key)
        if stats is None:
            name = event.properties.get("form_name")
            stats = _FormStats(form_name=str(name) if name else key)
            forms[key] = stats
        stats.visitors.add(event.visitor_id)

        if event.event_type == config.form_start_event:
            stats.starts += 1
        elif event.event_type == config.form_submit_event:
            stats.submits += 1
            stats.submit_visitors.add(event.visitor_id)
            elapsed = _as_number(event.properties.get("time_to_complete"))
            if elapsed is not None:
                stats.completion_times.append(elapsed)
        else:
            stats.abandons += 1
            stats.abandon_visitors.add(event.visitor_id)
            fields_count = _as_number(event.properties.get("fields_count"))
            if fields_count is not None:
                stats.fields_abandoned.append(fields_count)

    rows = [
        FormRow(
            form_id=key,
            form_name=stats.form_name,
            starts=stats.starts,
            submits=stats.submits,
            abandons=stats.abandons,
            unique_visitors=len(stats.visitors),
            completion_rate=safe_rate(len(stats.submit_visitors), len(stats.visitors), 1),
            abandon_rate=safe_rate(len(stats.abandon_visitors), len(stats.visitors), 1),
            avg_time_to_complete=round_seconds(mean(stats.completion_times)),
            avg_fields_abandoned=round_half_up(mean(stats.fields_abandoned), 1),
        )
        for key, stats in forms.items()
    ]
    rows.sort(key=lambda r: (-r.starts, r.form_id))

    totals = FormTotals(
        total_forms=len(rows),
        total_starts=sum(r.starts for r in rows),
        total_submits=sum(r.submits for r in rows),
        total_abandons=sum(r.abandons for r in rows),
        overall_completion_rate=safe_rate(
            sum(len(s.submit_visitors) for s in forms.values()),
            sum(len(s.visitors) for s in forms.values()),
            1,
        ),
    )

    limit = config.row_limits.forms
    return BuiltReport(
        data=FormsReport(forms=tuple(rows[:limit]), totals=totals),
        rows_total=len(rows),
        rows_returned=min(len(rows), limit),
    )


# --- Overview ---


def compute_overview(ctx: ReportContext) -> OverviewStats:
    summary = summarize_sessions(ctx.sessions.values())
    session_config = ctx.config.session

    return OverviewStats(
        total_visitors=len({e.visitor_id for e in ctx.events}),
        total_sessions=summary.total_sessions,
        total_events=len(ctx.events),
        total_pageviews=sum(1 for e in ctx.events if is_pageview(e, session_config)),
        total_conversions=sum(1 for e in ctx.events if is_conversion(e, session_config)),
        conversion_rate=summary.conversion_rate,
        avg_pageviews_per_session=summary.avg_pageviews_per_session,
        avg_session_duration=summary.avg_session_duration,
        bounce_rate=summary.bounce_rate,
    )


def build_overview(ctx: ReportContext) -> BuiltReport:
    return BuiltReport(data=compute_overview(ctx), rows_total=1, rows_returned=1)


# --- Pages ---


def compute_entry_exit(ctx: ReportContext) -> tuple[EntryExitReport, int]:
    """Entry and exit pages; also returns the uncapped row count."""
    sessions = list(ctx.sessions.values())
    tally = tally_entry_exit_pages(sessions)

    viewed_in: dict[str, int] = {}
    for session in sessions:
        for url in set(pageview_path(session, ctx.config.session)):
            viewed_in[url] = viewed_in.get(url, 0) + 1

    limit = ctx.config.row_limits.entry_exit
    entry = tuple(
        EntryExitRow("entry", page.page_url, page.sessions, viewed_in[page.page_url])
        for page in tally.entry[:limit]
    )
    exit_ = tuple(
        EntryExitRow("exit", page.page_url, page.sessions, viewed_in[page.page_url])
        for page in tally.exit[:limit]
    )
    return EntryExitReport(entry_pages=entry, exit_pages=exit_), len(tally.entry) + len(tally.exit)


def build_entry_exit(ctx: ReportContext) -> BuiltReport:
    report, total = compute_entry_exit(ctx)
    return BuiltReport(
        data=report,
        rows_total=total,
        rows_returned=len(report.entry_pages) + len(report.exit_pages),
    )


def build_user_behavior(ctx: ReportContext) -> BuiltReport:
    """Top pages by pageviews plus entry and exit pages."""
    pages: dict[tuple[str, str | None], list[Any]] = {}
    for event in ctx.events:
        if not is_pageview(event, ctx.config.session) or not event.page_url:
            continue
        bucket = pages.setdefault((event.page_url, event.page_title), [0, set(), set(), []])
        bucket[0] += 1
        bucket[1].add(event.visitor_id)
        bucket[2].add(event.session_id)
        time_on_page = _as_number(event.properties.get("time_on_page"))
        if time_on_page is not None and time_on_page > 0:
            bucket[3].append(time_on_page)

    rows = [
        TopPageRow(
            page_url=url,
            page_title=title,
            pageviews=count,
            unique_visitors=len(visitors),
            sessions=len(sessions),
            avg_time_on_page=round_seconds(mean(times)),
        )
        for (url, title), (count, visitors, sessions, times) in pages.items()
    ]
    rows.sort(key=lambda r: (-r.pageviews, r.page_url, r.page_title or ""))

    limit = ctx.config.row_limits.top_pages
    entry_exit, entry_exit_total = compute_entry_exit(ctx)
    returned = min(len(rows), limit)
    return BuiltReport(
        data=UserBehaviorReport(top_pages=tuple(rows[:limit]), entry_exit=entry_exit),
        rows_total=len(rows) + entry_exit_total,
        rows_returned=returned + len(entry_exit.entry_pages) + len(entry_exit.exit_pages),
    )


# --- Journeys ---


def node_category(name: str) -> NodeCategory:
    if name == "/":
        return "entry"
    if "/checkout" in name:
        return "conversion"
    return "navigation"


def _rank_pages(counts: dict[str, int], total: int, limit: int) -> tuple[JourneyPage, ...]:
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))[:limit]
    return tuple(JourneyPage(page=page, count=n, percentage=safe_rate(n, total)) for page, n in ranked)


def build_journeys(ctx: ReportContext) -> BuiltReport:
    """Page-to-page flows over sessions with at least two pageviews."""
    limits = ctx.config.row_limits
    paths = [
        tuple(page_label(url) for url in pageview_path(session, ctx.config.session))
        for session in ctx.sessions.values()
    ]
    paths = [path for path in paths if len(path) >= 2]
    total = len(paths)

    flow_counts: dict[tuple[str, str], int] = {}
    path_counts: dict[tuple[str, ...], int] = {}
    entry_counts: dict[str, int] = {}
    exit_counts: dict[str, int] = {}
    for path in paths:
        for source, target in zip(path, path[1:]):
            flow_counts[(source, target)] = flow_counts.get((source, target), 0) + 1
        path_counts[path] = path_counts.get(path, 0) + 1
        entry_counts[path[0]] = entry_counts.get(path[0], 0) + 1
        exit_counts[path[-1]] = exit_counts.get(path[-1], 0) + 1

    ranked_flows = sorted(flow_counts.items(), key=lambda item: (-item[1], item[0]))
    flows = tuple(
        JourneyFlow(source=source, target=target, value=n)
        for (source, target), n in ranked_flows[: limits.journey_flows]
    )

    node_names: dict[str, None] = {}
    for flow in flows:
        node_names.setdefault(flow.source)
        node_names.setdefault(flow.target)
    nodes = tuple(JourneyNode(name=name, category=node_category(name)) for name in node_names)

    ranked_paths = sorted(path_counts.items(), key=lambda item: (-item[1], item[0]))
    common_paths = tuple(
        JourneyPath(path=path, count=n, percentage=safe_rate(n, total))
        for path, n in ranked_paths[: limits.journey_paths]
    )

    report = JourneysReport(
        nodes=nodes,
        flows=flows,
        common_paths=common_paths,
        top_entry_pages=_rank_pages(entry_counts, total, limits.journey_pages),
        top_exit_pages=_rank_pages(exit_counts, total, limits.journey_pages),
        stats=JourneyStats(
            total_sessions=total,
            avg_session_depth=round_half_up(mean(len(path) for path in paths), 1),
            unique_paths=len(path_counts),
        ),
    )
    return BuiltReport(data=report, rows_total=len(ranked_flows), rows_returned=len(flows))


BUILDERS: dict[str, Callable[[ReportContext], BuiltReport]] = {
    "traffic_sources": build_traffic_sources,
    "conversions": build_conversions,
    "geographic": build_geographic,
    "devices": build_devices,
    "forms": build_forms,
    "overview": build_overview,
    "entry_exit": build_entry_exit,
    "journeys": build_journeys,
    "user_behavior": build_user_behavior,
}


# --- Diagnostics ---


def build_diagnostics(
    ctx: ReportContext,
    *,
    events_fetched: int,
    built: BuiltReport | None = None,
) -> ReportDiagnostics:
    event_types: dict[str, int] = {}
    sources: dict[str, int] = {}
    for event, attribution in zip(ctx.events, ctx.attributions, strict=True):
        event_types[event.event_type] = event_types.get(event.event_type, 0) + 1
        sources[attribution.source] = sources.get(attribution.source, 0) + 1

    rows_total = built.rows_total if built else 0
    rows_returned = built.rows_returned if built else 0

    return ReportDiagnostics(
        events_fetched=events_fetched,
        total_events_considered=events_fetched,
        events_filtered_out=events_fetched - len(ctx.events),
        pageview_events=sum(1 for e in ctx.events if is_pageview(e, ctx.config.session)),
        events_with_url=sum(1 for e in ctx.events if e.page_url),
        total_sessions=len(ctx.sessions),
        event_types=dict(sorted(event_types.items())),
        sources=dict(sorted(sources.items())),
        rows_total=rows_total,
        rows_returned=rows_returned,
        truncated=rows_returned < rows_total,
    )
