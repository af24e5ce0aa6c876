import argparse
import json
import logging
import os
import sqlite3
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from pydantic_core import to_jsonable_python

from cdp_engine.adapters.clock import FixedClock, SystemClock
from cdp_engine.adapters.memory_events import InMemoryEventStore
from cdp_engine.adapters.sqlite.migrator import SQLiteMigrator
from cdp_engine.adapters.sqlite_db import SQLiteEventStore
from cdp_engine.components.cohorts import AnalyzeCohortInput, CohortDefinition, run_analyze_cohort
from cdp_engine.components.funnels import AnalyzeFunnelInput, FunnelStep, run_analyze_funnel
from cdp_engine.components.reports import (
    ComparePeriodsInput,
    ReportFilters,
    RunReportInput,
    run_compare_periods,
    run_report,
)
from cdp_engine.core.entities import Event, parse_timestamp
from cdp_engine.core.errors import DataUnavailableError
from cdp_engine.core.ports import EventStorePort
from cdp_engine.rules.configs import EngineConfig, build_engine_config
from cdp_engine.rules.loader import load_rules

logger = logging.getLogger("cli")

DATA_DIR = os.environ.get("CDP_DATA_DIR", "./data")
RULES_PATH = os.environ.get("CDP_RULES_PATH", "rules.yaml")
MIGRATIONS_DIR = "migrations"

EXIT_INVALID = 2
EXIT_UNAVAILABLE = 3


# --- Helpers ---


def get_engine_config(rules_path: str) -> EngineConfig:
    if not Path(rules_path).exists():
        logger.error("Rules file %s not found.", rules_path)
        sys.exit(1)
    try:
        return build_engine_config(load_rules(Path(rules_path)))
    except ValueError as e:
        logger.error("%s", e)
        sys.exit(1)


def read_events_file(path: str) -> list[Event]:
    """Events from a JSON array or a JSON-lines file."""
    content = Path(path).read_text()
    stripped = content.lstrip()
    if stripped.startswith("["):
        records = json.loads(stripped)
    else:
        records = [json.loads(line) for line in content.splitlines() if line.strip()]
    return [Event.model_validate(record) for record in records]


def get_event_store(args: argparse.Namespace) -> EventStorePort:
    if args.events_file:
        return InMemoryEventStore(read_events_file(args.events_file))
    return SQLiteEventStore(args.db)


def timestamp_arg(value: str) -> datetime:
    try:
        return parse_timestamp(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not an ISO date or datetime: {value}") from e


def end_timestamp_arg(value: str) -> datetime:
    try:
        return parse_timestamp(value, end_of_day=True)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not an ISO date or datetime: {value}") from e


def parse_step(value: str) -> FunnelStep:
    """KIND:VALUE or KIND:VALUE:MODE, e.g. url:/pricing%:like."""
    kind, sep, rest = value.partition(":")
    if not sep or not rest:
        raise argparse.ArgumentTypeError(f"step must be KIND:VALUE[:MODE], got {value}")
    url_match = None
    match_value = rest
    head, sep, tail = rest.rpartition(":")
    if sep and tail in ("like", "exact", "prefix", "contains"):
        match_value, url_match = head, tail
    return FunnelStep(kind=kind, match_value=match_value, url_match=url_match)


def emit(output: Any) -> None:
    """Print a component output as JSON; validation failures exit non-zero."""
    payload = to_jsonable_python(output)
    if not output.success:
        print(json.dumps({"errors": payload["errors"]}, indent=2), file=sys.stderr)
        sys.exit(EXIT_INVALID)
    payload.pop("errors", None)
    payload.pop("success", None)
    print(json.dumps(payload, indent=2))


def report_filters(args: argparse.Namespace) -> ReportFilters:
    return ReportFilters(
        date_from=args.date_from,
        date_to=args.date_to,
        source=args.source,
        medium=args.medium,
        campaign=args.campaign,
        country=args.country,
        device_type=args.device_type,
        event_type=args.event_type,
    )


# --- Commands ---


def handle_migrate(args: argparse.Namespace) -> None:
    Path(args.db).parent.mkdir(parents=True, exist_ok=True)
    applied = SQLiteMigrator(args.db, args.migrations_dir).run_migrations()
    print(f"Applied {len(applied)} migrations.")


def handle_load_events(args: argparse.Namespace) -> None:
    try:
        events = read_events_file(args.file)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.error("Could not read events from %s: %s", args.file, e)
        sys.exit(1)
    try:
        inserted = SQLiteEventStore(args.db).add_events(events)
    except sqlite3.Error as e:
        logger.error("Could not write to %s: %s. Run `cdp-engine migrate` first.", args.db, e)
        sys.exit(1)
    print(f"Inserted {inserted} of {len(events)} events.")


def handle_report(args: argparse.Namespace, engine: EngineConfig) -> None:
    inp = RunReportInput(site_id=args.site_id, report_type=args.type, filters=report_filters(args))
    emit(run_report(inp, event_store=get_event_store(args), config=engine.reports, budget=engine.budget))


def handle_compare(args: argparse.Namespace, engine: EngineConfig) -> None:
    inp = ComparePeriodsInput(
        site_id=args.site_id,
        mode=args.mode,
        date_from=args.date_from,
        date_to=args.date_to,
        filters=ReportFilters(
            source=args.source,
            medium=args.medium,
            campaign=args.campaign,
            country=args.country,
            device_type=args.device_type,
            event_type=args.event_type,
        ),
    )
    clock = FixedClock(args.now) if args.now else SystemClock()
    emit(
        run_compare_periods(
            inp,
            event_store=get_event_store(args),
            time_port=clock,
            config=engine.reports,
            budget=engine.budget,
        )
    )


def handle_funnel(args: argparse.Namespace, engine: EngineConfig) -> None:
    inp = AnalyzeFunnelInput(
        site_id=args.site_id,
        steps=tuple(args.step or ()),
        date_from=args.date_from,
        date_to=args.date_to,
        name=args.name,
    )
    emit(
        run_analyze_funnel(
            inp, event_store=get_event_store(args), config=engine.funnels, budget=engine.budget
        )
    )


def handle_cohort(args: argparse.Namespace, engine: EngineConfig) -> None:
    periods = None
    if args.periods:
        try:
            periods = tuple(int(p) for p in args.periods.split(","))
        except ValueError:
            logger.error("--periods must be comma separated integers, got %s", args.periods)
            sys.exit(EXIT_INVALID)
    inp = AnalyzeCohortInput(
        site_id=args.site_id,
        definition=CohortDefinition(
            interval_type=args.interval,
            retention_periods=periods,
            date_field=args.date_field,
        ),
        date_from=args.date_from,
        date_to=args.date_to,
        limit=args.limit,
    )
    emit(
        run_analyze_cohort(
            inp, event_store=get_event_store(args), config=engine.cohorts, budget=engine.budget
        )
    )


# --- Parser ---


def add_window_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("site_id", help="Site to analyze")
    parser.add_argument("--from", dest="date_from", type=timestamp_arg, help="Window start")
    parser.add_argument(
        "--to", dest="date_to", type=end_timestamp_arg, help="Window end (dates are inclusive)"
    )
    parser.add_argument(
        "--events-file", help="Read events from a JSON or JSON-lines file instead of the database"
    )


def add_filter_args(parser: argparse.ArgumentParser) -> None:
    for name in ("source", "medium", "campaign", "country", "device-type", "event-type"):
        parser.add_argument(f"--{name}", help=f"Only events with this {name.replace('-', ' ')}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cdp-engine", description="CDP analytics engine CLI")
    parser.add_argument("--db", default=f"{DATA_DIR}/cdp.db", help="SQLite event database")
    parser.add_argument("--rules", default=RULES_PATH, help="Rules file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    migrate_parser = subparsers.add_parser("migrate", help="Apply pending SQL migrations")
    migrate_parser.add_argument("--migrations-dir", default=MIGRATIONS_DIR)

    # load-events
    load_parser = subparsers.add_parser("load-events", help="Insert events from a JSON file")
    load_parser.add_argument("file", help="JSON array or JSON-lines file of events")

    # report
    report_parser = subparsers.add_parser("report", help="Build a named report")
    add_window_args(report_parser)
    add_filter_args(report_parser)
    report_parser.add_argument("--type", default="overview", help="Report type")

    # compare
    compare_parser = subparsers.add_parser("compare", help="Compare two periods")
    add_window_args(compare_parser)
    add_filter_args(compare_parser)
    compare_parser.add_argument("--mode", default="wow", help="wow, mom, qoq, yoy or custom")
    compare_parser.add_argument("--now", type=timestamp_arg, help="Reference time (default: now)")

    # funnel
    funnel_parser = subparsers.add_parser("funnel", help="Analyze an ordered funnel")
    add_window_args(funnel_parser)
    funnel_parser.add_argument(
        "--step", action="append", type=parse_step, help="KIND:VALUE[:MODE], repeat in order"
    )
    funnel_parser.add_argument("--name", help="Funnel name echoed in the output")

    # cohort
    cohort_parser = subparsers.add_parser("cohort", help="Cohort retention analysis")
    add_window_args(cohort_parser)
    cohort_parser.add_argument("--interval", default="weekly", help="daily, weekly or monthly")
    cohort_parser.add_argument("--date-field", default="first_seen")
    cohort_parser.add_argument("--periods", help="Retention offsets in days, e.g. 1,7,30")
    cohort_parser.add_argument("--limit", type=int, help="Most recent cohorts to return")

    return parser


COMMANDS = {
    "report": handle_report,
    "compare": handle_compare,
    "funnel": handle_funnel,
    "cohort": handle_cohort,
}


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args(argv)

    if args.command == "migrate":
        handle_migrate(args)
        return
    if args.command == "load-events":
        handle_load_events(args)
        return

    engine = get_engine_config(args.rules)
    try:
        COMMANDS[args.command](args, engine)
    except DataUnavailableError as e:
        logger.error("Event data unavailable: %s", e)
        sys.exit(EXIT_UNAVAILABLE)


if __name__ == "__main__":
    main()
