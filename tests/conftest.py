from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

from cdp_engine.adapters.memory_events import InMemoryEventStore
from cdp_engine.adapters.sqlite.migrator import SQLiteMigrator
from cdp_engine.core.entities import Event
from cdp_engine.rules.configs import EngineConfig, build_engine_config
from cdp_engine.rules.loader import load_rules
from cdp_engine.rules.models import Rules

T0 = datetime(2024, 5, 1, 10, 0, 0, tzinfo=UTC)

EventFactory = Callable[..., Event]


@pytest.fixture
def t0() -> datetime:
    """Reference instant shared by event fixtures."""
    return T0


@pytest.fixture
def make_event() -> EventFactory:
    """
    Build events relative to T0.

    Ids are generated in creation order unless given explicitly.
    """
    counter = {"n": 0}

    def factory(
        visitor_id: str = "v1",
        session_id: str = "s1",
        event_type: str = "pageview",
        offset_seconds: float = 0,
        **overrides: Any,
    ) -> Event:
        counter["n"] += 1
        data: dict[str, Any] = {
            "id": f"e{counter['n']:04d}",
            "site_id": "site-1",
            "visitor_id": visitor_id,
            "session_id": session_id,
            "event_type": event_type,
            "timestamp": T0 + timedelta(seconds=offset_seconds),
        }
        data.update(overrides)
        return Event(**data)

    return factory


@pytest.fixture
def memory_store() -> InMemoryEventStore:
    return InMemoryEventStore()


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """SQLite database with all migrations applied."""
    path = str(tmp_path / "cdp.db")
    SQLiteMigrator(path, "migrations").run_migrations()
    return path


@pytest.fixture
def rules() -> Rules:
    """The real rules file from the project root."""
    rules_path = Path("rules.yaml").resolve()
    if not rules_path.exists():
        raise FileNotFoundError(f"Rules not found at {rules_path}")
    return load_rules(rules_path)


@pytest.fixture
def engine_config(rules: Rules) -> EngineConfig:
    return build_engine_config(rules)
