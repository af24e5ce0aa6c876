from datetime import UTC, datetime

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from cdp_engine.adapters.clock import FixedClock
from cdp_engine.adapters.memory_events import InMemoryEventStore
from cdp_engine.api import deps
from cdp_engine.api.routes import cohorts, funnels, reports
from cdp_engine.core.errors import DataUnavailableError
from cdp_engine.core.ports import EventQuery
from cdp_engine.rules.configs import EngineConfig

NOW = datetime(2024, 5, 20, 12, 0, tzinfo=UTC)


class UnavailableStore:
    """Event store whose backend is down."""

    def fetch_events(self, query: EventQuery) -> list:
        raise DataUnavailableError("database is locked", retry_after_seconds=5)


@pytest.fixture
def store() -> InMemoryEventStore:
    return InMemoryEventStore()


@pytest.fixture
def app(store: InMemoryEventStore, engine_config: EngineConfig) -> FastAPI:
    """Test FastAPI app with every analytics router."""
    app = FastAPI()
    app.include_router(reports.router, prefix="/api/reports")
    app.include_router(funnels.router, prefix="/api/funnels")
    app.include_router(cohorts.router, prefix="/api/cohorts")

    # Override dependencies
    app.dependency_overrides[deps.get_event_store] = lambda: store
    app.dependency_overrides[deps.get_engine_config] = lambda: engine_config
    app.dependency_overrides[deps.get_clock] = lambda: FixedClock(NOW)

    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def unavailable_client(app: FastAPI) -> TestClient:
    """Client whose event store raises DataUnavailableError."""
    app.dependency_overrides[deps.get_event_store] = UnavailableStore
    return TestClient(app)
