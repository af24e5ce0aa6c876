import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from cdp_engine.adapters.sqlite.migrator import SQLiteMigrator
from cdp_engine.api.deps import get_rules, get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Load rules and prepare the event store on startup (fail-fast)
    try:
        get_rules(settings)
        logger.info("Rules loaded from %s", settings.rules_path)
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        SQLiteMigrator(settings.db_path, str(settings.migrations_dir)).run_migrations()
    except (OSError, ValueError, RuntimeError) as e:
        logger.critical("Startup failed: %s", e)
        sys.exit(1)

    yield


app = FastAPI(
    title="CDP Analytics Engine API",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- Routers ---
from cdp_engine.api.routes import cohorts, funnels, reports  # noqa: E402

app.include_router(reports.router, prefix="/api/reports", tags=["Reports"])
app.include_router(funnels.router, prefix="/api/funnels", tags=["Funnels"])
app.include_router(cohorts.router, prefix="/api/cohorts", tags=["Cohorts"])


@app.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "service": "cdp-engine"}
