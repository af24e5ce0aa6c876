import os
from functools import lru_cache
from pathlib import Path

from fastapi import Depends

from cdp_engine.adapters.clock import SystemClock
from cdp_engine.adapters.sqlite_db import SQLiteEventStore
from cdp_engine.rules.configs import EngineConfig, build_engine_config
from cdp_engine.rules.loader import load_rules
from cdp_engine.rules.models import Rules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("CDP_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "cdp.db")
        self.migrations_dir = self.base_dir / "migrations"
        self.rules_path = Path(os.environ.get("CDP_RULES_PATH", self.base_dir / "rules.yaml"))


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules(settings: Settings = Depends(get_settings)) -> Rules:
    return load_rules(settings.rules_path)


def get_engine_config(rules: Rules = Depends(get_rules)) -> EngineConfig:
    return build_engine_config(rules)


# --- Adapters ---
def get_event_store(settings: Settings = Depends(get_settings)) -> SQLiteEventStore:
    return SQLiteEventStore(settings.db_path)


# Time adapter for deterministic time operations
_clock_instance: SystemClock | None = None


def get_clock() -> SystemClock:
    """Get clock singleton."""
    global _clock_instance
    if _clock_instance is None:
        _clock_instance = SystemClock()
    return _clock_instance
