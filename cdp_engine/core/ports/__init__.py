"""
Core port interfaces.

Adapters in ``cdp_engine.adapters`` implement these protocols.
"""

from cdp_engine.core.ports.events import (
    DEFAULT_BUDGET,
    EventQuery,
    EventStorePort,
    FetchBudget,
)
from cdp_engine.core.ports.time import TimePort

__all__ = [
    "DEFAULT_BUDGET",
    "FetchBudget",
    "EventQuery",
    "EventStorePort",
    "TimePort",
]
