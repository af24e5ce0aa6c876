"""
Reports component port definitions.

Reports read the same event window as the other components and need a
clock for period-over-period ranges.
"""

from __future__ import annotations

from cdp_engine.core.ports.events import EventQuery, EventStorePort
from cdp_engine.core.ports.time import TimePort

__all__ = [
    "EventQuery",
    "EventStorePort",
    "TimePort",
]
