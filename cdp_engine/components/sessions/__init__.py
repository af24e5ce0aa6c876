"""
Sessions component - Stateless session reconstruction.
"""

from .component import (
    is_conversion,
    is_pageview,
    order_events,
    pageview_path,
    reconstruct,
    summarize_sessions,
    tally_entry_exit_pages,
)
from .models import (
    DEFAULT_CONFIG,
    DEFAULT_CONVERSION_EVENT_TYPES,
    DEFAULT_PAGEVIEW_EVENT_TYPES,
    EntryExitTally,
    PageCount,
    Session,
    SessionConfig,
    SessionSummary,
)

__all__ = [
    # Reconstruction
    "reconstruct",
    "order_events",
    "summarize_sessions",
    "tally_entry_exit_pages",
    "pageview_path",
    "is_pageview",
    "is_conversion",
    # Models
    "Session",
    "SessionConfig",
    "SessionSummary",
    "PageCount",
    "EntryExitTally",
    "DEFAULT_CONFIG",
    "DEFAULT_CONVERSION_EVENT_TYPES",
    "DEFAULT_PAGEVIEW_EVENT_TYPES",
]
