"""
Attribution component - Traffic source resolution.
"""

from .component import (
    AttributionService,
    clean_param,
    create_attribution_service,
    find_click_id,
    parse_query_params,
    resolve,
    resolve_many,
)
from .models import (
    DEFAULT_CLICK_ID_MARKERS,
    DEFAULT_CONFIG,
    DIRECT_SOURCE,
    NO_MEDIUM,
    NOT_SET,
    Attribution,
    AttributionConfig,
    ClickIdMarker,
)

__all__ = [
    # Resolution
    "resolve",
    "resolve_many",
    "AttributionService",
    "create_attribution_service",
    # Parsing
    "clean_param",
    "find_click_id",
    "parse_query_params",
    # Models
    "Attribution",
    "AttributionConfig",
    "ClickIdMarker",
    "DEFAULT_CLICK_ID_MARKERS",
    "DEFAULT_CONFIG",
    "DIRECT_SOURCE",
    "NO_MEDIUM",
    "NOT_SET",
]
