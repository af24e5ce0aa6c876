"""
Attribution component - Traffic source resolution.

Maps every raw event to exactly one (source, medium, campaign) triple.

Resolution order (first match wins):
1. UTM tagging: utm_source present
2. Ad click id in the page URL query string (gclid, fbclid, ...)
3. Direct

Invariants:
- Total: malformed or missing input resolves to direct / none / (not set)
- Deterministic: same event always yields the same triple
"""

from __future__ import annotations

from collections.abc import Iterable
from urllib.parse import parse_qs, urlparse

from cdp_engine.core.entities import Event

from .models import (
    DEFAULT_CONFIG,
    Attribution,
    AttributionConfig,
    ClickIdMarker,
)

# --- Parsing Functions ---


def clean_param(value: str | None) -> str | None:
    """Strip a tagging value; blank values count as absent."""
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def parse_query_params(url: str | None) -> dict[str, list[str]]:
    """
    Parse the query string of a page URL.

    Accepts absolute URLs and bare paths ("/pricing?gclid=x").
    Blank values are kept so a bare marker ("?fbclid=") still counts.
    """
    if not url:
        return {}

    try:
        return parse_qs(urlparse(url).query, keep_blank_values=True)
    except ValueError:
        return {}


def find_click_id(
    url: str | None,
    config: AttributionConfig = DEFAULT_CONFIG,
) -> ClickIdMarker | None:
    """Return the highest-priority click id marker present in the URL."""
    params = parse_query_params(url)
    if not params:
        return None

    for marker in config.click_id_markers:
        if any(name in params for name in marker.params):
            return marker
    return None


# --- Resolution ---


def resolve(event: Event, config: AttributionConfig = DEFAULT_CONFIG) -> Attribution:
    """Resolve the traffic source of an event."""
    campaign = clean_param(event.utm_campaign) or config.default_campaign

    source = clean_param(event.utm_source)
    if source is not None:
        return Attribution(
            source=source,
            medium=clean_param(event.utm_medium) or config.default_medium,
            campaign=campaign,
        )

    marker = find_click_id(event.page_url, config)
    if marker is not None:
        return Attribution(source=marker.source, medium=marker.medium, campaign=campaign)

    return Attribution(
        source=config.direct_source,
        medium=config.default_medium,
        campaign=campaign,
    )


def resolve_many(
    events: Iterable[Event],
    config: AttributionConfig = DEFAULT_CONFIG,
) -> list[Attribution]:
    """Resolve a batch of events; output is aligned with the input order."""
    return [resolve(event, config) for event in events]


# --- Attribution Service ---


class AttributionService:
    """
    Attribution service.

    Memoizes resolutions by event id for the lifetime of one request so
    reports that group the same window several ways resolve each event once.
    """

    def __init__(self, config: AttributionConfig | None = None) -> None:
        self._config = config or DEFAULT_CONFIG
        self._cache: dict[str, Attribution] = {}

    @property
    def config(self) -> AttributionConfig:
        return self._config

    def resolve(self, event: Event) -> Attribution:
        cached = self._cache.get(event.id)
        if cached is None:
            cached = resolve(event, self._config)
            self._cache[event.id] = cached
        return cached

    def resolve_many(self, events: Iterable[Event]) -> list[Attribution]:
        return [self.resolve(event) for event in events]


# --- Factory ---


def create_attribution_service(
    config: AttributionConfig | None = None,
) -> AttributionService:
    """Create an AttributionService."""
    return AttributionService(config=config)
