"""
Attribution component models.
"""

from __future__ import annotations

from dataclasses import dataclass

DIRECT_SOURCE = "direct"
NO_MEDIUM = "none"
NOT_SET = "(not set)"


@dataclass(frozen=True)
class Attribution:
    """Canonical traffic source of one event."""

    source: str
    medium: str
    campaign: str

    def as_tuple(self) -> tuple[str, str, str]:
        return (self.source, self.medium, self.campaign)


@dataclass(frozen=True)
class ClickIdMarker:
    """Ad-platform click id query parameters and the source they imply."""

    params: tuple[str, ...]
    source: str
    medium: str = "cpc"


DEFAULT_CLICK_ID_MARKERS: tuple[ClickIdMarker, ...] = (
    ClickIdMarker(params=("gclid", "gad_source"), source="google"),
    ClickIdMarker(params=("fbclid",), source="facebook"),
    ClickIdMarker(params=("msclkid",), source="bing"),
    ClickIdMarker(params=("li_fat_id",), source="linkedin"),
    ClickIdMarker(params=("twclid",), source="twitter"),
    ClickIdMarker(params=("ttclid",), source="tiktok"),
)


@dataclass(frozen=True)
class AttributionConfig:
    """Attribution configuration."""

    # Checked in order, first marker found wins
    click_id_markers: tuple[ClickIdMarker, ...] = DEFAULT_CLICK_ID_MARKERS

    direct_source: str = DIRECT_SOURCE
    default_medium: str = NO_MEDIUM
    default_campaign: str = NOT_SET


DEFAULT_CONFIG = AttributionConfig()
