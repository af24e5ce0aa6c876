"""URL helpers shared by funnels and reports."""

from __future__ import annotations

from urllib.parse import urlparse


def url_path(url: str) -> str | None:
    """Path component of an absolute URL or bare path; None if unparseable."""
    try:
        return urlparse(url).path
    except ValueError:
        return None
