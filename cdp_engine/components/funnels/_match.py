"""
URL pattern matching for funnel steps.

``like`` follows SQL LIKE: ``%`` matches any run of characters, ``_`` exactly
one, and a backslash makes the next character literal. Matching is
case-sensitive. A pattern beginning with "/" is compared with the URL path,
anything else with the full URL.
"""

from __future__ import annotations

import re
from functools import lru_cache

from cdp_engine.core.urls import url_path


@lru_cache(maxsize=256)
def like_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile a LIKE pattern into an anchored regular expression."""
    parts: list[str] = []
    chars = iter(pattern)
    for char in chars:
        if char == "\\":
            escaped = next(chars, "\\")
            parts.append(re.escape(escaped))
        elif char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), re.DOTALL)


def match_target(url: str, pattern: str) -> str | None:
    if pattern.startswith("/"):
        return url_path(url)
    return url


def url_matches(url: str | None, pattern: str, mode: str) -> bool:
    """Check a page URL against a step pattern using ``mode``."""
    if not url:
        return False

    target = match_target(url, pattern)
    if target is None:
        return False

    if mode == "like":
        return like_to_regex(pattern).fullmatch(target) is not None
    if mode == "exact":
        return target == pattern
    if mode == "prefix":
        return target.startswith(pattern)
    if mode == "contains":
        return pattern in target
    raise ValueError(f"Unknown URL match mode: {mode}")
