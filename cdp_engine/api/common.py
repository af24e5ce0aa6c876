"""
Shared request parsing and error translation for the HTTP routes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from fastapi import HTTPException, status

from cdp_engine.core.entities import parse_timestamp
from cdp_engine.core.errors import DataUnavailableError

logger = logging.getLogger(__name__)


def parse_datetime(value: str | None, field_name: str, *, end_of_day: bool = False) -> datetime | None:
    """
    Parse an ISO datetime or date query value into an aware UTC datetime.

    A bare date means the start of that day, or its last instant when
    ``end_of_day`` is set, so ``date_to=2024-01-31`` covers the whole day.
    """
    if value is None or not value.strip():
        return None
    try:
        return parse_timestamp(value, end_of_day=end_of_day)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid datetime for {field_name}: {value}",
        ) from e


def validation_failed(errors: Sequence[Any]) -> HTTPException:
    """400 carrying the component's validation errors."""
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={
            "message": "Validation failed",
            "errors": [
                {"code": e.code, "message": e.message, "field_name": e.field_name} for e in errors
            ],
        },
    )


@contextmanager
def data_unavailable_as_503(operation: str) -> Iterator[None]:
    """Translate event store failures into a retryable 503."""
    try:
        yield
    except DataUnavailableError as e:
        logger.exception("%s failed: event data unavailable", operation)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
            headers={"Retry-After": str(e.retry_after_seconds)},
        ) from e
