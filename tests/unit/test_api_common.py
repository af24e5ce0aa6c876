"""
Tests for shared HTTP helpers.
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from fastapi import HTTPException

from cdp_engine.api.common import data_unavailable_as_503, parse_datetime, validation_failed
from cdp_engine.components.funnels import FunnelValidationError
from cdp_engine.core.errors import DataUnavailableError, EventBudgetExceededError


class TestParseDatetime:
    def test_empty_is_none(self) -> None:
        assert parse_datetime(None, "date_from") is None
        assert parse_datetime("  ", "date_from") is None

    def test_bare_date_start_and_end_of_day(self) -> None:
        assert parse_datetime("2024-01-31", "date_from") == datetime(2024, 1, 31, tzinfo=UTC)
        end = parse_datetime("2024-01-31", "date_to", end_of_day=True)
        assert end == datetime(2024, 1, 31, 23, 59, 59, 999999, tzinfo=UTC)

    def test_zulu_and_offsets(self) -> None:
        assert parse_datetime("2024-01-31T10:00:00Z", "x") == datetime(2024, 1, 31, 10, tzinfo=UTC)
        assert parse_datetime("2024-01-31T12:00:00+02:00", "x") == datetime(
            2024, 1, 31, 10, tzinfo=UTC
        )

    def test_invalid_value_is_400(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            parse_datetime("yesterday", "date_from")
        assert exc_info.value.status_code == 400
        assert "date_from" in exc_info.value.detail


class TestErrorTranslation:
    def test_validation_failed_lists_errors(self) -> None:
        exc = validation_failed(
            [FunnelValidationError(code="too_few_steps", message="m", field_name="steps")]
        )
        assert exc.status_code == 400
        assert exc.detail["errors"] == [
            {"code": "too_few_steps", "message": "m", "field_name": "steps"}
        ]

    def test_data_unavailable_becomes_503(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            with data_unavailable_as_503("test"):
                raise DataUnavailableError("store down", retry_after_seconds=7)
        assert exc_info.value.status_code == 503
        assert exc_info.value.headers == {"Retry-After": "7"}

    def test_budget_error_is_503(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            with data_unavailable_as_503("test"):
                raise EventBudgetExceededError(10)
        assert exc_info.value.status_code == 503
        assert "10" in exc_info.value.detail

    def test_other_errors_propagate(self) -> None:
        with pytest.raises(KeyError):
            with data_unavailable_as_503("test"):
                raise KeyError("boom")
