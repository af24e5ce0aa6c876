"""
Engine error taxonomy.

Input problems are reported as validation errors inside component outputs.
Only infrastructure failures are raised, and all of them are retryable:
a caller must never read a failed fetch as "zero events".
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for errors raised by the analytics engine."""

    retryable: bool = False


class DataUnavailableError(EngineError):
    """The event store failed or could not serve the window."""

    retryable = True

    def __init__(self, message: str, *, retry_after_seconds: int = 5) -> None:
        self.retry_after_seconds = retry_after_seconds
        super().__init__(message)


class EventBudgetExceededError(DataUnavailableError):
    """The window holds more events than the configured row budget."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(
            f"Event window exceeds the budget of {limit} events; narrow the date range",
            retry_after_seconds=0,
        )


class FetchTimeoutError(DataUnavailableError):
    """The fetch did not finish before its deadline."""

    def __init__(self, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Event fetch exceeded {timeout_seconds:g}s deadline")
