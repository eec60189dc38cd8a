"""Failure taxonomy for the checkout journey.

Every exception carries enough context to tell *which* UI expectation broke,
not just that something threw.
"""
from __future__ import annotations

from dataclasses import dataclass


class JourneyError(Exception):
    """Base class for all orchestration failures."""


@dataclass(eq=False)
class ActionFailure(JourneyError):
    """Raised when an element is not actionable/visible/hidden/matching in time."""

    operation: str
    cause: str
    hint: str = ""

    def __str__(self) -> str:
        message = f"{self.operation} failed: {self.cause}."
        if self.hint:
            message += f" {self.hint}"
        return message


@dataclass(eq=False)
class UnexpectedSignal(JourneyError):
    """Raised when a dialog appeared with content other than expected."""

    got: str | None
    expected_substring: str | None

    def __str__(self) -> str:
        return f"Unexpected dialog message: {self.got!r}. Expected: {self.expected_substring!r}"


@dataclass(eq=False)
class MissingSignal(UnexpectedSignal):
    """Raised when a required dialog never appeared."""

    timeout_ms: float = 0

    def __str__(self) -> str:
        expected = f" containing {self.expected_substring!r}" if self.expected_substring else ""
        return f"No dialog{expected} appeared within {self.timeout_ms:.0f}ms"


@dataclass(eq=False)
class InterceptionTimeout(JourneyError):
    """Raised when no response matched the URL + status predicate in time."""

    url_fragment: str
    expected_status: int
    timeout_ms: float = 0

    def __str__(self) -> str:
        return (
            f"API interception failed for {self.url_fragment}: no response with status "
            f"{self.expected_status} within {self.timeout_ms:.0f}ms. "
            f"Please verify the endpoint is correct and the API is accessible."
        )


@dataclass(eq=False)
class ResourceLifecycleFailure(JourneyError):
    """Raised when the browser, context or page could not be acquired."""

    stage: str
    cause: str

    def __str__(self) -> str:
        return f"Failed to acquire {self.stage}: {self.cause}"


@dataclass(eq=False)
class ValidationFailure(JourneyError):
    """Raised when observed data (payload shape, counts, text) is wrong."""

    message: str
    found: int | None = None
    required: int | None = None

    def __str__(self) -> str:
        return self.message


@dataclass(eq=False)
class StepFailure(JourneyError):
    """A scenario step failed; wraps the component failure that caused it."""

    step: str
    expectation: str
    cause: str

    def __str__(self) -> str:
        return f"Step '{self.step}' failed (expected: {self.expectation}): {self.cause}"


@dataclass(eq=False)
class StepOrderError(JourneyError):
    """Raised when a step is run out of plan order or from the wrong state."""

    step: str
    reason: str

    def __str__(self) -> str:
        return f"Step '{self.step}' cannot run: {self.reason}"


@dataclass(eq=False)
class ScenarioHalted(JourneyError):
    """Raised for any step requested after an earlier step failed."""

    step: str
    failed_step: str

    def __str__(self) -> str:
        return f"Step '{self.step}' not executed: scenario halted at '{self.failed_step}'"
