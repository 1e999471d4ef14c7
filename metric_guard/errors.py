"""
Exception hierarchy for Metric Guard.

Every failure in the core is either a rejected request or a rejected
mutation. None of them leave the audit log in a partial state.
"""

from __future__ import annotations


class MetricGuardError(Exception):
    """Base exception for all Metric Guard errors."""


class ValidationError(MetricGuardError, ValueError):
    """
    Raised when caller-supplied input is malformed.

    Covers negative sample sizes, inverted time ranges and override
    justifications that are too short. Never recorded as a decision.
    """


class OverrideNotAllowedError(MetricGuardError):
    """Raised when an override is attempted on a decision that is not WARN."""

    def __init__(self, status: str, message: str | None = None) -> None:
        self.status = status
        super().__init__(
            message or f"Override is only permitted for WARN decisions, got {status}"
        )


class RecordNotFoundError(MetricGuardError, KeyError):
    """Raised when an audit record identifier is not present in the log."""

    def __init__(self, record_id: str) -> None:
        self.record_id = record_id
        super().__init__(record_id)

    def __str__(self) -> str:
        return f"Audit record not found: {self.record_id}"
