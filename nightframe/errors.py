from dataclasses import dataclass


class NightframeError(Exception):
    """Base exception for nightframe errors."""


@dataclass
class FieldIssue:
    field: str
    message: str


class ValidationError(NightframeError):
    """Raised for missing or out-of-range request parameters."""

    def __init__(self, message: str, issues: list[FieldIssue] | None = None):
        super().__init__(message)
        self.issues = list(issues or [])


class UpstreamFetchError(NightframeError):
    """Raised when a remote catalog or ephemeris source is unavailable."""


class ComputationError(NightframeError):
    """Raised for degenerate geometry such as a zero field of view."""
