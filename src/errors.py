from __future__ import annotations


class AnalysisError(RuntimeError):
    """Base class for pipeline failures."""


class InvalidRequestError(AnalysisError):
    """Malformed upload: surfaced to the caller, never retried."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class CompletionError(AnalysisError):
    """The completion service failed or returned nothing usable."""


class ResponseParseError(AnalysisError):
    """Model text did not contain a parseable JSON object."""
