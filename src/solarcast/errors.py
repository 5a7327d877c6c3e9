"""
Exceptions raised by the SolarCast collaborators.

Field-level extraction failures are not represented here: they are reported
as failed ``ExtractionResult`` values and never cross a field boundary.
"""

from __future__ import annotations


class SolarCastError(Exception):
    """Base class for all SolarCast errors."""


class ConfigurationError(SolarCastError):
    """Raised when the runtime configuration cannot be used."""


class FetchError(SolarCastError):
    """Raised when the forecast page could not be retrieved."""

    def __init__(self, url: str, status: int, message: str | None = None) -> None:
        self.url = url
        self.status = status
        super().__init__(message or f"Fetching {url} failed with status {status}")


class ExtractionFailedError(SolarCastError):
    """Raised when ``halt_on_failure`` is set and at least one field failed."""

    def __init__(self, failed_fields: list[str]) -> None:
        self.failed_fields = failed_fields
        super().__init__(f"Extraction failed for: {', '.join(failed_fields)}")


class RunTimeoutError(SolarCastError):
    """Raised when a run exceeds the watchdog timeout."""
