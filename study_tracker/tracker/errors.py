"""Exceptions raised and reported by the tracker."""

from __future__ import annotations


class TrackerError(Exception):
    """Base class for study-tracker failures."""
    pass


class RemoteStoreError(TrackerError):
    """Raised when a call to the persistence service fails."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class LoadFailure(TrackerError):
    """Initial load could not fetch subjects or rows; nothing is usable."""
    pass


class WriteFailure(TrackerError):
    """A mutation's remote write failed; local state keeps the change."""
    pass


class ValidationRejection(TrackerError):
    """Input rejected before any state change."""
    pass


class ImportSourceError(TrackerError):
    """A bulk import file could not be read or held no names."""
    pass
