"""Exception hierarchy for the FuelSync Data Verification Engine.

A rejected report is *not* an error: scoring rejections are returned to
the caller as a normal outcome carrying a human-readable reason.
"""

from __future__ import annotations


class DVEError(Exception):
    """Base exception for all FuelSync DVE errors."""


class ReportValidationError(DVEError):
    """A submission is missing required fields or carries malformed ones.

    Raised before anything is persisted; never retried automatically.
    """

    def __init__(self, message: str, *, fields: list[str] | None = None) -> None:
        self.fields = fields or []
        super().__init__(message)


class StationNotFoundError(DVEError):
    """The referenced fuel station does not exist."""

    def __init__(self, station_id: str) -> None:
        self.station_id = station_id
        super().__init__(f"Station not found: {station_id}")


class GeocodingUnavailable(DVEError):
    """Address lookup failed (network, upstream error, unparseable reply)."""


class PersistenceFailure(DVEError):
    """The record store rejected a read or write."""

    def __init__(self, message: str, *, table: str = "") -> None:
        self.table = table
        super().__init__(message)
