"""Fuel station models.

Stations are owned by the catalogue (seeded at startup).  The DVE only
ever writes to a station to backfill coordinates obtained by geocoding
its address.
"""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class Coordinates(BaseModel):
    """A latitude / longitude pair in decimal degrees."""

    model_config = ConfigDict(frozen=True)

    lat: float
    lon: float


class Station(BaseModel):
    """A fuel station as stored in the ``fuel_stations`` table."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    name: str
    address: str
    lat: float | None = None
    lon: float | None = None
    legacy_id: int | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def coordinates(self) -> Coordinates | None:
        if self.lat is None or self.lon is None:
            return None
        return Coordinates(lat=self.lat, lon=self.lon)


class StationGeocodeResult(BaseModel):
    """Outcome of a catalogue-wide geocoding pass."""

    checked: int = 0
    geocoded: int = 0
