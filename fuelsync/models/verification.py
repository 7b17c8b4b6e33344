"""Verified fuel availability and consensus models."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from fuelsync.models.report import ReportView
from fuelsync.models.trust import UserTrust


class VerifiedFuelRecord(BaseModel):
    """Published availability of one fuel type at one station.

    Keyed by ``(station_id, fuel_type)`` and overwritten wholesale on
    every promotion (last write wins).
    """

    id: str = Field(default_factory=lambda: uuid4().hex)
    station_id: str
    fuel_type: str
    is_available: bool = True
    confidence_score: float = Field(ge=0.0, le=1.0)
    verified_by_count: int = Field(default=1, ge=0)
    last_verified_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class VerifiedFuelView(VerifiedFuelRecord):
    """A verified record joined with its station name."""

    station_name: str | None = None


class ConsensusOutcome(BaseModel):
    """Aggregate evaluation of a station + fuel type report group."""

    model_config = ConfigDict(frozen=True)

    station_id: str
    fuel_type: str
    report_count: int = 0
    unique_reporters: int = 0
    average_score: float = 0.0
    promoted_score: float = 0.0
    promoted: bool = False
    newly_verified: int = 0


class ReprocessResult(BaseModel):
    """Number of reports promoted by a reprocessing pass."""

    verified_count: int = 0


class AdminSnapshot(BaseModel):
    """Read-only view of reports, trust scores and verified data."""

    reports: list[ReportView] = Field(default_factory=list)
    trust_scores: list[UserTrust] = Field(default_factory=list)
    verified_records: list[VerifiedFuelView] = Field(default_factory=list)
    config: dict[str, Any] = Field(default_factory=dict)


class StationAvailability(BaseModel):
    """Verified fuel types currently available at one station."""

    station_id: str
    legacy_id: int | None = None
    station_name: str | None = None
    fuel_types: list[dict[str, Any]] = Field(default_factory=list)
