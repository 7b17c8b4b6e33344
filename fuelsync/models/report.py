"""Crowdsourced fuel report models and DVE scoring results.

A :class:`FuelReport` carries the full score breakdown frozen at
submission time.  Only ``is_verified`` changes afterwards, when the
report is promoted individually or as part of a consensus group.
"""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from fuelsync.models.enums import ReportStatus


class ProximityResult(BaseModel):
    """Outcome of the proximity check for one report.

    ``valid`` is ``False`` only when a device-located reporter was
    farther than the maximum distance, which is a hard rejection.  A
    manual location is always valid but carries a fixed penalty factor.
    """

    model_config = ConfigDict(frozen=True)

    factor: float = Field(ge=0.0, le=1.0)
    distance_km: float = Field(ge=0.0)
    valid: bool
    manual: bool = False


class ScoringDecision(BaseModel):
    """Result of :meth:`ScoringEngine.score`."""

    model_config = ConfigDict(frozen=True)

    score: float = Field(ge=0.0, le=1.0)
    raw_score: float = Field(default=0.0, ge=0.0)
    rejected: bool
    reason: str | None = None


class FuelReport(BaseModel):
    """A single fuel availability report (``crowdsourced_reports`` row)."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    station_id: str
    fuel_type: str
    user_id: str
    user_lat: float
    user_lon: float
    is_manual_location: bool = False
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    # Score breakdown, frozen at submission
    trust_score_at_submission: float = Field(ge=0.0, le=1.0)
    time_decay_factor: float = Field(ge=0.0, le=1.0)
    location_factor: float = Field(ge=0.0, le=1.0)
    distance_km: float = Field(default=0.0, ge=0.0)
    dve_score: float = Field(ge=0.0, le=1.0)

    is_rejected: bool = False
    rejection_reason: str | None = None
    is_verified: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def status(self) -> ReportStatus:
        if self.is_rejected:
            return ReportStatus.REJECTED
        if self.is_verified:
            return ReportStatus.VERIFIED
        return ReportStatus.PENDING

    @property
    def is_pending(self) -> bool:
        return self.status == ReportStatus.PENDING


class ReportView(FuelReport):
    """A report joined with its station name, for the admin dashboard."""

    station_name: str | None = None


class SubmissionResult(BaseModel):
    """Score breakdown returned to the reporter after a submission."""

    report_id: str
    score: float
    trust: float
    recency: float
    proximity_factor: float
    distance_km: float
    rejected: bool
    reason: str | None = None
    is_manual_location: bool = False
    verified: bool = False
    status: ReportStatus = ReportStatus.PENDING
