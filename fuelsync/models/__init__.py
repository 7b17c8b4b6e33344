from fuelsync.models.enums import FuelType, ReportStatus, TrustDirection
from fuelsync.models.report import (
    FuelReport,
    ProximityResult,
    ReportView,
    ScoringDecision,
    SubmissionResult,
)
from fuelsync.models.station import Coordinates, Station, StationGeocodeResult
from fuelsync.models.trust import UserTrust
from fuelsync.models.verification import (
    AdminSnapshot,
    ConsensusOutcome,
    ReprocessResult,
    StationAvailability,
    VerifiedFuelRecord,
    VerifiedFuelView,
)

__all__ = [
    "AdminSnapshot",
    "ConsensusOutcome",
    "Coordinates",
    "FuelReport",
    "FuelType",
    "ProximityResult",
    "ReportStatus",
    "ReportView",
    "ReprocessResult",
    "ScoringDecision",
    "Station",
    "StationAvailability",
    "StationGeocodeResult",
    "SubmissionResult",
    "TrustDirection",
    "UserTrust",
    "VerifiedFuelRecord",
    "VerifiedFuelView",
]
