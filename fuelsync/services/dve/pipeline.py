"""Report submission pipeline for the Data Verification Engine.

State machine per submission::

    received -> station resolved -> trust resolved -> scored
             -> accepted | rejected -> persisted
             -> auto-verified | consensus-checked

Steps
-----
1. Validate required fields; nothing is written on failure.
2. Resolve station coordinates, geocoding (and backfilling) stations
   that have none.  When geocoding fails the station-location fallback
   policy is applied.
3. Fetch or lazily create the reporter's trust record.
4. Compute recency and proximity factors.
5. Score the report.
6. Persist the report with its full score breakdown.
7. Accepted with ``score >= auto_verify_threshold`` -> verify this report
   on its own and publish with a single verifier.
8. Otherwise, if accepted -> run consensus for the station + fuel pair.
9. Return the breakdown to the caller, accepted or not.

The report insert always happens before any verification step, so no
published record can reference an unpersisted report.  A report is only
marked verified after its record is published; if that write fails the
report stays pending for :meth:`ReportPipeline.reprocess_pending`.
"""

from __future__ import annotations

import asyncio
import math
import time
from collections import defaultdict
from collections.abc import Callable
from datetime import datetime

import structlog

from config.dve import DVEConfig
from fuelsync.exceptions import (
    GeocodingUnavailable,
    PersistenceFailure,
    ReportValidationError,
    StationNotFoundError,
)
from fuelsync.models.enums import FuelType, ReportStatus
from fuelsync.models.report import FuelReport, ReportView, SubmissionResult
from fuelsync.models.station import Coordinates, Station, StationGeocodeResult
from fuelsync.models.verification import AdminSnapshot, ReprocessResult, VerifiedFuelView
from fuelsync.services.dve.clock import Clock, SystemClock
from fuelsync.services.dve.consensus import ConsensusAggregator
from fuelsync.services.dve.factors import proximity_factor, recency_factor
from fuelsync.services.dve.publisher import VerificationPublisher
from fuelsync.services.dve.scoring import ScoringEngine
from fuelsync.services.dve.trust import TrustStore
from fuelsync.services.geocoding import Geocoder, NullGeocoder
from fuelsync.services.store import REPORTS, STATIONS, RecordStore

logger = structlog.get_logger(__name__)

_ADMIN_REPORT_LIMIT = 100

StationFallback = Callable[[Station, float, float], Coordinates]


def reporter_location_fallback(station: Station, user_lat: float, user_lon: float) -> Coordinates:
    """Stand in the reporter's own position for an un-geocodable station.

    This makes the measured distance ~0 and therefore biases proximity
    towards full credit; it is kept as a named policy so it can be
    swapped without touching the pipeline.
    """
    return Coordinates(lat=user_lat, lon=user_lon)


def _is_number(value: object) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


class ReportPipeline:
    """Orchestrates scoring, persistence and verification of fuel reports.

    Parameters
    ----------
    store:
        Record store holding stations, reports, trust and verified data.
    config:
        DVE tuning constants.
    geocoder:
        Address resolver used for stations without coordinates.
    clock:
        Time source; injectable for deterministic recency tests.
    station_fallback:
        Policy applied when a station cannot be geocoded.
    geocode_timeout:
        Upper bound (seconds) on a single geocoding attempt.
    """

    def __init__(
        self,
        store: RecordStore,
        config: DVEConfig,
        *,
        geocoder: Geocoder | None = None,
        clock: Clock | None = None,
        station_fallback: StationFallback = reporter_location_fallback,
        geocode_timeout: float = 5.0,
    ) -> None:
        self._store = store
        self._config = config
        self._geocoder = geocoder or NullGeocoder()
        self._clock = clock or SystemClock()
        self._station_fallback = station_fallback
        self._geocode_timeout = geocode_timeout

        self.trust = TrustStore(store, config, self._clock)
        self.scoring = ScoringEngine(config)
        self.publisher = VerificationPublisher(store, self._clock)
        self.consensus = ConsensusAggregator(store, self.publisher, config, self._clock)

    @property
    def config(self) -> DVEConfig:
        return self._config

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit_report(
        self,
        station_id: str,
        fuel_type: str,
        user_id: str,
        user_lat: float,
        user_lon: float,
        is_manual_location: bool = False,
        *,
        reported_at: datetime | None = None,
    ) -> SubmissionResult:
        """Score, persist and (when possible) verify a single report."""
        start = time.perf_counter()
        self._validate(station_id, fuel_type, user_id, user_lat, user_lon)
        manual = is_manual_location is True

        station = await self._load_station(station_id)
        station_coords = await self._resolve_station_coordinates(station, user_lat, user_lon)

        trust = await self.trust.get_or_create(user_id)

        now = self._clock.now()
        reported_at = reported_at or now
        recency = recency_factor(reported_at, now, self._config)
        proximity = proximity_factor(
            user_lat,
            user_lon,
            station_coords.lat,
            station_coords.lon,
            self._config,
            manual=manual,
        )
        decision = self.scoring.score(trust.trust_score, recency, proximity)

        logger.info(
            "dve.report_scored",
            station_id=station_id,
            fuel_type=fuel_type,
            user_id=user_id,
            trust=trust.trust_score,
            recency=round(recency, 4),
            proximity=round(proximity.factor, 4),
            distance_km=round(proximity.distance_km, 3),
            manual=manual,
            score=round(decision.score, 4),
            rejected=decision.rejected,
        )

        report = FuelReport(
            station_id=station_id,
            fuel_type=fuel_type,
            user_id=user_id,
            user_lat=user_lat,
            user_lon=user_lon,
            is_manual_location=manual,
            timestamp=reported_at,
            trust_score_at_submission=trust.trust_score,
            time_decay_factor=recency,
            location_factor=proximity.factor,
            distance_km=proximity.distance_km,
            dve_score=decision.score,
            is_rejected=decision.rejected,
            rejection_reason=decision.reason,
            created_at=now,
        )
        try:
            await self._store.insert(REPORTS, report.model_dump())
        except PersistenceFailure:
            logger.error("dve.report_insert_failed", station_id=station_id, user_id=user_id)
            raise

        verified = False
        if not decision.rejected:
            try:
                if decision.score >= self._config.auto_verify_threshold:
                    await self._auto_verify(report)
                    verified = True
                else:
                    outcome = await self.consensus.aggregate(station_id, fuel_type)
                    verified = outcome.promoted
            except PersistenceFailure as exc:
                # The report is saved and still pending; reprocessing picks it up
                logger.error(
                    "dve.verification_deferred",
                    report_id=report.id,
                    station_id=station_id,
                    fuel_type=fuel_type,
                    error=str(exc),
                )
                verified = False

        if decision.rejected:
            status = ReportStatus.REJECTED
        elif verified:
            status = ReportStatus.VERIFIED
        else:
            status = ReportStatus.PENDING

        logger.info(
            "dve.report_processed",
            report_id=report.id,
            status=str(status),
            duration_ms=round((time.perf_counter() - start) * 1000, 1),
        )

        return SubmissionResult(
            report_id=report.id,
            score=decision.score,
            trust=trust.trust_score,
            recency=recency,
            proximity_factor=proximity.factor,
            distance_km=proximity.distance_km,
            rejected=decision.rejected,
            reason=decision.reason,
            is_manual_location=proximity.manual,
            verified=verified,
            status=status,
        )

    # ------------------------------------------------------------------
    # Reprocessing
    # ------------------------------------------------------------------

    async def reprocess_pending(self) -> ReprocessResult:
        """Catch up on reports that are neither verified nor rejected.

        Uses the frozen per-report scores only; recency and proximity are
        never recomputed.  Running it twice in a row with no new
        submissions verifies nothing the second time.
        """
        records = await self._store.select(
            REPORTS, {"is_verified": False, "is_rejected": False}
        )
        pending = [FuelReport.model_validate(r) for r in records]
        logger.info("dve.reprocess_start", pending_count=len(pending))

        verified_count = 0
        remaining: list[FuelReport] = []
        for report in pending:
            if report.dve_score >= self._config.auto_verify_threshold:
                await self._auto_verify(report)
                verified_count += 1
            else:
                remaining.append(report)

        # Consensus only sees reports from this scan, never later arrivals
        groups: dict[tuple[str, str], list[FuelReport]] = defaultdict(list)
        for report in remaining:
            groups[(report.station_id, report.fuel_type)].append(report)
        for station_id, fuel_type in sorted(groups):
            outcome = await self.consensus.aggregate(
                station_id, fuel_type, groups[(station_id, fuel_type)]
            )
            verified_count += outcome.newly_verified

        logger.info(
            "dve.reprocess_complete",
            pending_count=len(pending),
            groups=len(groups),
            verified_count=verified_count,
        )
        return ReprocessResult(verified_count=verified_count)

    # ------------------------------------------------------------------
    # Station catalogue
    # ------------------------------------------------------------------

    async def geocode_missing_stations(self) -> StationGeocodeResult:
        """Geocode every station still lacking coordinates, one at a time.

        Stations that cannot be resolved are left as they are; they are
        retried on the next pass or when someone reports at them.
        """
        records = await self._store.select(STATIONS)
        missing = [
            station
            for station in (Station.model_validate(r) for r in records)
            if station.coordinates is None
        ]

        geocoded = 0
        for station in missing:
            if await self._geocode_station(station) is not None:
                geocoded += 1

        logger.info(
            "dve.station_geocoding_complete",
            checked=len(missing),
            geocoded=geocoded,
        )
        return StationGeocodeResult(checked=len(missing), geocoded=geocoded)

    # ------------------------------------------------------------------
    # Admin view
    # ------------------------------------------------------------------

    async def get_admin_snapshot(self) -> AdminSnapshot:
        """Recent reports, all trust scores, verified data and the active config."""
        station_names = {
            s["id"]: s.get("name") for s in await self._store.select(STATIONS)
        }

        reports = [FuelReport.model_validate(r) for r in await self._store.select(REPORTS)]
        reports.sort(key=lambda r: r.timestamp, reverse=True)
        report_views = [
            ReportView(**r.model_dump(), station_name=station_names.get(r.station_id))
            for r in reports[:_ADMIN_REPORT_LIMIT]
        ]

        verified_views = [
            VerifiedFuelView(**v.model_dump(), station_name=station_names.get(v.station_id))
            for v in await self.publisher.list_records()
        ]

        return AdminSnapshot(
            reports=report_views,
            trust_scores=await self.trust.list_all(),
            verified_records=verified_views,
            config=self._config.as_public_dict(),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate(
        station_id: object,
        fuel_type: object,
        user_id: object,
        user_lat: object,
        user_lon: object,
    ) -> None:
        missing = [
            name
            for name, value in (
                ("station_id", station_id),
                ("fuel_type", fuel_type),
                ("user_id", user_id),
            )
            if not isinstance(value, str) or not value.strip()
        ]
        missing += [
            name
            for name, value in (("user_lat", user_lat), ("user_lon", user_lon))
            if value is None
        ]
        if missing:
            raise ReportValidationError(
                f"Missing required fields: {', '.join(missing)}", fields=missing
            )

        malformed = [
            name
            for name, value in (("user_lat", user_lat), ("user_lon", user_lon))
            if not _is_number(value)
        ]
        if malformed:
            raise ReportValidationError(
                f"Coordinates must be finite numbers: {', '.join(malformed)}",
                fields=malformed,
            )

        if fuel_type not in {f.value for f in FuelType}:
            raise ReportValidationError(
                f"Unknown fuel type: {fuel_type!r}", fields=["fuel_type"]
            )

    async def _load_station(self, station_id: str) -> Station:
        record = await self._store.get(STATIONS, {"id": station_id})
        if record is None:
            logger.warning("dve.station_not_found", station_id=station_id)
            raise StationNotFoundError(station_id)
        return Station.model_validate(record)

    async def _resolve_station_coordinates(
        self, station: Station, user_lat: float, user_lon: float
    ) -> Coordinates:
        coords = station.coordinates
        if coords is not None:
            return coords

        geocoded = await self._geocode_station(station)
        if geocoded is None:
            fallback = self._station_fallback(station, user_lat, user_lon)
            logger.warning(
                "dve.station_location_fallback",
                station_id=station.id,
                lat=fallback.lat,
                lon=fallback.lon,
            )
            return fallback
        return geocoded

    async def _geocode_station(self, station: Station) -> Coordinates | None:
        """Geocode *station* and backfill its coordinates; ``None`` on failure."""
        logger.info("dve.station_geocoding", station_id=station.id, address=station.address)
        try:
            geocoded = await asyncio.wait_for(
                self._geocoder.resolve(station.address),
                timeout=self._geocode_timeout,
            )
        except (GeocodingUnavailable, TimeoutError) as exc:
            logger.warning(
                "dve.station_geocoding_failed",
                station_id=station.id,
                error=str(exc) or type(exc).__name__,
            )
            return None

        if geocoded is None:
            return None

        try:
            await self._store.update(
                STATIONS,
                station.id,
                {"lat": geocoded.lat, "lon": geocoded.lon, "updated_at": self._clock.now()},
            )
            logger.info(
                "dve.station_coordinates_backfilled",
                station_id=station.id,
                lat=geocoded.lat,
                lon=geocoded.lon,
            )
        except PersistenceFailure as exc:
            # The geocoded position is still usable by the caller
            logger.error(
                "dve.station_backfill_failed",
                station_id=station.id,
                error=str(exc),
            )
        return geocoded

    async def _auto_verify(self, report: FuelReport) -> None:
        # Published first so a failed upsert leaves the report pending
        await self.publisher.publish(
            report.station_id,
            report.fuel_type,
            report.dve_score,
            verified_by_count=1,
        )
        await self._store.update(REPORTS, report.id, {"is_verified": True})
        logger.info(
            "dve.auto_verified",
            report_id=report.id,
            station_id=report.station_id,
            fuel_type=report.fuel_type,
            score=round(report.dve_score, 4),
        )
