"""Publishing of verified fuel availability.

Each ``(station_id, fuel_type)`` pair has at most one
:class:`VerifiedFuelRecord`.  Publishing overwrites it wholesale with
the newest confidence and verifier count (last write wins, no merging);
atomicity per key is delegated to the record store's ``upsert``.
"""

from __future__ import annotations

from collections import defaultdict

import structlog

from fuelsync.models.station import Station
from fuelsync.models.verification import StationAvailability, VerifiedFuelRecord
from fuelsync.services.dve.clock import Clock, SystemClock
from fuelsync.services.store import STATIONS, VERIFIED_FUEL, RecordStore

logger = structlog.get_logger(__name__)

_CONFLICT_KEYS = ("station_id", "fuel_type")


class VerificationPublisher:
    """Upsert verified availability records."""

    def __init__(self, store: RecordStore, clock: Clock | None = None) -> None:
        self._store = store
        self._clock = clock or SystemClock()

    async def publish(
        self,
        station_id: str,
        fuel_type: str,
        confidence: float,
        verified_by_count: int,
    ) -> VerifiedFuelRecord:
        now = self._clock.now()
        record = VerifiedFuelRecord(
            station_id=station_id,
            fuel_type=fuel_type,
            is_available=True,
            confidence_score=min(1.0, max(0.0, confidence)),
            verified_by_count=verified_by_count,
            last_verified_at=now,
            created_at=now,
            updated_at=now,
        )
        stored = await self._store.upsert(
            VERIFIED_FUEL,
            record.model_dump(exclude={"id"}),
            conflict_keys=_CONFLICT_KEYS,
        )

        logger.info(
            "dve.verification_published",
            station_id=station_id,
            fuel_type=fuel_type,
            confidence=round(record.confidence_score, 4),
            verified_by_count=verified_by_count,
        )
        return VerifiedFuelRecord.model_validate(stored)

    async def get(self, station_id: str, fuel_type: str) -> VerifiedFuelRecord | None:
        record = await self._store.get(
            VERIFIED_FUEL, {"station_id": station_id, "fuel_type": fuel_type}
        )
        return VerifiedFuelRecord.model_validate(record) if record is not None else None

    async def list_records(self) -> list[VerifiedFuelRecord]:
        records = await self._store.select(VERIFIED_FUEL)
        return [VerifiedFuelRecord.model_validate(r) for r in records]

    async def available_by_station(self) -> list[StationAvailability]:
        """Group currently available fuel types by station, for map display."""
        records = await self._store.select(VERIFIED_FUEL, {"is_available": True})
        stations = {
            s["id"]: Station.model_validate(s) for s in await self._store.select(STATIONS)
        }

        grouped: dict[str, list[dict]] = defaultdict(list)
        for raw in records:
            record = VerifiedFuelRecord.model_validate(raw)
            grouped[record.station_id].append(
                {
                    "type": record.fuel_type,
                    "confidence": record.confidence_score,
                    "verified_by_count": record.verified_by_count,
                    "last_verified_at": record.last_verified_at,
                }
            )

        result: list[StationAvailability] = []
        for station_id, fuel_types in grouped.items():
            station = stations.get(station_id)
            result.append(
                StationAvailability(
                    station_id=station_id,
                    legacy_id=station.legacy_id if station else None,
                    station_name=station.name if station else None,
                    fuel_types=fuel_types,
                )
            )
        return result
