"""Tests for publishing verified fuel availability."""

from __future__ import annotations

import asyncio

import pytest

from fuelsync.models.station import Station
from fuelsync.services.dve.clock import FixedClock
from fuelsync.services.dve.publisher import VerificationPublisher
from fuelsync.services.store import STATIONS, VERIFIED_FUEL, InMemoryRecordStore


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def publisher(store: InMemoryRecordStore, clock: FixedClock) -> VerificationPublisher:
    return VerificationPublisher(store, clock)


class TestPublish:
    async def test_creates_record(
        self, publisher: VerificationPublisher, clock: FixedClock
    ) -> None:
        record = await publisher.publish("st-1", "Diesel", 0.8, 1)
        assert record.is_available is True
        assert record.confidence_score == 0.8
        assert record.verified_by_count == 1
        assert record.last_verified_at == clock.now()

    async def test_overwrites_without_merging(
        self,
        publisher: VerificationPublisher,
        store: InMemoryRecordStore,
        clock: FixedClock,
    ) -> None:
        first = await publisher.publish("st-1", "Diesel", 0.9, 3)
        later = clock.advance(hours=2)
        second = await publisher.publish("st-1", "Diesel", 0.6, 1)

        assert store.count(VERIFIED_FUEL) == 1
        assert second.id == first.id
        assert second.confidence_score == 0.6
        assert second.verified_by_count == 1
        assert second.last_verified_at == later
        assert second.created_at == first.created_at

    async def test_keys_are_independent(
        self, publisher: VerificationPublisher, store: InMemoryRecordStore
    ) -> None:
        await publisher.publish("st-1", "Diesel", 0.9, 1)
        await publisher.publish("st-1", "CNG", 0.7, 2)
        await publisher.publish("st-2", "Diesel", 0.5, 1)
        assert store.count(VERIFIED_FUEL) == 3
        cng = await publisher.get("st-1", "CNG")
        assert cng is not None
        assert cng.verified_by_count == 2

    async def test_get_missing(self, publisher: VerificationPublisher) -> None:
        assert await publisher.get("st-1", "E20") is None


class TestConcurrentPromotions:
    async def test_two_promotions_never_mix(
        self, publisher: VerificationPublisher, store: InMemoryRecordStore
    ) -> None:
        await asyncio.gather(
            publisher.publish("st-1", "E10", 0.7, 2),
            publisher.publish("st-1", "E10", 0.95, 5),
        )
        records = await publisher.list_records()
        assert len(records) == 1
        final = (records[0].confidence_score, records[0].verified_by_count)
        assert final in {(0.7, 2), (0.95, 5)}

    async def test_many_promotions_never_mix(self, publisher: VerificationPublisher) -> None:
        writes = [(round(0.4 + i * 0.05, 2), i + 1) for i in range(12)]
        await asyncio.gather(
            *(publisher.publish("st-1", "Diesel", conf, count) for conf, count in writes)
        )
        records = await publisher.list_records()
        assert len(records) == 1
        assert (records[0].confidence_score, records[0].verified_by_count) in set(writes)


class TestAvailableByStation:
    async def test_groups_by_station(
        self, publisher: VerificationPublisher, store: InMemoryRecordStore
    ) -> None:
        station = Station(id="st-1", name="Indian Oil", address="MG Road", legacy_id=7)
        await store.insert(STATIONS, station.model_dump())
        await publisher.publish("st-1", "Diesel", 0.9, 1)
        await publisher.publish("st-1", "CNG", 0.7, 2)

        grouped = await publisher.available_by_station()
        assert len(grouped) == 1
        entry = grouped[0]
        assert entry.station_id == "st-1"
        assert entry.legacy_id == 7
        assert entry.station_name == "Indian Oil"
        assert {f["type"] for f in entry.fuel_types} == {"Diesel", "CNG"}

    async def test_unknown_station_still_listed(self, publisher: VerificationPublisher) -> None:
        await publisher.publish("ghost", "E20", 0.5, 1)
        grouped = await publisher.available_by_station()
        assert grouped[0].station_name is None

    async def test_unavailable_records_hidden(
        self, publisher: VerificationPublisher, store: InMemoryRecordStore
    ) -> None:
        record = await publisher.publish("st-1", "Diesel", 0.9, 1)
        await store.update(VERIFIED_FUEL, record.id, {"is_available": False})
        assert await publisher.available_by_station() == []
