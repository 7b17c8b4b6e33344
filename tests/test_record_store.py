"""Tests for the in-memory record store."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import pytest

from fuelsync.exceptions import PersistenceFailure
from fuelsync.services.store import (
    REPORTS,
    STATIONS,
    VERIFIED_FUEL,
    InMemoryRecordStore,
    RecordStore,
)


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


class TestInMemoryRecordStore:
    def test_satisfies_protocol(self, store: InMemoryRecordStore) -> None:
        assert isinstance(store, RecordStore)

    async def test_insert_assigns_id(self, store: InMemoryRecordStore) -> None:
        record = await store.insert(STATIONS, {"name": "Pump", "address": "Road"})
        assert record["id"]
        assert store.count(STATIONS) == 1

    async def test_insert_keeps_given_id(self, store: InMemoryRecordStore) -> None:
        record = await store.insert(STATIONS, {"id": "st-1", "name": "Pump"})
        assert record["id"] == "st-1"

    async def test_duplicate_id_rejected(self, store: InMemoryRecordStore) -> None:
        await store.insert(STATIONS, {"id": "st-1"})
        with pytest.raises(PersistenceFailure):
            await store.insert(STATIONS, {"id": "st-1"})

    async def test_unknown_table(self, store: InMemoryRecordStore) -> None:
        with pytest.raises(PersistenceFailure) as exc_info:
            await store.insert("no_such_table", {"x": 1})
        assert exc_info.value.table == "no_such_table"

    async def test_get_by_filter(self, store: InMemoryRecordStore) -> None:
        await store.insert(STATIONS, {"id": "a", "name": "A"})
        await store.insert(STATIONS, {"id": "b", "name": "B"})
        record = await store.get(STATIONS, {"name": "B"})
        assert record is not None
        assert record["id"] == "b"
        assert await store.get(STATIONS, {"name": "C"}) is None

    async def test_select_filters(self, store: InMemoryRecordStore) -> None:
        await store.insert(REPORTS, {"id": "1", "station_id": "s", "is_verified": False})
        await store.insert(REPORTS, {"id": "2", "station_id": "s", "is_verified": True})
        await store.insert(REPORTS, {"id": "3", "station_id": "t", "is_verified": False})
        pending = await store.select(REPORTS, {"station_id": "s", "is_verified": False})
        assert [r["id"] for r in pending] == ["1"]
        assert len(await store.select(REPORTS)) == 3

    async def test_returned_records_are_copies(self, store: InMemoryRecordStore) -> None:
        record = await store.insert(STATIONS, {"id": "a", "name": "A"})
        record["name"] = "mutated"
        fetched = await store.get(STATIONS, {"id": "a"})
        assert fetched["name"] == "A"

    async def test_datetimes_round_trip_as_iso(self, store: InMemoryRecordStore) -> None:
        when = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)
        record = await store.insert(REPORTS, {"id": "r", "timestamp": when})
        assert datetime.fromisoformat(record["timestamp"]) == when

    async def test_update_patches_fields(self, store: InMemoryRecordStore) -> None:
        await store.insert(REPORTS, {"id": "r", "is_verified": False, "dve_score": 0.45})
        updated = await store.update(REPORTS, "r", {"is_verified": True})
        assert updated["is_verified"] is True
        assert updated["dve_score"] == 0.45

    async def test_update_missing_record(self, store: InMemoryRecordStore) -> None:
        with pytest.raises(PersistenceFailure):
            await store.update(REPORTS, "missing", {"is_verified": True})


class TestUpsert:
    async def test_creates_then_overwrites(self, store: InMemoryRecordStore) -> None:
        keys = ("station_id", "fuel_type")
        first = await store.upsert(
            VERIFIED_FUEL,
            {"station_id": "s", "fuel_type": "Diesel", "confidence_score": 0.6, "created_at": "t0"},
            keys,
        )
        second = await store.upsert(
            VERIFIED_FUEL,
            {"station_id": "s", "fuel_type": "Diesel", "confidence_score": 0.9, "created_at": "t1"},
            keys,
        )
        assert store.count(VERIFIED_FUEL) == 1
        assert second["id"] == first["id"]
        assert second["confidence_score"] == 0.9
        assert second["created_at"] == "t0"

    async def test_different_keys_are_separate(self, store: InMemoryRecordStore) -> None:
        keys = ("station_id", "fuel_type")
        await store.upsert(VERIFIED_FUEL, {"station_id": "s", "fuel_type": "Diesel"}, keys)
        await store.upsert(VERIFIED_FUEL, {"station_id": "s", "fuel_type": "CNG"}, keys)
        assert store.count(VERIFIED_FUEL) == 2

    async def test_requires_conflict_keys(self, store: InMemoryRecordStore) -> None:
        with pytest.raises(PersistenceFailure):
            await store.upsert(VERIFIED_FUEL, {"station_id": "s"}, ())

    async def test_concurrent_upserts_leave_one_complete_row(
        self, store: InMemoryRecordStore
    ) -> None:
        keys = ("station_id", "fuel_type")
        writes = [
            {"station_id": "s", "fuel_type": "E10", "confidence_score": i / 10, "verified_by_count": i}
            for i in range(1, 10)
        ]
        await asyncio.gather(*(store.upsert(VERIFIED_FUEL, w, keys) for w in writes))

        rows = await store.select(VERIFIED_FUEL)
        assert len(rows) == 1
        final = (rows[0]["confidence_score"], rows[0]["verified_by_count"])
        assert final in {(w["confidence_score"], w["verified_by_count"]) for w in writes}
