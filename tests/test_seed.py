"""Tests for station catalogue loading and seeding."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from fuelsync.data.seed import load_stations, seed_stations
from fuelsync.services.store import STATIONS, InMemoryRecordStore


class TestLoadStations:
    def test_bundled_catalogue(self) -> None:
        stations = load_stations()
        assert len(stations) == 6
        assert len({s.id for s in stations}) == 6
        by_legacy = {s.legacy_id: s for s in stations}
        assert by_legacy[1].name == "Indian Oil - Koramangala"
        assert by_legacy[4].coordinates is None
        assert by_legacy[6].coordinates is None

    def test_skips_malformed_entries(self, tmp_path: Path) -> None:
        path = tmp_path / "stations.json"
        path.write_text(
            json.dumps([{"name": "Good", "address": "Road"}, {"legacy_id": 9}]),
            encoding="utf-8",
        )
        stations = load_stations(path)
        assert [s.name for s in stations] == ["Good"]

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_stations(tmp_path / "missing.json")


class TestSeedStations:
    async def test_seeds_once(self) -> None:
        store = InMemoryRecordStore()
        assert await seed_stations(store) == 6
        assert await seed_stations(store) == 0
        assert store.count(STATIONS) == 6
