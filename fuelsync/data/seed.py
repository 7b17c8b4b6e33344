"""Station catalogue seeding.

Loads fuel stations from the bundled ``stations.json`` file and inserts
them into the record store at startup.  Seeding only happens while the
station table is empty, so restarts never duplicate the catalogue.
Stations may ship without coordinates; those are geocoded on first use.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from fuelsync.models.station import Station
from fuelsync.services.store import STATIONS

if TYPE_CHECKING:
    from fuelsync.services.store import RecordStore

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

_DATA_DIR: Path = Path(__file__).resolve().parent / "stations"
_STATIONS_PATH: Path = _DATA_DIR / "stations.json"


def load_stations(path: Path | None = None) -> list[Station]:
    """Load fuel stations from a JSON file.

    Parameters
    ----------
    path:
        Path to the JSON file.  Defaults to the bundled ``stations.json``.

    Raises
    ------
    FileNotFoundError
        If the JSON file does not exist.
    json.JSONDecodeError
        If the JSON is malformed.
    """
    file_path = path or _STATIONS_PATH

    if not file_path.exists():
        raise FileNotFoundError(f"Station data file not found: {file_path}")

    with file_path.open("r", encoding="utf-8") as f:
        raw_stations: list[dict] = json.load(f)

    stations: list[Station] = []
    for raw in raw_stations:
        try:
            stations.append(
                Station(
                    name=raw["name"],
                    address=raw["address"],
                    lat=raw.get("lat") or None,
                    lon=raw.get("lon") or None,
                    legacy_id=raw.get("legacy_id"),
                )
            )
        except (KeyError, ValueError):
            logger.warning(
                "seed.parse_error",
                legacy_id=raw.get("legacy_id", "unknown"),
                exc_info=True,
            )

    logger.info("seed.loaded_stations", count=len(stations), source=str(file_path))
    return stations


async def seed_stations(store: RecordStore, path: Path | None = None) -> int:
    """Insert the station catalogue if the store holds no stations yet.

    Returns the number of stations inserted (0 when already seeded).
    """
    if await store.get(STATIONS, {}) is not None:
        logger.info("seed.stations_already_present")
        return 0

    stations = load_stations(path)
    for station in stations:
        await store.insert(STATIONS, station.model_dump())

    logger.info("seed.stations_inserted", count=len(stations))
    return len(stations)
