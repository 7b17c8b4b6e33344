"""Station catalogue and verified availability endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException, Request

from fuelsync.models.station import Station
from fuelsync.models.verification import StationAvailability
from fuelsync.services.store import STATIONS

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/stations", tags=["stations"])


@router.get("", response_model=list[Station])
async def list_stations(request: Request) -> list[Station]:
    """List every known fuel station."""
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Record store not available")
    return [Station.model_validate(s) for s in await store.select(STATIONS)]


@router.get("/verified", response_model=list[StationAvailability])
async def list_verified_fuel(request: Request) -> list[StationAvailability]:
    """Verified fuel availability grouped by station, for the map."""
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(status_code=503, detail="Report pipeline not initialised.")
    return await pipeline.publisher.available_by_station()
