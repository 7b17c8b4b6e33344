"""Top-level FuelSync API router.

Mounts every v1 route module under ``/api/v1``:

    * Reports: fuel availability submission, scored by the DVE
    * Stations: catalogue and verified availability for the map
    * Admin: DVE snapshot, reprocessing, manual trust adjustment
    * Health: liveness check
"""

from __future__ import annotations

from fastapi import APIRouter

from fuelsync.api.v1 import admin, health, reports, stations

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(reports.router)
api_router.include_router(stations.router)
api_router.include_router(admin.router)
api_router.include_router(health.router)
