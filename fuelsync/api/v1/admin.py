"""DVE administration endpoints for FuelSync v1.

Exposes the admin dashboard snapshot, the reprocessing catch-up pass,
manual trust adjustments and a catalogue-wide station geocoding pass.
All routes require ``X-Admin-API-Key`` when an admin key is configured.
"""

from __future__ import annotations

import hmac

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from fuelsync.models.enums import TrustDirection
from fuelsync.models.station import StationGeocodeResult
from fuelsync.models.trust import UserTrust
from fuelsync.models.verification import AdminSnapshot, ReprocessResult

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


def _require_admin_api_key(request: Request) -> None:
    """Enforce ``X-Admin-API-Key`` when a key is configured.

    With no ``admin_api_key`` set the DVE dashboard stays open, which
    is how the service runs locally.
    """
    from config.settings import settings

    configured_key = settings.admin_api_key
    if not configured_key:
        return

    provided_key = request.headers.get("X-Admin-API-Key", "")
    if not hmac.compare_digest(provided_key.encode(), configured_key.encode()):
        logger.warning("api.admin.rejected_key", path=request.url.path)
        raise HTTPException(
            status_code=403,
            detail="Invalid or missing X-Admin-API-Key header.",
        )


router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(_require_admin_api_key)],
)


class TrustAdjustRequest(BaseModel):
    """Request body for a manual trust adjustment."""

    direction: TrustDirection


def _get_pipeline(request: Request):
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(status_code=503, detail="Report pipeline not initialised.")
    return pipeline


@router.get("/snapshot", response_model=AdminSnapshot)
async def get_admin_snapshot(request: Request) -> AdminSnapshot:
    """Recent reports, trust scores, verified data and the active DVE config."""
    return await _get_pipeline(request).get_admin_snapshot()


@router.post("/reprocess", response_model=ReprocessResult)
async def reprocess_pending(request: Request) -> ReprocessResult:
    """Re-run auto-verify and consensus over all pending reports."""
    result = await _get_pipeline(request).reprocess_pending()
    logger.info("api.admin.reprocessed", verified_count=result.verified_count)
    return result


@router.post("/trust/{user_id}/adjust", response_model=UserTrust)
async def adjust_trust(user_id: str, body: TrustAdjustRequest, request: Request) -> UserTrust:
    """Raise or lower a reporter's trust by one configured step."""
    trust = await _get_pipeline(request).trust.adjust(user_id, body.direction)
    logger.info(
        "api.admin.trust_adjusted",
        user_id=user_id,
        direction=str(body.direction),
        trust_score=trust.trust_score,
    )
    return trust


@router.post("/stations/geocode", response_model=StationGeocodeResult)
async def geocode_missing_stations(request: Request) -> StationGeocodeResult:
    """Geocode every catalogue station that still has no coordinates."""
    result = await _get_pipeline(request).geocode_missing_stations()
    logger.info("api.admin.stations_geocoded", checked=result.checked, geocoded=result.geocoded)
    return result
