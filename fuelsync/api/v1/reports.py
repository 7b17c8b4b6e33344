"""Fuel report submission endpoint for FuelSync v1.

Every submission is scored by the Data Verification Engine and saved,
whether it is accepted or rejected.  The response always carries the
full score breakdown so the reporter can see why a report was (or was
not) accepted.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from fuelsync.exceptions import PersistenceFailure, ReportValidationError, StationNotFoundError
from fuelsync.models.report import SubmissionResult

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/reports", tags=["reports"])


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class SubmitReportRequest(BaseModel):
    """Request body for a fuel availability report."""

    station_id: str = Field(..., max_length=100, description="ID of the fuel station")
    fuel_type: str = Field(..., max_length=50, description="E10, E20, Pure Petrol, Diesel or CNG")
    user_id: str = Field(..., max_length=200, description="Anonymous reporter ID")
    user_lat: float = Field(..., description="Reporter latitude (decimal degrees)")
    user_lon: float = Field(..., description="Reporter longitude (decimal degrees)")
    is_manual_location: bool = Field(
        default=False,
        description="True when the location was entered by hand instead of device GPS",
    )


class SubmitReportResponse(BaseModel):
    """Response returned after a report was scored and saved."""

    success: bool = True
    report_id: str
    dve_result: SubmissionResult


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


def _get_pipeline(request: Request):
    """Retrieve the report pipeline from app state, or raise 503."""
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(status_code=503, detail="Report pipeline not initialised.")
    return pipeline


@router.post("", response_model=SubmitReportResponse, status_code=201)
async def submit_report(body: SubmitReportRequest, request: Request) -> SubmitReportResponse:
    """Submit a fuel availability report.

    Reports farther than the maximum distance from the station, or
    scoring below the verification threshold, are saved as rejected and
    the reason is returned.  High-scoring reports are verified at once;
    others count towards consensus for the station and fuel type.
    """
    pipeline = _get_pipeline(request)

    try:
        result = await pipeline.submit_report(
            station_id=body.station_id,
            fuel_type=body.fuel_type,
            user_id=body.user_id,
            user_lat=body.user_lat,
            user_lon=body.user_lon,
            is_manual_location=body.is_manual_location,
        )
    except ReportValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except StationNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Station not found") from exc
    except PersistenceFailure as exc:
        logger.error("api.reports.persistence_failed", error=str(exc))
        raise HTTPException(status_code=500, detail="Failed to save report") from exc

    logger.info(
        "api.reports.submitted",
        report_id=result.report_id,
        station_id=body.station_id,
        status=str(result.status),
    )
    return SubmitReportResponse(report_id=result.report_id, dve_result=result)
