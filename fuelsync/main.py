"""FuelSync FastAPI application entry point.

Creates the FastAPI app, configures structured logging, includes the
API router and manages the lifecycle of the record store, geocoder and
Data Verification Engine pipeline.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from config.settings import settings
from fuelsync.api.router import api_router

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Structured logging configuration
# ---------------------------------------------------------------------------


def _configure_logging() -> None:
    """Set up structlog with JSON or console rendering based on settings."""
    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelNamesMapping()[settings.log_level.upper()],
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage startup and shutdown of FuelSync services.

    On startup:
      1. Initialise the record store
      2. Seed the station catalogue (first start only)
      3. Initialise the geocoder
      4. Build the DVE report pipeline
      5. Geocode catalogue stations that have no coordinates
      6. Store everything on ``app.state``

    On shutdown:
      - Close the geocoder HTTP client.
    """
    _configure_logging()
    logger.info("app.startup", env=settings.env)

    app.state.start_time = time.time()

    # -- 1. Record store ----------------------------------------------------
    from fuelsync.services.store import InMemoryRecordStore

    store = InMemoryRecordStore()
    app.state.store = store
    logger.info("app.store_initialised")

    # -- 2. Station catalogue -----------------------------------------------
    if settings.seed_stations_on_startup:
        from fuelsync.data.seed import seed_stations

        seed_path = Path(settings.stations_seed_path) if settings.stations_seed_path else None
        try:
            await seed_stations(store, seed_path)
        except (OSError, ValueError):
            logger.warning("app.station_seed_failed", exc_info=True)

    # -- 3. Geocoder --------------------------------------------------------
    from fuelsync.services.geocoding import GeoapifyGeocoder, NullGeocoder

    geocoder: GeoapifyGeocoder | NullGeocoder
    if settings.geocoding_enabled and settings.geoapify_api_key:
        geocoder = GeoapifyGeocoder(
            settings.geoapify_api_key,
            base_url=settings.geocoder_base_url,
            timeout=settings.geocoder_timeout_seconds,
        )
        logger.info("app.geocoder_initialised", provider="geoapify")
    else:
        geocoder = NullGeocoder()
        logger.warning("app.geocoder_disabled")
    app.state.geocoder = geocoder

    # -- 4. DVE pipeline ----------------------------------------------------
    from fuelsync.services.dve import ReportPipeline

    app.state.pipeline = ReportPipeline(
        store,
        settings.dve,
        geocoder=geocoder,
        geocode_timeout=settings.geocoder_timeout_seconds,
    )
    logger.info("app.pipeline_initialised", config=settings.dve.as_public_dict())

    # -- 5. Station coordinates ---------------------------------------------
    if settings.geocode_stations_on_startup and isinstance(geocoder, GeoapifyGeocoder):
        await app.state.pipeline.geocode_missing_stations()

    logger.info("app.startup_complete")

    yield

    # -- Shutdown -----------------------------------------------------------
    logger.info("app.shutdown_start")
    await geocoder.close()
    logger.info("app.shutdown_complete")


# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="FuelSync API",
    description=(
        "FuelSync -- crowdsourced real-time fuel availability with a "
        "trust-weighted Data Verification Engine (DVE)."
    ),
    version="0.1.0",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Admin-API-Key"],
)

# -- Include routers -------------------------------------------------------
app.include_router(api_router)
