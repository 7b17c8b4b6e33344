"""Application settings loaded from environment variables.

Uses pydantic-settings for validation and type coercion. Every key uses
the ``FUELSYNC_`` prefix; DVE tuning constants are nested under ``dve``
and can be overridden individually, e.g. ``FUELSYNC_DVE__MAX_DISTANCE_KM=3``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from config.dve import DVEConfig


class Environment(StrEnum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Central configuration for the FuelSync service.

    Environment variables are loaded from a ``.env`` file when present.
    """

    model_config = SettingsConfigDict(
        env_prefix="FUELSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    # ── App ────────────────────────────────────────────────────────────
    env: Literal["development", "production"] = "development"

    # ── Logging ────────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "json"

    # ── Geocoding (Geoapify) ───────────────────────────────────────────
    geocoding_enabled: bool = True
    geoapify_api_key: str = ""
    geocoder_base_url: str = "https://api.geoapify.com"
    geocoder_timeout_seconds: float = Field(default=5.0, gt=0.0)

    # ── Admin API Key ──────────────────────────────────────────────────
    admin_api_key: str = ""

    # ── Station seed data ──────────────────────────────────────────────
    stations_seed_path: str | None = None
    seed_stations_on_startup: bool = True
    geocode_stations_on_startup: bool = True

    # ── Data Verification Engine ───────────────────────────────────────
    dve: DVEConfig = Field(default_factory=DVEConfig)

    # ── Derived Properties ─────────────────────────────────────────────

    @property
    def is_production(self) -> bool:
        return self.env == Environment.PRODUCTION


# Module-level singleton, import ``settings`` everywhere.
settings = Settings()
