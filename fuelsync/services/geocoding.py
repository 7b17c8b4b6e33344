"""Forward geocoding of station addresses.

Stations imported without coordinates are geocoded lazily, the first time
someone reports at them.  Geocoding is best-effort: a failed lookup never
blocks a submission, the pipeline falls back to a documented
approximation instead.

The production backend is the Geoapify search API::

    GET {base_url}/v1/geocode/search?text=<address>&apiKey=<key>

which answers with GeoJSON; the first feature's ``[lon, lat]`` pair is
taken as the station location.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from fuelsync.exceptions import GeocodingUnavailable
from fuelsync.models.station import Coordinates

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

_SEARCH_PATH = "/v1/geocode/search"


@runtime_checkable
class Geocoder(Protocol):
    """Resolve a free-text address to coordinates.

    Returns ``None`` when the address has no match; raises
    :class:`GeocodingUnavailable` when the lookup itself failed.
    """

    async def resolve(self, address: str) -> Coordinates | None: ...


class NullGeocoder:
    """Geocoder used when lookups are disabled or no API key is set."""

    async def resolve(self, address: str) -> Coordinates | None:
        logger.debug("geocoding.disabled", address=address)
        return None

    async def close(self) -> None:
        return None


class GeoapifyGeocoder:
    """Geoapify forward-geocoding client.

    Parameters
    ----------
    api_key:
        Geoapify API key.
    base_url:
        API root, overridable for tests and proxies.
    timeout:
        Per-request timeout in seconds.
    transport:
        Optional custom :mod:`httpx` transport (e.g. ``httpx.MockTransport``).
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://api.geoapify.com",
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={
                "User-Agent": "FuelSync/1.0 (fuel availability verification)",
                "Accept": "application/json",
            },
            transport=transport,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        reraise=True,
    )
    async def _search(self, address: str) -> httpx.Response:
        response = await self._client.get(
            _SEARCH_PATH,
            params={"text": address, "apiKey": self._api_key},
        )
        response.raise_for_status()
        return response

    async def resolve(self, address: str) -> Coordinates | None:
        if not address or not address.strip():
            return None

        try:
            response = await self._search(address)
            payload = response.json()
        except httpx.HTTPError as exc:
            logger.warning("geocoding.request_failed", address=address, error=str(exc))
            raise GeocodingUnavailable(f"Geocoding request failed: {exc}") from exc
        except ValueError as exc:
            logger.warning("geocoding.invalid_response", address=address, error=str(exc))
            raise GeocodingUnavailable("Geocoding response was not valid JSON") from exc

        features = payload.get("features") if isinstance(payload, dict) else None
        features = features or []
        if not features:
            logger.info("geocoding.no_match", address=address)
            return None

        try:
            lon, lat = features[0]["geometry"]["coordinates"][:2]
            coords = Coordinates(lat=float(lat), lon=float(lon))
        except (KeyError, TypeError, ValueError) as exc:
            raise GeocodingUnavailable("Geocoding response had no usable coordinates") from exc

        logger.info("geocoding.resolved", address=address, lat=coords.lat, lon=coords.lon)
        return coords
