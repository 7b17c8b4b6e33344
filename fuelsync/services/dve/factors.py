"""Recency and proximity weights that feed the DVE score.

Recency
-------
``factor = 0.5 ** (age_hours / recency_half_life_h)``, forced to exactly
``0`` once the report is older than ``max_age_h`` (a hard cutoff, not
just asymptotic decay).

Proximity
---------
+--------------------------------------+---------------------+-------+
| Situation                            | Factor              | Valid |
+--------------------------------------+---------------------+-------+
| manual (self-reported) location      | ``manual_penalty``  | yes   |
| distance > ``max_distance_km``       | 0                   | no    |
| distance <= ``optimal_distance_km``  | 1.0                 | yes   |
| in between                           | linear 1.0 -> 0     | yes   |
+--------------------------------------+---------------------+-------+
"""

from __future__ import annotations

from datetime import datetime

from config.dve import DVEConfig
from fuelsync.models.report import ProximityResult
from fuelsync.services.dve.geo import haversine_distance


def recency_factor_for_age(age_hours: float, config: DVEConfig) -> float:
    """Exponential decay weight for a report *age_hours* old."""
    if age_hours > config.max_age_h:
        return 0.0
    age_hours = max(0.0, age_hours)
    return 0.5 ** (age_hours / config.recency_half_life_h)


def recency_factor(reported_at: datetime, now: datetime, config: DVEConfig) -> float:
    """Exponential decay weight for a report submitted at *reported_at*.

    Timestamps in the future (clock skew between devices) count as
    age zero.
    """
    age_hours = (now - reported_at).total_seconds() / 3600
    return recency_factor_for_age(age_hours, config)


def proximity_factor(
    user_lat: float,
    user_lon: float,
    station_lat: float,
    station_lon: float,
    config: DVEConfig,
    *,
    manual: bool = False,
) -> ProximityResult:
    """Weight a report by how close the reporter stood to the station."""
    distance = haversine_distance(user_lat, user_lon, station_lat, station_lon)

    if manual:
        # Distance is kept for diagnostics only
        return ProximityResult(
            factor=config.manual_penalty,
            distance_km=distance,
            valid=True,
            manual=True,
        )

    if distance > config.max_distance_km:
        return ProximityResult(factor=0.0, distance_km=distance, valid=False)

    if distance <= config.optimal_distance_km:
        return ProximityResult(factor=1.0, distance_km=distance, valid=True)

    span = config.max_distance_km - config.optimal_distance_km
    factor = 1.0 - (distance - config.optimal_distance_km) / span
    return ProximityResult(
        factor=min(1.0, max(0.0, factor)),
        distance_km=distance,
        valid=True,
    )
