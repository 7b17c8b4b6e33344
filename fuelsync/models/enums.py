"""Enumerations shared across FuelSync models and services."""

from __future__ import annotations

from enum import StrEnum


class FuelType(StrEnum):
    """Fuel grades a station can report as available."""

    __slots__ = ()

    E10 = "E10"
    E20 = "E20"
    PURE_PETROL = "Pure Petrol"
    DIESEL = "Diesel"
    CNG = "CNG"


class ReportStatus(StrEnum):
    """Lifecycle state of a crowdsourced report."""

    __slots__ = ()

    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class TrustDirection(StrEnum):
    """Direction of a trust adjustment for a reporter."""

    __slots__ = ()

    INCREASE = "increase"
    DECREASE = "decrease"
