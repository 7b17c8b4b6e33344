"""FuelSync service layer -- record store, geocoding and the DVE."""

from __future__ import annotations

from fuelsync.services.geocoding import GeoapifyGeocoder, Geocoder, NullGeocoder
from fuelsync.services.store import InMemoryRecordStore, RecordStore

__all__ = [
    "GeoapifyGeocoder",
    "Geocoder",
    "InMemoryRecordStore",
    "NullGeocoder",
    "RecordStore",
]
