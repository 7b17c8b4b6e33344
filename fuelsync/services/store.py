"""Generic record store used by the Data Verification Engine.

The DVE never talks to a database directly; it goes through the small
async :class:`RecordStore` interface below.  The bundled
:class:`InMemoryRecordStore` keeps every row as *orjson*-encoded bytes,
so callers always receive fresh, JSON-shaped copies (exactly what a
remote store would hand back) and can never mutate stored state by
accident.

Tables
------
``fuel_stations``         station catalogue (coordinates may be backfilled)
``crowdsourced_reports``  scored reports, frozen at submission
``user_trust_scores``     per-reporter trust records
``verified_fuel_data``    published availability, keyed by station + fuel
"""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from collections.abc import Iterable, Mapping
from typing import Any, Final, Protocol, runtime_checkable
from uuid import uuid4

import orjson
import structlog

from fuelsync.exceptions import PersistenceFailure

logger = structlog.get_logger(__name__)

STATIONS: Final[str] = "fuel_stations"
REPORTS: Final[str] = "crowdsourced_reports"
USER_TRUST: Final[str] = "user_trust_scores"
VERIFIED_FUEL: Final[str] = "verified_fuel_data"

ALL_TABLES: Final[tuple[str, ...]] = (STATIONS, REPORTS, USER_TRUST, VERIFIED_FUEL)

Record = dict[str, Any]


# ---------------------------------------------------------------------------
# Store protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class RecordStore(Protocol):
    """Async record store interface consumed by the DVE."""

    async def get(self, table: str, filters: Mapping[str, Any]) -> Record | None: ...

    async def select(
        self, table: str, filters: Mapping[str, Any] | None = None
    ) -> list[Record]: ...

    async def insert(self, table: str, record: Mapping[str, Any]) -> Record: ...

    async def update(self, table: str, record_id: str, patch: Mapping[str, Any]) -> Record: ...

    async def upsert(
        self,
        table: str,
        record: Mapping[str, Any],
        conflict_keys: Iterable[str],
    ) -> Record: ...


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------


def _encode(record: Mapping[str, Any]) -> bytes:
    return orjson.dumps(dict(record))


def _decode(raw: bytes) -> Record:
    return orjson.loads(raw)


def _matches(record: Mapping[str, Any], filters: Mapping[str, Any] | None) -> bool:
    if not filters:
        return True
    return all(record.get(key) == value for key, value in filters.items())


class InMemoryRecordStore:
    """Process-local :class:`RecordStore` with insertion-ordered tables.

    All operations take a single :class:`asyncio.Lock`, so ``upsert``
    is atomic with respect to its conflict key: concurrent upserts for
    the same key always leave exactly one complete row behind.
    """

    __slots__ = ("_lock", "_tables")

    def __init__(self, tables: Iterable[str] = ALL_TABLES) -> None:
        self._tables: dict[str, OrderedDict[str, bytes]] = {
            name: OrderedDict() for name in tables
        }
        self._lock = asyncio.Lock()

    def _table(self, table: str) -> OrderedDict[str, bytes]:
        try:
            return self._tables[table]
        except KeyError:
            raise PersistenceFailure(f"Unknown table: {table}", table=table) from None

    # -- RecordStore interface -------------------------------------------------

    async def get(self, table: str, filters: Mapping[str, Any]) -> Record | None:
        async with self._lock:
            for raw in self._table(table).values():
                record = _decode(raw)
                if _matches(record, filters):
                    return record
        return None

    async def select(
        self, table: str, filters: Mapping[str, Any] | None = None
    ) -> list[Record]:
        async with self._lock:
            rows = [_decode(raw) for raw in self._table(table).values()]
        return [row for row in rows if _matches(row, filters)]

    async def insert(self, table: str, record: Mapping[str, Any]) -> Record:
        row = dict(record)
        row.setdefault("id", uuid4().hex)
        async with self._lock:
            rows = self._table(table)
            if row["id"] in rows:
                raise PersistenceFailure(
                    f"Duplicate id {row['id']!r} in {table}", table=table
                )
            encoded = rows[row["id"]] = _encode(row)
        return _decode(encoded)

    async def update(self, table: str, record_id: str, patch: Mapping[str, Any]) -> Record:
        async with self._lock:
            rows = self._table(table)
            raw = rows.get(record_id)
            if raw is None:
                raise PersistenceFailure(
                    f"No record {record_id!r} in {table}", table=table
                )
            row = _decode(raw)
            row.update(patch)
            row["id"] = record_id
            encoded = rows[record_id] = _encode(row)
        return _decode(encoded)

    async def upsert(
        self,
        table: str,
        record: Mapping[str, Any],
        conflict_keys: Iterable[str],
    ) -> Record:
        keys = tuple(conflict_keys)
        if not keys:
            raise PersistenceFailure("upsert requires at least one conflict key", table=table)
        incoming = dict(record)
        key_filter = {key: incoming.get(key) for key in keys}

        async with self._lock:
            rows = self._table(table)
            for record_id, raw in rows.items():
                existing = _decode(raw)
                if _matches(existing, key_filter):
                    # Identity and creation time survive an overwrite
                    incoming["id"] = record_id
                    if "created_at" in existing:
                        incoming["created_at"] = existing["created_at"]
                    encoded = rows[record_id] = _encode(incoming)
                    return _decode(encoded)

            incoming.setdefault("id", uuid4().hex)
            encoded = rows[incoming["id"]] = _encode(incoming)
        return _decode(encoded)

    # -- Introspection ---------------------------------------------------------

    def count(self, table: str) -> int:
        """Return the number of rows currently held in *table*."""
        return len(self._table(table))
