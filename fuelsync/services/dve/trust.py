"""Per-reporter trust records.

Scoring only ever *reads* trust: the value in effect at submission time
is frozen into the report.  :meth:`TrustStore.adjust` is the pluggable
feedback capability for whatever later confirms or contradicts a
report (moderation, station operator feeds, ...); nothing in the
submission pipeline calls it on its own.
"""

from __future__ import annotations

import asyncio

import structlog

from config.dve import DVEConfig
from fuelsync.models.enums import TrustDirection
from fuelsync.models.trust import UserTrust
from fuelsync.services.dve.clock import Clock, SystemClock
from fuelsync.services.store import USER_TRUST, RecordStore

logger = structlog.get_logger(__name__)


class TrustStore:
    """Read, lazily create and adjust reporter trust scores."""

    def __init__(
        self,
        store: RecordStore,
        config: DVEConfig,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._config = config
        self._clock = clock or SystemClock()
        # Serialises get-or-create so a new user never gets two records
        self._create_lock = asyncio.Lock()
        # Serialises read-modify-write of trust scores
        self._adjust_lock = asyncio.Lock()

    async def get(self, user_id: str) -> UserTrust | None:
        record = await self._store.get(USER_TRUST, {"user_id": user_id})
        return UserTrust.model_validate(record) if record is not None else None

    async def get_or_create(self, user_id: str) -> UserTrust:
        """Return the user's trust record, creating it at ``initial_trust``."""
        existing = await self.get(user_id)
        if existing is not None:
            return existing

        async with self._create_lock:
            existing = await self.get(user_id)
            if existing is not None:
                return existing

            now = self._clock.now()
            trust = UserTrust(
                user_id=user_id,
                trust_score=self._config.initial_trust,
                created_at=now,
                updated_at=now,
            )
            record = await self._store.insert(USER_TRUST, trust.model_dump())
            logger.info(
                "dve.trust_created",
                user_id=user_id,
                trust_score=trust.trust_score,
            )
            return UserTrust.model_validate(record)

    async def adjust(self, user_id: str, direction: TrustDirection | str) -> UserTrust:
        """Move a user's trust one step up or down, clamped to the trust band.

        ``increase`` records a confirmed report (+``trust_increment``),
        ``decrease`` a contradicted one (-``trust_decrement``).
        """
        direction = TrustDirection(direction)
        async with self._adjust_lock:
            current = await self.get_or_create(user_id)

            if direction == TrustDirection.INCREASE:
                new_score = current.trust_score + self._config.trust_increment
                counters = {"correct_reports": current.correct_reports + 1}
            else:
                new_score = current.trust_score - self._config.trust_decrement
                counters = {"incorrect_reports": current.incorrect_reports + 1}

            new_score = min(self._config.max_trust, max(self._config.min_trust, new_score))
            patch = {
                "trust_score": round(new_score, 6),
                "total_reports": current.total_reports + 1,
                "updated_at": self._clock.now(),
                **counters,
            }
            record = await self._store.update(USER_TRUST, current.id, patch)

        logger.info(
            "dve.trust_adjusted",
            user_id=user_id,
            direction=str(direction),
            old_score=current.trust_score,
            new_score=patch["trust_score"],
        )
        return UserTrust.model_validate(record)

    async def list_all(self) -> list[UserTrust]:
        records = await self._store.select(USER_TRUST)
        return [UserTrust.model_validate(r) for r in records]
