"""Multi-report consensus for a station + fuel type pair.

Accepted reports that did not clear the auto-verify bar on their own
are pooled per ``(station_id, fuel_type)``:

- ``unique_reporters`` = distinct user ids in the group
- ``average_score``    = mean of the frozen per-report scores
- ``promoted_score``   = ``min(1.0, average_score + consensus_bonus)``

A group is promoted when it holds at least ``min_reports_for_consensus``
reports *and* ``promoted_score >= verification_threshold``.  Promotion
publishes the pair and marks every member report verified.  Groups that
miss the bar are left alone and re-evaluated on the next report or
reprocessing pass.

Idempotency
-----------
Only reports that are accepted and not yet verified are ever pooled, so
re-running the aggregator never double-counts a promoted report.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

import structlog

from config.dve import DVEConfig
from fuelsync.models.report import FuelReport
from fuelsync.models.verification import ConsensusOutcome
from fuelsync.services.dve.clock import Clock, SystemClock
from fuelsync.services.dve.publisher import VerificationPublisher
from fuelsync.services.store import REPORTS, RecordStore

logger = structlog.get_logger(__name__)


class ConsensusAggregator:
    """Evaluate and promote pending report groups."""

    def __init__(
        self,
        store: RecordStore,
        publisher: VerificationPublisher,
        config: DVEConfig,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._publisher = publisher
        self._config = config
        self._clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Pure evaluation
    # ------------------------------------------------------------------

    def evaluate(
        self,
        station_id: str,
        fuel_type: str,
        reports: Sequence[FuelReport],
    ) -> ConsensusOutcome:
        """Compute the aggregate confidence of *reports* without side effects."""
        if not reports:
            return ConsensusOutcome(station_id=station_id, fuel_type=fuel_type)

        unique_reporters = len({r.user_id for r in reports})
        average_score = sum(r.dve_score for r in reports) / len(reports)
        promoted_score = min(1.0, average_score + self._config.consensus_bonus)
        promoted = (
            len(reports) >= self._config.min_reports_for_consensus
            and promoted_score >= self._config.verification_threshold
        )

        return ConsensusOutcome(
            station_id=station_id,
            fuel_type=fuel_type,
            report_count=len(reports),
            unique_reporters=unique_reporters,
            average_score=average_score,
            promoted_score=promoted_score,
            promoted=promoted,
        )

    # ------------------------------------------------------------------
    # Store-backed aggregation
    # ------------------------------------------------------------------

    async def pending_reports(self, station_id: str, fuel_type: str) -> list[FuelReport]:
        """Accepted, unverified reports for the pair within the recency window."""
        records = await self._store.select(
            REPORTS,
            {
                "station_id": station_id,
                "fuel_type": fuel_type,
                "is_rejected": False,
                "is_verified": False,
            },
        )
        return self._poolable(
            station_id, fuel_type, [FuelReport.model_validate(r) for r in records]
        )

    def _poolable(
        self, station_id: str, fuel_type: str, reports: Sequence[FuelReport]
    ) -> list[FuelReport]:
        cutoff: datetime = self._clock.now() - timedelta(hours=self._config.max_age_h)
        return [
            r
            for r in reports
            if r.station_id == station_id
            and r.fuel_type == fuel_type
            and not r.is_rejected
            and not r.is_verified
            and r.timestamp >= cutoff
        ]

    async def aggregate(
        self,
        station_id: str,
        fuel_type: str,
        reports: Sequence[FuelReport] | None = None,
    ) -> ConsensusOutcome:
        """Evaluate the pair's pending group and promote it if it clears the bar.

        When *reports* is given only those reports are considered (still
        filtered to pending members of the pair inside the recency
        window); otherwise the group is read from the store.
        """
        if reports is None:
            group = await self.pending_reports(station_id, fuel_type)
        else:
            group = self._poolable(station_id, fuel_type, reports)
        outcome = self.evaluate(station_id, fuel_type, group)

        if not outcome.promoted:
            logger.info(
                "dve.consensus_pending",
                station_id=station_id,
                fuel_type=fuel_type,
                report_count=outcome.report_count,
                promoted_score=round(outcome.promoted_score, 4),
            )
            return outcome

        await self._publisher.publish(
            station_id,
            fuel_type,
            outcome.promoted_score,
            outcome.unique_reporters,
        )
        for report in group:
            await self._store.update(REPORTS, report.id, {"is_verified": True})

        logger.info(
            "dve.consensus_promoted",
            station_id=station_id,
            fuel_type=fuel_type,
            report_count=outcome.report_count,
            unique_reporters=outcome.unique_reporters,
            promoted_score=round(outcome.promoted_score, 4),
        )
        return outcome.model_copy(update={"newly_verified": len(group)})
