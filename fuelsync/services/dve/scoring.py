"""DVE report scoring and the accept / reject policy.

Score Calculation
-----------------
- ``raw = trust x recency x proximity`` -- naturally in ``[0, 1]``.
- ``score = min(1.0, raw x score_amplifier)`` -- the amplifier (10 by
  default) is a calibration constant kept apart from the raw formula.

Decision
--------
1. Invalid proximity (reporter beyond ``max_distance_km``) -> rejected,
   "too far", regardless of trust or recency.
2. ``score < verification_threshold`` -> rejected, "score too low".
3. Otherwise accepted.

Rejections are normal outcomes and always carry the numeric basis in
their reason string.
"""

from __future__ import annotations

import structlog

from config.dve import DVEConfig
from fuelsync.models.report import ProximityResult, ScoringDecision

logger = structlog.get_logger(__name__)


def too_far_reason(distance_km: float) -> str:
    return f"User too far from station ({distance_km:.2f}km)"


def below_threshold_reason(score: float, threshold: float) -> str:
    return (
        f"DVE score too low ({score * 100:.1f}% < {threshold * 100:.0f}% threshold). "
        "Try reporting from closer to the station."
    )


class ScoringEngine:
    """Combine trust, recency and proximity into a single report score.

    Pure computation: the caller resolves the reporter's trust and the
    two factors; nothing is read from or written to storage here.
    """

    def __init__(self, config: DVEConfig) -> None:
        self._config = config

    @property
    def config(self) -> DVEConfig:
        return self._config

    def amplify(self, raw_score: float) -> float:
        """Apply the calibration amplifier and clamp to ``[0, 1]``."""
        return max(0.0, min(1.0, raw_score * self._config.score_amplifier))

    def score(
        self,
        trust: float,
        recency_factor: float,
        proximity: ProximityResult,
    ) -> ScoringDecision:
        if not proximity.valid:
            return ScoringDecision(
                score=0.0,
                raw_score=0.0,
                rejected=True,
                reason=too_far_reason(proximity.distance_km),
            )

        raw_score = trust * recency_factor * proximity.factor
        score = self.amplify(raw_score)

        if proximity.manual:
            logger.debug(
                "dve.manual_location_penalty",
                penalty=self._config.manual_penalty,
                score=round(score, 4),
            )

        threshold = self._config.verification_threshold
        if score < threshold:
            return ScoringDecision(
                score=score,
                raw_score=raw_score,
                rejected=True,
                reason=below_threshold_reason(score, threshold),
            )

        return ScoringDecision(score=score, raw_score=raw_score, rejected=False)
