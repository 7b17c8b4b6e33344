"""Data Verification Engine (DVE) tuning constants.

All scoring, consensus and trust parameters live in a single immutable
:class:`DVEConfig` value.  Components receive it through their
constructors, so tests (and alternative deployments) can run with
different thresholds side by side without touching module state.

+------------------------------+---------+----------------------------------+
| Field                        | Default | Meaning                          |
+------------------------------+---------+----------------------------------+
| initial_trust                |   0.5   | trust for a first-time reporter  |
| trust_increment              |   0.05  | step on a confirmed report       |
| trust_decrement              |   0.1   | step on a contradicted report    |
| min_trust / max_trust        | 0.1/1.0 | trust clamp                      |
| recency_half_life_h          |    24   | recency decay half-life (hours)  |
| max_age_h                    |   168   | hard recency cutoff (hours)      |
| max_distance_km              |   2.0   | beyond this a report is rejected |
| optimal_distance_km          |   0.5   | full proximity credit radius     |
| min_reports_for_consensus    |    1    | smallest promotable group        |
| consensus_threshold          |   0.6   | reported in the admin snapshot   |
| consensus_bonus              |   0.2   | added to a group's mean score    |
| verification_threshold       |   0.4   | minimum accepted score           |
| auto_verify_threshold        |   0.5   | single-report fast path          |
| manual_penalty               |   0.1   | proximity for manual locations   |
| score_amplifier              |   10.0  | calibration multiplier           |
+------------------------------+---------+----------------------------------+
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DVEConfig(BaseModel):
    """Immutable DVE parameter set."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # ── Trust ──────────────────────────────────────────────────────────
    initial_trust: float = Field(default=0.5, ge=0.0, le=1.0)
    trust_increment: float = Field(default=0.05, ge=0.0, le=1.0)
    trust_decrement: float = Field(default=0.1, ge=0.0, le=1.0)
    min_trust: float = Field(default=0.1, ge=0.0, le=1.0)
    max_trust: float = Field(default=1.0, ge=0.0, le=1.0)

    # ── Recency ────────────────────────────────────────────────────────
    recency_half_life_h: float = Field(default=24.0, gt=0.0)
    max_age_h: float = Field(default=168.0, gt=0.0)

    # ── Proximity ──────────────────────────────────────────────────────
    max_distance_km: float = Field(default=2.0, gt=0.0)
    optimal_distance_km: float = Field(default=0.5, ge=0.0)
    manual_penalty: float = Field(default=0.1, ge=0.0, le=1.0)

    # ── Scoring / consensus ────────────────────────────────────────────
    min_reports_for_consensus: int = Field(default=1, ge=1)
    consensus_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    consensus_bonus: float = Field(default=0.2, ge=0.0, le=1.0)
    verification_threshold: float = Field(default=0.4, ge=0.0, le=1.0)
    auto_verify_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    score_amplifier: float = Field(
        default=10.0,
        gt=0.0,
        description=(
            "Calibration multiplier applied on top of trust x recency x "
            "proximity before clamping to 1.0."
        ),
    )

    @model_validator(mode="after")
    def _check_ranges(self) -> DVEConfig:
        if self.min_trust > self.max_trust:
            raise ValueError("min_trust must not exceed max_trust")
        if not self.min_trust <= self.initial_trust <= self.max_trust:
            raise ValueError("initial_trust must lie within [min_trust, max_trust]")
        if self.optimal_distance_km >= self.max_distance_km:
            raise ValueError("optimal_distance_km must be smaller than max_distance_km")
        return self

    def as_public_dict(self) -> dict[str, Any]:
        """Export the parameters under their published constant names."""
        return {
            "INITIAL_TRUST_SCORE": self.initial_trust,
            "TRUST_INCREMENT": self.trust_increment,
            "TRUST_DECREMENT": self.trust_decrement,
            "MIN_TRUST_SCORE": self.min_trust,
            "MAX_TRUST_SCORE": self.max_trust,
            "TIME_DECAY_HALF_LIFE": self.recency_half_life_h,
            "MAX_REPORT_AGE_HOURS": self.max_age_h,
            "MAX_DISTANCE_KM": self.max_distance_km,
            "OPTIMAL_DISTANCE_KM": self.optimal_distance_km,
            "MIN_REPORTS_FOR_CONSENSUS": self.min_reports_for_consensus,
            "CONSENSUS_THRESHOLD": self.consensus_threshold,
            "CONSENSUS_BONUS": self.consensus_bonus,
            "VERIFICATION_THRESHOLD": self.verification_threshold,
            "HIGH_SCORE_AUTO_VERIFY": self.auto_verify_threshold,
            "MANUAL_LOCATION_PENALTY": self.manual_penalty,
            "SCORE_AMPLIFIER": self.score_amplifier,
        }


DEFAULT_DVE_CONFIG = DVEConfig()
