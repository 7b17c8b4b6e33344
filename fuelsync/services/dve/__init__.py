"""Data Verification Engine (DVE) for crowdsourced fuel reports.

Scores every report by ``trust x recency x proximity``, rejects reports
that are too far away or score too low, verifies strong reports on
their own and promotes weaker ones through multi-report consensus.

Public API::

    from fuelsync.services.dve import (
        ConsensusAggregator,
        ReportPipeline,
        ScoringEngine,
        TrustStore,
        VerificationPublisher,
    )
"""

from __future__ import annotations

from fuelsync.services.dve.consensus import ConsensusAggregator
from fuelsync.services.dve.pipeline import ReportPipeline, reporter_location_fallback
from fuelsync.services.dve.publisher import VerificationPublisher
from fuelsync.services.dve.scoring import ScoringEngine
from fuelsync.services.dve.trust import TrustStore

__all__ = [
    "ConsensusAggregator",
    "ReportPipeline",
    "ScoringEngine",
    "TrustStore",
    "VerificationPublisher",
    "reporter_location_fallback",
]
