"""Per-reporter trust records."""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, Field


class UserTrust(BaseModel):
    """Reliability weight of a single (anonymous) reporter.

    ``trust_score`` always stays inside the configured
    ``[min_trust, max_trust]`` band; the counters track how many of the
    user's reports were later confirmed or contradicted.
    """

    id: str = Field(default_factory=lambda: uuid4().hex)
    user_id: str
    trust_score: float = Field(ge=0.0, le=1.0)
    total_reports: int = Field(default=0, ge=0)
    correct_reports: int = Field(default=0, ge=0)
    incorrect_reports: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
