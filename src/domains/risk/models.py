"""Pydantic models for the risk domain."""

import uuid
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import business_timezone


class RiskLevel(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class IdentifierType(StrEnum):
    EMAIL = "email"
    IP = "ip"


class ReviewDecision(StrEnum):
    APPROVE = "approve"
    REJECT = "reject"


class BlacklistAction(StrEnum):
    ADD = "add"
    REMOVE = "remove"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def localize(moment: datetime) -> datetime:
    """Attach the business timezone to a naive datetime; aware ones pass through."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=business_timezone())
    return moment


class TransactionAttempt(BaseModel):
    """A single payment attempt as seen immediately before capture."""

    model_config = ConfigDict(frozen=True)

    email: str
    amount: float
    tour_id: str
    country_code: str = ""
    ip_address: str | None = None
    occurred_at: datetime = Field(default_factory=_utcnow)
    booking_id: str | None = None
    user_agent: str | None = None

    @field_validator("occurred_at")
    @classmethod
    def _aware_occurred_at(cls, value: datetime) -> datetime:
        return localize(value)

    @property
    def timestamp_ms(self) -> int:
        return int(self.occurred_at.timestamp() * 1000)


class RiskFactors(BaseModel):
    unusual_amount: bool = False
    unusual_time: bool = False
    unusual_location: bool = False
    unusual_device: bool = False
    multiple_bookings: bool = False
    recent_failures: bool = False
    known_bad_actor: bool = False

    def triggered(self) -> list[str]:
        return [name for name, value in self.model_dump().items() if value]


class FactorResult(BaseModel):
    factor: str
    triggered: bool
    weight: int = 0
    unavailable: bool = False
    details: dict = Field(default_factory=dict)


class RiskScore(BaseModel):
    score: int = Field(ge=0)
    level: RiskLevel
    factors: RiskFactors = Field(default_factory=RiskFactors)
    # Set when one or more factors could not be evaluated (store unreachable)
    degraded: bool = False
    unavailable_factors: list[str] = []


class BlacklistEntry(BaseModel):
    identifier: str
    identifier_type: IdentifierType
    reason: str
    added_by: str
    added_at: datetime = Field(default_factory=_utcnow)
    expires_at: datetime | None = None

    @field_validator("added_at", "expires_at")
    @classmethod
    def _aware_times(cls, value: datetime | None) -> datetime | None:
        return localize(value) if value is not None else None

    def is_live(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return True
        return self.expires_at > localize(now or _utcnow())


class BlacklistAuditEvent(BaseModel):
    action: BlacklistAction
    timestamp: datetime = Field(default_factory=_utcnow)
    identifier: str
    identifier_type: IdentifierType
    actor: str
    entry: BlacklistEntry | None = None


class ReviewQueueEntry(BaseModel):
    entry_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    attempt: TransactionAttempt
    risk_score: RiskScore
    queued_at: datetime = Field(default_factory=_utcnow)
    decision: ReviewDecision | None = None
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    notes: str | None = None

    @field_validator("queued_at", "reviewed_at")
    @classmethod
    def _aware_times(cls, value: datetime | None) -> datetime | None:
        return localize(value) if value is not None else None

    @property
    def is_decided(self) -> bool:
        return self.decision is not None


class ReviewCleanupResult(BaseModel):
    pending_removed: int = 0
    decisions_removed: int = 0
