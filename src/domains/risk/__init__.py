"""Transaction risk evaluation and manual review domain."""

from .blacklist import BlacklistStore, identifier_type_for
from .errors import (
    ReviewConflictError,
    RiskError,
    StoreUnavailableError,
    TransactionBlockedError,
    TransactionValidationError,
)
from .gate import RiskGate
from .history import TransactionHistoryStore
from .models import (
    BlacklistAuditEvent,
    BlacklistEntry,
    IdentifierType,
    ReviewDecision,
    ReviewQueueEntry,
    RiskFactors,
    RiskLevel,
    RiskScore,
    TransactionAttempt,
)
from .reference import ReferenceData, ReferenceDataProvider
from .review_queue import ReviewQueue
from .scorer import RiskScorer, classify_level

__all__ = [
    "BlacklistAuditEvent",
    "BlacklistEntry",
    "BlacklistStore",
    "IdentifierType",
    "ReferenceData",
    "ReferenceDataProvider",
    "ReviewConflictError",
    "ReviewDecision",
    "ReviewQueue",
    "ReviewQueueEntry",
    "RiskError",
    "RiskFactors",
    "RiskGate",
    "RiskLevel",
    "RiskScore",
    "RiskScorer",
    "StoreUnavailableError",
    "TransactionAttempt",
    "TransactionBlockedError",
    "TransactionHistoryStore",
    "TransactionValidationError",
    "classify_level",
    "identifier_type_for",
]
