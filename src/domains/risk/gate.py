"""Risk gate invoked by checkout immediately before payment capture."""

from datetime import datetime

import redis.asyncio as aioredis
import structlog

from .blacklist import BlacklistStore
from .config import RiskConfig, default_config
from .errors import StoreUnavailableError, TransactionBlockedError, TransactionValidationError
from .history import TransactionHistoryStore
from .models import RiskLevel, RiskScore, TransactionAttempt
from .reference import ReferenceData, ReferenceDataProvider
from .review_queue import ReviewQueue
from .scorer import RiskScorer

logger = structlog.get_logger()


def validate_attempt(attempt: TransactionAttempt) -> None:
    missing = []
    if not attempt.email or not attempt.email.strip():
        missing.append("email")
    if not attempt.amount or attempt.amount <= 0:
        missing.append("amount")
    if not attempt.tour_id or not attempt.tour_id.strip():
        missing.append("tour_id")
    if missing:
        raise TransactionValidationError(missing)


class RiskGate:
    """Scores an attempt, then blocks, records, or records and queues it.

    critical -> TransactionBlockedError; nothing is written
    high     -> appended to history and queued for review; checkout proceeds
    otherwise -> appended to history; checkout proceeds
    """

    def __init__(
        self,
        scorer: RiskScorer,
        history: TransactionHistoryStore,
        review_queue: ReviewQueue,
        reference: ReferenceDataProvider | None = None,
    ) -> None:
        self._scorer = scorer
        self._history = history
        self._review_queue = review_queue
        self._reference = reference

    @classmethod
    def from_redis(
        cls,
        redis: aioredis.Redis,
        reference: ReferenceDataProvider | None = None,
        config: RiskConfig | None = None,
    ) -> "RiskGate":
        """Wire the stores, scorer and queue around one shared client."""
        config = config or default_config
        reference = reference or ReferenceDataProvider()
        history = TransactionHistoryStore(redis, config)
        blacklist = BlacklistStore(redis)
        scorer = RiskScorer(history, blacklist, reference, config)
        return cls(scorer, history, ReviewQueue(redis, blacklist), reference)

    async def evaluate(self, attempt: TransactionAttempt) -> RiskScore:
        validate_attempt(attempt)

        risk_score = await self._scorer.evaluate(attempt)
        log = logger.bind(
            booking_id=attempt.booking_id,
            tour_id=attempt.tour_id,
            score=risk_score.score,
            level=risk_score.level.value,
            factors=risk_score.factors.triggered(),
            degraded=risk_score.degraded,
        )

        if risk_score.level == RiskLevel.CRITICAL:
            # Blocked attempts never reach history or the review queue
            log.warning("transaction_blocked")
            raise TransactionBlockedError(risk_score)

        try:
            await self._history.append(attempt.email, attempt)
        except StoreUnavailableError:
            log.error("history_append_failed")
            risk_score = risk_score.model_copy(
                update={
                    "degraded": True,
                    "unavailable_factors": [*risk_score.unavailable_factors, "history_append"],
                }
            )

        if risk_score.level == RiskLevel.HIGH:
            try:
                entry = await self._review_queue.enqueue(attempt, risk_score)
            except StoreUnavailableError:
                log.error("review_enqueue_failed")
            else:
                log = log.bind(review_entry_id=entry.entry_id)

        log.info("transaction_scored")
        return risk_score

    async def record_payment_failure(self, email: str, at: datetime | None = None) -> None:
        """Called by checkout when a capture is declined."""
        if not email or not email.strip():
            raise TransactionValidationError(["email"])
        await self._history.record_failure(email, at)

    def refresh_reference_data(self) -> ReferenceData | None:
        if self._reference is None:
            return None
        return self._reference.refresh()
