"""Manual review queue for high-risk attempts, with a decision log."""

from datetime import UTC, datetime, timedelta

import redis.asyncio as aioredis
import structlog

from . import keys
from .blacklist import BlacklistStore
from .errors import ReviewConflictError
from .models import (
    BlacklistEntry,
    IdentifierType,
    ReviewCleanupResult,
    ReviewDecision,
    ReviewQueueEntry,
    RiskScore,
    TransactionAttempt,
    localize,
)
from .storage import store_operation

logger = structlog.get_logger()

DEFAULT_REJECT_REASON = "Rejected during manual review"


def _to_ms(moment: datetime) -> int:
    return int(localize(moment).timestamp() * 1000)


class ReviewQueue:
    """Pending entries live in a hash keyed by entry id; a sorted set scored by
    queue time gives the listing order.

    Decisions live in a second hash keyed by entry id, written with HSETNX so
    only one reviewer claims an entry. A sorted set scored by review time marks
    decisions whose effects are complete and orders the decision history.
    """

    def __init__(self, redis: aioredis.Redis, blacklist: BlacklistStore) -> None:
        self._redis = redis
        self._blacklist = blacklist

    async def enqueue(
        self,
        attempt: TransactionAttempt,
        risk_score: RiskScore,
        now: datetime | None = None,
    ) -> ReviewQueueEntry:
        entry = ReviewQueueEntry(
            attempt=attempt,
            risk_score=risk_score,
            queued_at=now or datetime.now(UTC),
        )
        with store_operation("review_enqueue"):
            await self._redis.hset(keys.REVIEW_PENDING, entry.entry_id, entry.model_dump_json())
            await self._redis.zadd(keys.REVIEW_ORDER, {entry.entry_id: _to_ms(entry.queued_at)})

        logger.warning(
            "review_entry_queued",
            entry_id=entry.entry_id,
            booking_id=attempt.booking_id,
            score=risk_score.score,
            level=risk_score.level.value,
        )
        return entry

    async def list_pending(self, limit: int = 10) -> list[ReviewQueueEntry]:
        """Pending entries, oldest first."""
        if limit < 1:
            return []
        with store_operation("review_list"):
            entry_ids = await self._redis.zrange(keys.REVIEW_ORDER, 0, limit - 1)
            if not entry_ids:
                return []
            raw_entries = await self._redis.hmget(keys.REVIEW_PENDING, entry_ids)
        return [ReviewQueueEntry.model_validate_json(raw) for raw in raw_entries if raw]

    async def count(self) -> int:
        with store_operation("review_count"):
            return await self._redis.hlen(keys.REVIEW_PENDING)

    async def get(self, entry_id: str) -> ReviewQueueEntry | None:
        with store_operation("review_get"):
            raw = await self._redis.hget(keys.REVIEW_PENDING, entry_id)
        return ReviewQueueEntry.model_validate_json(raw) if raw else None

    async def resolve_position(self, position: int) -> str:
        """Map a 1-based position in the current listing to its entry id."""
        if position < 1:
            raise ReviewConflictError(f"#{position}")
        with store_operation("review_resolve"):
            entry_ids = await self._redis.zrange(keys.REVIEW_ORDER, position - 1, position - 1)
        if not entry_ids:
            raise ReviewConflictError(f"#{position}")
        return entry_ids[0]

    async def decide(
        self,
        entry_id: str,
        decision: ReviewDecision | str,
        notes: str | None = None,
        reviewed_by: str = "unknown",
        now: datetime | None = None,
    ) -> ReviewQueueEntry:
        """Adjudicate a pending entry exactly once.

        The decision is recorded with HSETNX before any effect is written, and
        the entry leaves the pending set only after its effects are in place.
        If the store fails in between, the same reviewer can retry the same
        decision and the remaining effects are applied. Any other call on an
        entry that is claimed or no longer pending raises ReviewConflictError.

        On reject, blacklists the attempt's email and IP (if any) with the
        reviewer's notes as the reason.
        """
        decision = ReviewDecision(decision)
        now = localize(now) if now else datetime.now(UTC)

        with store_operation("review_decide"):
            raw = await self._redis.hget(keys.REVIEW_PENDING, entry_id)
            if raw is None:
                raise ReviewConflictError(entry_id)
            entry = ReviewQueueEntry.model_validate_json(raw)
            decided = entry.model_copy(
                update={
                    "decision": decision,
                    "reviewed_by": reviewed_by,
                    "reviewed_at": now,
                    "notes": notes,
                }
            )
            claimed = await self._redis.hsetnx(
                keys.REVIEW_DECISIONS, entry_id, decided.model_dump_json()
            )
            if not claimed:
                decided = await self._resume_claim(entry_id, decision, reviewed_by)

        if decision == ReviewDecision.REJECT:
            await self._blacklist_rejected(decided)

        with store_operation("review_decide"):
            await self._redis.zadd(
                keys.REVIEW_DECIDED, {entry_id: _to_ms(decided.reviewed_at)}
            )
            await self._redis.hdel(keys.REVIEW_PENDING, entry_id)
            await self._redis.zrem(keys.REVIEW_ORDER, entry_id)

        logger.info(
            "review_entry_decided",
            entry_id=entry_id,
            decision=decision.value,
            reviewed_by=reviewed_by,
            booking_id=entry.attempt.booking_id,
            resumed=not claimed,
        )
        return decided

    async def history(self, limit: int = 50) -> list[ReviewQueueEntry]:
        """Most recent decisions first."""
        if limit < 1:
            return []
        with store_operation("review_history"):
            entry_ids = await self._redis.zrange(keys.REVIEW_DECIDED, 0, limit - 1, desc=True)
            return await self._load_decisions(entry_ids)

    async def decided_since(self, since: datetime) -> list[ReviewQueueEntry]:
        """Decisions reviewed at or after ``since``, oldest first."""
        with store_operation("review_decided_since"):
            entry_ids = await self._redis.zrangebyscore(
                keys.REVIEW_DECIDED, _to_ms(since), "+inf"
            )
            return await self._load_decisions(entry_ids)

    async def oldest_pending(self) -> ReviewQueueEntry | None:
        entries = await self.list_pending(limit=1)
        return entries[0] if entries else None

    async def cleanup(
        self, older_than_days: float = 30, now: datetime | None = None
    ) -> ReviewCleanupResult:
        """Purge pending entries queued, and decisions made, before the cutoff."""
        now = now or datetime.now(UTC)
        cutoff_ms = _to_ms(now - timedelta(days=older_than_days))
        result = ReviewCleanupResult()

        with store_operation("review_cleanup"):
            stale_ids = await self._redis.zrangebyscore(
                keys.REVIEW_ORDER, "-inf", f"({cutoff_ms}"
            )
            for entry_id in stale_ids:
                result.pending_removed += await self._redis.hdel(keys.REVIEW_PENDING, entry_id)
                await self._redis.zrem(keys.REVIEW_ORDER, entry_id)
                # Drop a claim whose effects never completed
                if await self._redis.zscore(keys.REVIEW_DECIDED, entry_id) is None:
                    await self._redis.hdel(keys.REVIEW_DECISIONS, entry_id)

            old_decisions = await self._redis.zrangebyscore(
                keys.REVIEW_DECIDED, "-inf", f"({cutoff_ms}"
            )
            for entry_id in old_decisions:
                await self._redis.hdel(keys.REVIEW_DECISIONS, entry_id)
                result.decisions_removed += await self._redis.zrem(
                    keys.REVIEW_DECIDED, entry_id
                )

        logger.info(
            "review_cleanup_completed",
            older_than_days=older_than_days,
            pending_removed=result.pending_removed,
            decisions_removed=result.decisions_removed,
        )
        return result

    async def _resume_claim(
        self, entry_id: str, decision: ReviewDecision, reviewed_by: str
    ) -> ReviewQueueEntry:
        """Return an earlier unfinished claim if this call is its retry."""
        if await self._redis.zscore(keys.REVIEW_DECIDED, entry_id) is not None:
            raise ReviewConflictError(entry_id)
        raw = await self._redis.hget(keys.REVIEW_DECISIONS, entry_id)
        if raw is None:
            raise ReviewConflictError(entry_id)
        claim = ReviewQueueEntry.model_validate_json(raw)
        if claim.decision != decision or claim.reviewed_by != reviewed_by:
            raise ReviewConflictError(entry_id)
        logger.warning(
            "review_decision_resumed",
            entry_id=entry_id,
            decision=decision.value,
            reviewed_by=reviewed_by,
        )
        return claim

    async def _load_decisions(self, entry_ids: list[str]) -> list[ReviewQueueEntry]:
        if not entry_ids:
            return []
        raw_entries = await self._redis.hmget(keys.REVIEW_DECISIONS, entry_ids)
        return [ReviewQueueEntry.model_validate_json(raw) for raw in raw_entries if raw]

    async def _blacklist_rejected(self, decided: ReviewQueueEntry) -> None:
        reason = decided.notes or DEFAULT_REJECT_REASON
        reviewer = decided.reviewed_by or "unknown"
        targets = [(decided.attempt.email, IdentifierType.EMAIL)]
        if decided.attempt.ip_address:
            targets.append((decided.attempt.ip_address, IdentifierType.IP))

        for identifier, identifier_type in targets:
            await self._blacklist.add(
                BlacklistEntry(
                    identifier=identifier,
                    identifier_type=identifier_type,
                    reason=reason,
                    added_by=reviewer,
                    added_at=decided.reviewed_at,
                )
            )
