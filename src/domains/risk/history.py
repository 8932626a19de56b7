"""Rolling per-identity record of transaction attempts and failed payments."""

import json
import uuid
from datetime import UTC, datetime, timedelta

import redis.asyncio as aioredis
import structlog

from . import keys
from .config import RiskConfig, default_config
from .models import TransactionAttempt, localize
from .storage import store_operation

logger = structlog.get_logger()


def _to_ms(moment: datetime) -> int:
    return int(localize(moment).timestamp() * 1000)


class TransactionHistoryStore:
    """Append-only history kept in one sorted set per identity.

    Members are scored by epoch milliseconds so trailing-window reads are a
    single range query. Every write trims entries past the retention horizon
    and caps the set size, which bounds storage for abusive identities.
    """

    def __init__(self, redis: aioredis.Redis, config: RiskConfig | None = None) -> None:
        self._redis = redis
        self._config = config or default_config

    async def append(self, identity: str, attempt: TransactionAttempt) -> None:
        key = keys.transactions(identity)
        retention = self._config.retention
        score = attempt.timestamp_ms
        # Record id keeps two identical attempts as two members
        member = json.dumps(
            {"record_id": uuid.uuid4().hex, "attempt": attempt.model_dump(mode="json")}
        )
        with store_operation("history_append"):
            await self._redis.zadd(key, {member: score})
            await self._trim(
                key,
                horizon_ms=score - retention.history_max_age_seconds * 1000,
                max_entries=retention.history_max_entries,
            )

    async def recent(
        self,
        identity: str,
        window: timedelta,
        now: datetime | None = None,
    ) -> list[TransactionAttempt]:
        """Attempts timestamped strictly after ``now - window``."""
        now = now or datetime.now(UTC)
        cutoff = _to_ms(now - window)
        with store_operation("history_recent"):
            members = await self._redis.zrangebyscore(
                keys.transactions(identity), f"({cutoff}", "+inf"
            )
        return [TransactionAttempt.model_validate(json.loads(m)["attempt"]) for m in members]

    async def count_recent(
        self,
        identity: str,
        window: timedelta,
        now: datetime | None = None,
    ) -> int:
        now = now or datetime.now(UTC)
        cutoff = _to_ms(now - window)
        with store_operation("history_count"):
            return await self._redis.zcount(keys.transactions(identity), f"({cutoff}", "+inf")

    async def record_failure(self, identity: str, at: datetime | None = None) -> None:
        """Record one failed payment attempt for the identity."""
        at = at or datetime.now(UTC)
        key = keys.failed_attempts(identity)
        retention = self._config.retention
        score = _to_ms(at)
        # Unique member per failure; the sorted set is a timestamped counter
        member = f"{score}:{uuid.uuid4().hex}"
        with store_operation("failure_record"):
            await self._redis.zadd(key, {member: score})
            await self._trim(
                key,
                horizon_ms=score - self._config.velocity.failure_window_seconds * 1000,
                max_entries=retention.failure_max_entries,
            )
        logger.info("payment_failure_recorded", identity=keys.normalize_email(identity))

    async def recent_failures(
        self,
        identity: str,
        window: timedelta,
        now: datetime | None = None,
    ) -> int:
        now = now or datetime.now(UTC)
        cutoff = _to_ms(now - window)
        with store_operation("failure_count"):
            return await self._redis.zcount(
                keys.failed_attempts(identity), f"({cutoff}", "+inf"
            )

    async def clear(self, identity: str) -> int:
        """Drop all history and failure records for an identity."""
        with store_operation("history_clear"):
            removed = await self._redis.delete(
                keys.transactions(identity), keys.failed_attempts(identity)
            )
        logger.info("history_cleared", identity=keys.normalize_email(identity), keys=removed)
        return removed

    async def _trim(self, key: str, horizon_ms: int, max_entries: int) -> None:
        await self._redis.zremrangebyscore(key, "-inf", f"({horizon_ms}")
        # Keep the newest max_entries members
        await self._redis.zremrangebyrank(key, 0, -(max_entries + 1))
