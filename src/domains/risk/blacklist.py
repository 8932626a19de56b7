"""Blacklist of emails and IPs with lazy expiry and an append-only audit log."""

import ipaddress
import math
from datetime import UTC, datetime, timedelta

import redis.asyncio as aioredis
import structlog

from . import keys
from .models import (
    BlacklistAction,
    BlacklistAuditEvent,
    BlacklistEntry,
    IdentifierType,
    localize,
)
from .storage import store_operation

logger = structlog.get_logger()

CLEANUP_ACTOR = "system:cleanup"


def identifier_type_for(identifier: str) -> IdentifierType:
    """Infer whether a bare identifier is an IP address or an email."""
    try:
        ipaddress.ip_address(identifier.strip())
    except ValueError:
        return IdentifierType.EMAIL
    return IdentifierType.IP


class BlacklistStore:
    """One live row per (identifier, type), keyed by both.

    Expiry is decided on read by comparing ``expires_at`` to the caller's
    clock. Rows with an expiry are also written with a store TTL so they do
    not linger, but the read-side check is what lookups rely on.
    """

    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis

    async def is_blacklisted(
        self,
        identifier: str,
        identifier_type: IdentifierType,
        now: datetime | None = None,
    ) -> bool:
        entry = await self.get(identifier, identifier_type)
        return entry is not None and entry.is_live(now)

    async def get(
        self, identifier: str, identifier_type: IdentifierType
    ) -> BlacklistEntry | None:
        with store_operation("blacklist_get"):
            raw = await self._redis.get(keys.blacklist(identifier, identifier_type))
        if raw is None:
            return None
        return BlacklistEntry.model_validate_json(raw)

    async def add(self, entry: BlacklistEntry) -> BlacklistEntry:
        """Write (or replace) the live row and append an ``add`` audit event."""
        key = keys.blacklist(entry.identifier, entry.identifier_type)
        ttl_seconds = None
        if entry.expires_at is not None:
            remaining = (entry.expires_at - datetime.now(UTC)).total_seconds()
            ttl_seconds = max(1, math.ceil(remaining))

        event = BlacklistAuditEvent(
            action=BlacklistAction.ADD,
            identifier=entry.identifier,
            identifier_type=entry.identifier_type,
            actor=entry.added_by,
            entry=entry,
        )
        with store_operation("blacklist_add"):
            await self._redis.set(key, entry.model_dump_json(), ex=ttl_seconds)
            await self._redis.lpush(keys.BLACKLIST_AUDIT, event.model_dump_json())

        logger.warning(
            "blacklist_entry_added",
            identifier=entry.identifier,
            identifier_type=entry.identifier_type.value,
            added_by=entry.added_by,
            expires_at=entry.expires_at.isoformat() if entry.expires_at else None,
        )
        return entry

    async def ban(
        self,
        identifier: str,
        reason: str,
        added_by: str,
        expiration_days: float | None = None,
        identifier_type: IdentifierType | None = None,
    ) -> BlacklistEntry:
        """Operator-facing add: infers the type and computes the expiry."""
        now = datetime.now(UTC)
        entry = BlacklistEntry(
            identifier=identifier.strip(),
            identifier_type=identifier_type or identifier_type_for(identifier),
            reason=reason,
            added_by=added_by,
            added_at=now,
            expires_at=now + timedelta(days=expiration_days) if expiration_days else None,
        )
        return await self.add(entry)

    async def remove(
        self,
        identifier: str,
        identifier_type: IdentifierType | None = None,
        removed_by: str = "unknown",
    ) -> bool:
        identifier_type = identifier_type or identifier_type_for(identifier)
        with store_operation("blacklist_remove"):
            deleted = await self._redis.delete(keys.blacklist(identifier, identifier_type))
            if not deleted:
                logger.info(
                    "blacklist_entry_not_found",
                    identifier=identifier,
                    identifier_type=identifier_type.value,
                )
                return False
            await self._log_removal(identifier, identifier_type, removed_by)

        logger.info(
            "blacklist_entry_removed",
            identifier=identifier,
            identifier_type=identifier_type.value,
            removed_by=removed_by,
        )
        return True

    async def list_entries(self, now: datetime | None = None) -> list[BlacklistEntry]:
        """All live entries, oldest first."""
        entries = [e for e in await self._scan_entries() if e.is_live(now)]
        return sorted(entries, key=lambda e: e.added_at)

    async def history(self, limit: int = 50) -> list[BlacklistAuditEvent]:
        """Most recent audit events first."""
        if limit < 1:
            return []
        with store_operation("blacklist_history"):
            raw = await self._redis.lrange(keys.BLACKLIST_AUDIT, 0, limit - 1)
        return [BlacklistAuditEvent.model_validate_json(r) for r in raw]

    async def history_since(self, since: datetime) -> list[BlacklistAuditEvent]:
        """Audit events at or after ``since``, most recent first."""
        since = localize(since)
        with store_operation("blacklist_history"):
            raw = await self._redis.lrange(keys.BLACKLIST_AUDIT, 0, -1)
        events = [BlacklistAuditEvent.model_validate_json(r) for r in raw]
        return [e for e in events if e.timestamp >= since]

    async def cleanup(self, now: datetime | None = None) -> int:
        """Delete expired rows, logging each as a system removal."""
        now = now or datetime.now(UTC)
        removed = 0
        for entry in await self._scan_entries():
            if entry.is_live(now):
                continue
            with store_operation("blacklist_cleanup"):
                deleted = await self._redis.delete(
                    keys.blacklist(entry.identifier, entry.identifier_type)
                )
                if deleted:
                    await self._log_removal(
                        entry.identifier, entry.identifier_type, CLEANUP_ACTOR
                    )
            removed += deleted

        logger.info("blacklist_cleanup_completed", removed=removed)
        return removed

    async def _scan_entries(self) -> list[BlacklistEntry]:
        entries: list[BlacklistEntry] = []
        with store_operation("blacklist_scan"):
            async for key in self._redis.scan_iter(match=keys.BLACKLIST_PATTERN):
                raw = await self._redis.get(key)
                if raw is not None:
                    entries.append(BlacklistEntry.model_validate_json(raw))
        return entries

    async def _log_removal(
        self, identifier: str, identifier_type: IdentifierType, actor: str
    ) -> None:
        event = BlacklistAuditEvent(
            action=BlacklistAction.REMOVE,
            identifier=identifier,
            identifier_type=identifier_type,
            actor=actor,
        )
        await self._redis.lpush(keys.BLACKLIST_AUDIT, event.model_dump_json())
