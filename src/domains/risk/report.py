"""Operator activity report over the review queue and the blacklist."""

from collections import Counter
from datetime import UTC, datetime, timedelta

import structlog
from pydantic import BaseModel, Field

from .blacklist import BlacklistStore
from .models import BlacklistAction, ReviewDecision, localize
from .review_queue import ReviewQueue

logger = structlog.get_logger()


class RiskReport(BaseModel):
    generated_at: datetime
    period_start: datetime
    period_hours: float

    pending_reviews: int = 0
    oldest_pending_age_hours: float | None = None

    decisions: int = 0
    approvals: int = 0
    rejections: int = 0
    # Factor name -> times it was triggered among decided entries
    decided_factors: dict[str, int] = Field(default_factory=dict)

    live_blacklist_entries: int = 0
    expiring_blacklist_entries: int = 0
    blacklist_adds: int = 0
    blacklist_removes: int = 0

    @property
    def needs_attention(self) -> bool:
        return self.pending_reviews > 0 or self.rejections > 0


async def build_report(
    blacklist: BlacklistStore,
    review_queue: ReviewQueue,
    hours: float = 24,
    now: datetime | None = None,
) -> RiskReport:
    """Summarise queue backlog, recent decisions and blacklist churn."""
    now = localize(now) if now else datetime.now(UTC)
    since = now - timedelta(hours=hours)
    report = RiskReport(generated_at=now, period_start=since, period_hours=hours)

    report.pending_reviews = await review_queue.count()
    oldest = await review_queue.oldest_pending()
    if oldest is not None:
        report.oldest_pending_age_hours = round(
            (now - oldest.queued_at).total_seconds() / 3600, 1
        )

    factor_counts: Counter[str] = Counter()
    for decided in await review_queue.decided_since(since):
        report.decisions += 1
        if decided.decision == ReviewDecision.REJECT:
            report.rejections += 1
        else:
            report.approvals += 1
        factor_counts.update(decided.risk_score.factors.triggered())
    report.decided_factors = dict(factor_counts.most_common())

    live = await blacklist.list_entries(now)
    report.live_blacklist_entries = len(live)
    report.expiring_blacklist_entries = sum(1 for e in live if e.expires_at is not None)

    for event in await blacklist.history_since(since):
        if event.action == BlacklistAction.ADD:
            report.blacklist_adds += 1
        else:
            report.blacklist_removes += 1

    logger.info(
        "risk_report_built",
        period_hours=hours,
        pending_reviews=report.pending_reviews,
        decisions=report.decisions,
        rejections=report.rejections,
    )
    return report
