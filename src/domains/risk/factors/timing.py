"""Time-of-day risk factor."""

from datetime import datetime
from zoneinfo import ZoneInfo

from ..models import FactorResult, TransactionAttempt
from .base import FactorContext, RiskFactorCheck


def local_hour(moment: datetime, timezone: str) -> int:
    """Hour of ``moment`` in the given zone. Naive datetimes are already local."""
    if moment.tzinfo is None:
        return moment.hour
    return moment.astimezone(ZoneInfo(timezone)).hour


class UnusualTimeCheck(RiskFactorCheck):
    """Triggers for attempts in the small hours of the business's local time.

    Heuristic only: the customer may be in another zone.
    """

    factor = "unusual_time"

    async def check(self, attempt: TransactionAttempt, context: FactorContext) -> FactorResult:
        settings = context.config.time
        hour = local_hour(attempt.occurred_at, settings.timezone)
        if not (settings.unusual_hour_start <= hour < settings.unusual_hour_end):
            return self._not_triggered()

        return self._triggered(
            context,
            {"local_hour": hour, "timezone": settings.timezone},
        )
