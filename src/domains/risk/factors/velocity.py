"""Rate-based risk factors backed by the transaction history store."""

from datetime import timedelta

from ..models import FactorResult, TransactionAttempt
from .base import FactorContext, RiskFactorCheck


class MultipleBookingsCheck(RiskFactorCheck):
    """Triggers when the identity already has N attempts in the trailing hour."""

    factor = "multiple_bookings"
    needs_store = True

    async def check(self, attempt: TransactionAttempt, context: FactorContext) -> FactorResult:
        velocity = context.config.velocity
        count = await context.history.count_recent(
            attempt.email,
            timedelta(seconds=velocity.booking_window_seconds),
            now=attempt.occurred_at,
        )
        details = {
            "count": count,
            "threshold": velocity.booking_count_min,
            "window_seconds": velocity.booking_window_seconds,
        }
        if count < velocity.booking_count_min:
            return self._not_triggered(details)
        return self._triggered(context, details)


class RecentFailuresCheck(RiskFactorCheck):
    """Triggers when the identity has N failed payments in the trailing day."""

    factor = "recent_failures"
    needs_store = True

    async def check(self, attempt: TransactionAttempt, context: FactorContext) -> FactorResult:
        velocity = context.config.velocity
        count = await context.history.recent_failures(
            attempt.email,
            timedelta(seconds=velocity.failure_window_seconds),
            now=attempt.occurred_at,
        )
        details = {
            "count": count,
            "threshold": velocity.failure_count_min,
            "window_seconds": velocity.failure_window_seconds,
        }
        if count < velocity.failure_count_min:
            return self._not_triggered(details)
        return self._triggered(context, details)
