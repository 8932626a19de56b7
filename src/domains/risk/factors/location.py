"""Location and device risk factors."""

from ..models import FactorResult, TransactionAttempt
from .base import FactorContext, RiskFactorCheck


class UnusualLocationCheck(RiskFactorCheck):
    """Triggers when the country code is not on the allow-list."""

    factor = "unusual_location"

    async def check(self, attempt: TransactionAttempt, context: FactorContext) -> FactorResult:
        if context.reference.is_allowed_country(attempt.country_code):
            return self._not_triggered()

        return self._triggered(
            context,
            {
                "country_code": attempt.country_code,
                "allowed_countries": sorted(context.reference.allowed_countries),
            },
        )


class UnusualDeviceCheck(RiskFactorCheck):
    """Extension point for a device-fingerprint signal.

    No signal is wired in yet, so this never triggers. Subclass and replace
    the instance in ``ALL_FACTOR_CHECKS`` once one exists.
    """

    factor = "unusual_device"

    async def check(self, attempt: TransactionAttempt, context: FactorContext) -> FactorResult:
        return self._not_triggered()
