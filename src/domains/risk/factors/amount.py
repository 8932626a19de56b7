"""Amount-based risk factor."""

from ..models import FactorResult, TransactionAttempt
from .base import FactorContext, RiskFactorCheck


class UnusualAmountCheck(RiskFactorCheck):
    """Triggers when the amount falls outside the tour's typical price band.

    A tour missing from the reference data is treated as unusual, as is a
    fractional amount when prices are whole yen.
    """

    factor = "unusual_amount"

    async def check(self, attempt: TransactionAttempt, context: FactorContext) -> FactorResult:
        band = context.reference.band_for(attempt.tour_id)
        if band is None:
            return self._triggered(
                context,
                {
                    "reason": "unknown_tour",
                    "tour_id": attempt.tour_id,
                    "reference_version": context.reference.version,
                },
            )

        if context.config.amount.flag_fractional and not float(attempt.amount).is_integer():
            return self._triggered(
                context,
                {"reason": "fractional_amount", "amount": attempt.amount},
            )

        if band.contains(attempt.amount):
            return self._not_triggered()

        if attempt.amount < band.min:
            deviation = band.min - attempt.amount
        else:
            deviation = attempt.amount - band.max
        return self._triggered(
            context,
            {
                "amount": attempt.amount,
                "expected_range": {"min": band.min, "max": band.max},
                "deviation": deviation,
            },
        )
