"""Blacklist-backed risk factor."""

from ..models import FactorResult, IdentifierType, TransactionAttempt
from .base import FactorContext, RiskFactorCheck


class KnownBadActorCheck(RiskFactorCheck):
    """Triggers when the email or the IP has a live blacklist entry.

    Liveness is judged against the wall clock, not the attempt's own
    timestamp, so a ban that has lapsed no longer blocks a replayed or
    late-reported attempt.
    """

    factor = "known_bad_actor"
    needs_store = True

    async def check(self, attempt: TransactionAttempt, context: FactorContext) -> FactorResult:
        email_hit = await context.blacklist.is_blacklisted(attempt.email, IdentifierType.EMAIL)
        ip_hit = False
        if attempt.ip_address and not email_hit:
            ip_hit = await context.blacklist.is_blacklisted(
                attempt.ip_address, IdentifierType.IP
            )

        if not (email_hit or ip_hit):
            return self._not_triggered()

        return self._triggered(
            context,
            {"matched": IdentifierType.EMAIL.value if email_hit else IdentifierType.IP.value},
        )
