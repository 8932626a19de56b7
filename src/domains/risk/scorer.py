"""Additive risk scoring over the seven factor checks."""

import structlog

from .blacklist import BlacklistStore
from .config import RiskConfig, default_config
from .errors import StoreUnavailableError
from .factors import ALL_FACTOR_CHECKS, FactorContext, RiskFactorCheck
from .history import TransactionHistoryStore
from .models import FactorResult, RiskFactors, RiskLevel, RiskScore, TransactionAttempt
from .reference import ReferenceDataProvider

logger = structlog.get_logger()


def classify_level(score: int, config: RiskConfig | None = None) -> RiskLevel:
    levels = (config or default_config).levels
    if score >= levels.critical:
        return RiskLevel.CRITICAL
    if score >= levels.high:
        return RiskLevel.HIGH
    if score >= levels.medium:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


class RiskScorer:
    """Evaluates an attempt against every factor check. Performs no writes.

    Scoring:
    1. Run each check in order -> FactorResult
    2. A check whose store lookup fails counts as not triggered and is
       reported in ``unavailable_factors`` (fail-open per factor)
    3. Score = sum of triggered weights, unbounded
    4. Level from fixed thresholds, critical first
    """

    def __init__(
        self,
        history: TransactionHistoryStore,
        blacklist: BlacklistStore,
        reference: ReferenceDataProvider | None = None,
        config: RiskConfig | None = None,
        checks: list[RiskFactorCheck] | None = None,
    ) -> None:
        self._history = history
        self._blacklist = blacklist
        self._reference = reference or ReferenceDataProvider()
        self._config = config or default_config
        self._checks = list(checks) if checks is not None else list(ALL_FACTOR_CHECKS)

    @property
    def config(self) -> RiskConfig:
        return self._config

    async def evaluate(self, attempt: TransactionAttempt) -> RiskScore:
        score, _ = await self.evaluate_detailed(attempt)
        return score

    async def evaluate_detailed(
        self, attempt: TransactionAttempt
    ) -> tuple[RiskScore, list[FactorResult]]:
        """Score the attempt and return the per-factor results alongside."""
        context = FactorContext(
            history=self._history,
            blacklist=self._blacklist,
            reference=self._reference.current,
            config=self._config,
        )

        results: list[FactorResult] = []
        for check in self._checks:
            try:
                result = await check.check(attempt, context)
            except StoreUnavailableError as exc:
                logger.warning(
                    "factor_unavailable",
                    factor=check.factor,
                    operation=exc.operation,
                    booking_id=attempt.booking_id,
                )
                result = FactorResult(factor=check.factor, triggered=False, unavailable=True)
            results.append(result)

        triggered = [r for r in results if r.triggered]
        unavailable = [r.factor for r in results if r.unavailable]
        total = sum(r.weight for r in triggered)
        factors = RiskFactors(**{r.factor: True for r in triggered})

        risk_score = RiskScore(
            score=total,
            level=classify_level(total, self._config),
            factors=factors,
            degraded=bool(unavailable),
            unavailable_factors=unavailable,
        )

        logger.info(
            "risk_factors_evaluated",
            booking_id=attempt.booking_id,
            score=risk_score.score,
            level=risk_score.level.value,
            triggered=[r.factor for r in triggered],
            degraded=risk_score.degraded,
            reference_version=context.reference.version,
        )
        return risk_score, results
