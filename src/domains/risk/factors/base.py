"""Abstract base class for risk factor checks."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ..blacklist import BlacklistStore
from ..config import RiskConfig
from ..history import TransactionHistoryStore
from ..models import FactorResult, TransactionAttempt
from ..reference import ReferenceData


@dataclass
class FactorContext:
    """Read-only capabilities a check may consult. Checks never write."""

    history: TransactionHistoryStore
    blacklist: BlacklistStore
    reference: ReferenceData
    config: RiskConfig


class RiskFactorCheck(ABC):
    """Base class for the seven risk factors.

    ``factor`` names the RiskFactors field the check sets. Checks that touch
    the store may raise StoreUnavailableError; the scorer owns that policy.
    """

    factor: str
    needs_store: bool = False

    @abstractmethod
    async def check(self, attempt: TransactionAttempt, context: FactorContext) -> FactorResult:
        """Evaluate this factor for the attempt."""
        ...

    def weight(self, context: FactorContext) -> int:
        return getattr(context.config.weights, self.factor)

    def _not_triggered(self, details: dict | None = None) -> FactorResult:
        return FactorResult(factor=self.factor, triggered=False, details=details or {})

    def _triggered(self, context: FactorContext, details: dict | None = None) -> FactorResult:
        return FactorResult(
            factor=self.factor,
            triggered=True,
            weight=self.weight(context),
            details=details or {},
        )
