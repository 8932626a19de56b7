"""Exceptions raised by the risk domain."""

from .models import RiskScore


class RiskError(Exception):
    """Base class for risk-domain errors."""


class TransactionValidationError(RiskError, ValueError):
    """The incoming attempt is missing its identity, amount or tour."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(f"Missing required fields: {', '.join(missing)}")


class StoreUnavailableError(RiskError):
    """The shared key-value store could not be reached."""

    def __init__(self, operation: str, cause: Exception | None = None) -> None:
        self.operation = operation
        self.cause = cause
        super().__init__(f"Store unavailable during {operation}")


class TransactionBlockedError(RiskError):
    """Critical risk: the checkout must abort.

    Carries the score for internal logging only. Callers must not surface
    ``risk_score`` to the customer.
    """

    def __init__(self, risk_score: RiskScore) -> None:
        self.risk_score = risk_score
        super().__init__("Transaction blocked due to risk score")


class ReviewConflictError(RiskError, LookupError):
    """The review entry was already decided or no longer exists."""

    def __init__(self, entry_id: str) -> None:
        self.entry_id = entry_id
        super().__init__(f"Review entry {entry_id} is not pending")
