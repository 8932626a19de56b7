"""Risk gate endpoints called by the checkout service."""

from datetime import UTC, datetime

import redis.asyncio as aioredis
import structlog
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from src.config import settings
from src.db.store import get_redis
from src.domains.risk.config import RiskConfig
from src.domains.risk.factors import ALL_FACTOR_CHECKS
from src.domains.risk.gate import RiskGate
from src.domains.risk.models import RiskScore, TransactionAttempt
from src.domains.risk.reference import ReferenceDataProvider

logger = structlog.get_logger()
router = APIRouter(prefix="/api/v1/risk", tags=["risk"])

_config = RiskConfig.from_env()
_reference: ReferenceDataProvider | None = None


def get_reference() -> ReferenceDataProvider:
    global _reference
    if _reference is None:
        _reference = ReferenceDataProvider(settings.risk_reference_path)
    return _reference


async def get_risk_gate(
    redis: aioredis.Redis = Depends(get_redis),  # noqa: B008
    reference: ReferenceDataProvider = Depends(get_reference),  # noqa: B008
) -> RiskGate:
    return RiskGate.from_redis(redis, reference=reference, config=_config)


class RiskEvaluationRequest(BaseModel):
    """Checkout payload. Missing fields are reported as a 400 by the gate."""

    email: str = ""
    amount: float | None = None
    tour_id: str = ""
    country_code: str = ""
    ip_address: str | None = None
    occurred_at: datetime | None = None
    booking_id: str | None = None
    user_agent: str | None = None

    def to_attempt(self, request: Request) -> TransactionAttempt:
        return TransactionAttempt(
            email=self.email,
            amount=self.amount or 0.0,
            tour_id=self.tour_id,
            country_code=self.country_code.strip().upper(),
            ip_address=self.ip_address or _client_ip(request),
            occurred_at=self.occurred_at or datetime.now(UTC),
            booking_id=self.booking_id,
            user_agent=self.user_agent or request.headers.get("user-agent"),
        )


class PaymentFailureRequest(BaseModel):
    email: str
    failed_at: datetime | None = None


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


@router.post("/evaluate")
async def evaluate(
    payload: RiskEvaluationRequest,
    request: Request,
    gate: RiskGate = Depends(get_risk_gate),  # noqa: B008
) -> RiskScore:
    # TransactionBlockedError propagates to the handler, which returns a generic 403
    return await gate.evaluate(payload.to_attempt(request))


@router.post("/payment-failures", status_code=202)
async def record_payment_failure(
    payload: PaymentFailureRequest,
    gate: RiskGate = Depends(get_risk_gate),  # noqa: B008
) -> dict:
    await gate.record_payment_failure(payload.email, payload.failed_at)
    return {"status": "recorded"}


@router.get("/reference")
async def reference_data(
    reference: ReferenceDataProvider = Depends(get_reference),  # noqa: B008
) -> dict:
    current = reference.current
    return {
        "version": current.version,
        "allowed_countries": sorted(current.allowed_countries),
        "tours": sorted(current.tour_amount_bands),
    }


@router.post("/reference/refresh")
async def refresh_reference_data(
    reference: ReferenceDataProvider = Depends(get_reference),  # noqa: B008
) -> dict:
    previous = reference.current.version
    current = reference.refresh()
    return {"version": current.version, "previous_version": previous}


@router.get("/factors")
async def list_factors() -> dict:
    """Return factor weights and level thresholds in effect."""
    return {
        "factors": [
            {
                "factor": check.factor,
                "weight": getattr(_config.weights, check.factor),
                "store_backed": check.needs_store,
            }
            for check in ALL_FACTOR_CHECKS
        ],
        "levels": {
            "medium": _config.levels.medium,
            "high": _config.levels.high,
            "critical": _config.levels.critical,
        },
    }
