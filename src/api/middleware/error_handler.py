"""Exception handling for the risk API."""

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse

from src.domains.risk.errors import (
    ReviewConflictError,
    RiskError,
    StoreUnavailableError,
    TransactionBlockedError,
    TransactionValidationError,
)

logger = structlog.get_logger()

DECLINE_MESSAGE = "The payment could not be processed. Please try another payment method."


async def risk_exception_handler(request: Request, exc: RiskError) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")

    if isinstance(exc, TransactionBlockedError):
        # Generic decline; factors stay internal
        return JSONResponse(
            status_code=403,
            content={
                "error": "transaction_declined",
                "message": DECLINE_MESSAGE,
                "request_id": request_id,
            },
        )

    if isinstance(exc, TransactionValidationError):
        logger.warning("bad_request", request_id=request_id, missing=exc.missing)
        return JSONResponse(
            status_code=400,
            content={
                "error": "bad_request",
                "message": str(exc),
                "missing": exc.missing,
                "request_id": request_id,
            },
        )

    if isinstance(exc, ReviewConflictError):
        return JSONResponse(
            status_code=409,
            content={"error": "conflict", "message": str(exc), "request_id": request_id},
        )

    if isinstance(exc, StoreUnavailableError):
        logger.error("store_unavailable", request_id=request_id, operation=exc.operation)
        return JSONResponse(
            status_code=503,
            content={
                "error": "service_unavailable",
                "message": "A dependency is temporarily unavailable",
                "request_id": request_id,
            },
        )

    return await global_exception_handler(request, exc)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")

    if isinstance(exc, ValueError):
        logger.warning("bad_request", request_id=request_id, error=str(exc))
        return JSONResponse(
            status_code=400,
            content={"error": "bad_request", "message": str(exc), "request_id": request_id},
        )

    if isinstance(exc, (KeyError, LookupError)):
        logger.warning("not_found", request_id=request_id, error=str(exc))
        return JSONResponse(
            status_code=404,
            content={"error": "not_found", "message": str(exc), "request_id": request_id},
        )

    logger.exception("unhandled_exception", request_id=request_id, error=str(exc))
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred",
            "request_id": request_id,
        },
    )
