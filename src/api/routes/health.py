"""Health and readiness endpoints."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from src.config import settings
from src.db.store import check_store

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    from src.main import get_uptime

    return {
        "status": "healthy",
        "version": settings.app_version,
        "uptime_seconds": get_uptime(),
    }


@router.get("/ready")
async def ready() -> JSONResponse:
    from src.api.routes.risk import get_reference

    store_ok = await check_store()
    reference_version = get_reference().current.version

    return JSONResponse(
        status_code=200 if store_ok else 503,
        content={
            "status": "ready" if store_ok else "degraded",
            "redis": store_ok,
            "reference_version": reference_version,
        },
    )
