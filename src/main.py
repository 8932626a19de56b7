"""FastAPI application entry point for the tour risk gate."""

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from src.api.middleware.error_handler import global_exception_handler, risk_exception_handler
from src.api.middleware.logging import StructuredLoggingMiddleware
from src.api.routes.health import router as health_router
from src.api.routes.risk import get_reference
from src.api.routes.risk import router as risk_router
from src.config import settings
from src.db.store import close_store
from src.domains.risk.errors import RiskError
from src.shared.logging import setup_logging

logger = structlog.get_logger()

# Track app start time for uptime calculation
APP_START_TIME: float = 0.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup and shutdown logic."""
    global APP_START_TIME
    APP_START_TIME = time.time()
    setup_logging(settings.log_level)

    reference = get_reference()
    logger.info(
        "risk_gate_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        reference_version=reference.current.version,
    )

    yield

    await close_store()
    logger.info("risk_gate_shutting_down")


app = FastAPI(
    title="Tour Risk Gate",
    description="Transaction risk evaluation for tour-booking checkout",
    version=settings.app_version,
    lifespan=lifespan,
)

# Structured logging middleware
app.add_middleware(StructuredLoggingMiddleware)

# Exception handlers
app.add_exception_handler(RiskError, risk_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# Register routers
app.include_router(health_router)
app.include_router(risk_router)


def get_uptime() -> int:
    """Get application uptime in seconds."""
    if APP_START_TIME == 0.0:
        return 0
    return int(time.time() - APP_START_TIME)
