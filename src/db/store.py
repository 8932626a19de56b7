"""Process-wide key-value store client and FastAPI dependency."""

import redis.asyncio as aioredis
import structlog

from src.domains.risk.storage import create_redis_client

logger = structlog.get_logger()

_client: aioredis.Redis | None = None


def get_client() -> aioredis.Redis:
    """Return the shared client, creating it on first use."""
    global _client
    if _client is None:
        _client = create_redis_client()
    return _client


async def get_redis() -> aioredis.Redis:
    """Provide the shared store client."""
    return get_client()


async def check_store() -> bool:
    """Check store connectivity."""
    try:
        return bool(await get_client().ping())
    except Exception:
        logger.warning("store_check_failed")
        return False


async def close_store() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
        logger.info("store_client_closed")
