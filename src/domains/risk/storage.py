"""Shared key-value store client and error translation."""

from collections.abc import Iterator
from contextlib import contextmanager

import redis.asyncio as aioredis
import structlog
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from src.config import Settings, settings

from .errors import StoreUnavailableError

logger = structlog.get_logger()


def create_redis_client(config: Settings | None = None) -> aioredis.Redis:
    """Build the async client shared by every store in the process."""
    cfg = config or settings
    return aioredis.from_url(
        cfg.redis_url,
        password=cfg.redis_password,
        decode_responses=True,
        socket_timeout=cfg.redis_socket_timeout_seconds,
        socket_connect_timeout=cfg.redis_socket_timeout_seconds,
    )


@contextmanager
def store_operation(operation: str) -> Iterator[None]:
    """Translate transport failures into StoreUnavailableError."""
    try:
        yield
    except (RedisConnectionError, RedisTimeoutError, OSError) as exc:
        logger.warning("store_unavailable", operation=operation, error=str(exc))
        raise StoreUnavailableError(operation, exc) from exc
