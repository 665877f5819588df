import logging

from fastapi import Request

from .config import Settings
from .memory_store import MemoryStore
from .redis_store import RedisStore
from .store import OrderStore

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> OrderStore:
    """Pick the backend once: Redis when configured and reachable, else in-process."""
    if settings.REDIS_URL:
        store = RedisStore.from_settings(settings)
        if store.ping():
            logger.info("Using Redis backend.")
            return store
        logger.warning("Redis backend is configured but unreachable. Falling back to in-process store.")
        store.close()
    else:
        logger.info("REDIS_URL not set. Using in-process store.")
    return MemoryStore(activity_limit=settings.ACTIVITY_LOG_LIMIT)


def get_store(request: Request) -> OrderStore:
    return request.app.state.store
