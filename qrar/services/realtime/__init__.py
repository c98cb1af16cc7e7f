"""
Event Broker Factory

Returns the in-process or Redis-backed broker based on REALTIME_BACKEND.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from functools import lru_cache

from qrar.core.config import RealtimeBackend, get_settings
from qrar.services.realtime.base import (
    ORDER_CREATED,
    ORDER_UPDATED,
    BaseEventBroker,
    OrderEvent,
    Subscription,
)
from qrar.services.realtime.memory import MemoryEventBroker
from qrar.services.realtime.redis import RedisEventBroker

logger = logging.getLogger(__name__)


@lru_cache()
def get_event_broker() -> BaseEventBroker:
    """Get the configured event broker."""
    settings = get_settings()

    if settings.realtime_backend == RealtimeBackend.REDIS:
        logger.info(f"Event Broker: Using RedisEventBroker ({settings.redis_url})")
        return RedisEventBroker(
            settings.redis_url,
            channel=settings.realtime_channel,
            queue_size=settings.realtime_queue_size,
        )
    logger.info("Event Broker: Using MemoryEventBroker")
    return MemoryEventBroker(queue_size=settings.realtime_queue_size)


def reset_event_broker() -> None:
    """Clear the cached broker instance."""
    get_event_broker.cache_clear()


__all__ = [
    "get_event_broker",
    "reset_event_broker",
    "BaseEventBroker",
    "MemoryEventBroker",
    "RedisEventBroker",
    "OrderEvent",
    "Subscription",
    "ORDER_CREATED",
    "ORDER_UPDATED",
]
