"""
In-Process Event Broker

Delivers events to subscribers in the same process. Suitable for a single
API worker and for tests.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging

from qrar.services.realtime.base import BaseEventBroker, OrderEvent

logger = logging.getLogger(__name__)


class MemoryEventBroker(BaseEventBroker):
    """Fan out published events directly to local subscriptions."""

    def __init__(self, queue_size: int = 100):
        super().__init__(queue_size=queue_size)
        self.published: int = 0

    @property
    def provider_name(self) -> str:
        return "memory"

    async def publish(self, event: OrderEvent) -> None:
        self.published += 1
        delivered = self._fan_out(event)
        logger.debug(f"{event.type} for restaurant #{event.restaurant_id} -> {delivered} subscriber(s)")
