"""
Real-Time Event Broker Base

Order events flow from the HTTP handlers to connected merchant dashboards:

    handler ──publish──► broker ──fan out──► Subscription queue ──► WebSocket

Each Subscription belongs to one restaurant and only ever receives that
restaurant's events. Queues are bounded; when a slow dashboard lets its
queue fill up, the oldest event is discarded to make room (drop-oldest) and
the subscription's ``dropped`` counter goes up.

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

ORDER_CREATED = "order:created"
ORDER_UPDATED = "order:updated"


@dataclass
class OrderEvent:
    """One order notification. ``data`` is the serialized order."""
    type: str
    restaurant_id: int
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "restaurant_id": self.restaurant_id, "data": self.data}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "OrderEvent":
        return cls(
            type=payload["type"],
            restaurant_id=int(payload["restaurant_id"]),
            data=payload.get("data") or {},
        )


class Subscription:
    """A dashboard's bounded event queue for a single restaurant."""

    def __init__(self, restaurant_id: int, maxsize: int = 100):
        if maxsize < 1:
            raise ValueError("Subscription queue size must be at least 1")
        self.restaurant_id = restaurant_id
        self.queue: asyncio.Queue[OrderEvent] = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0

    def deliver(self, event: OrderEvent) -> None:
        """Enqueue without blocking, discarding the oldest event when full."""
        if self.queue.full():
            try:
                self.queue.get_nowait()
                self.dropped += 1
            except asyncio.QueueEmpty:
                pass
        self.queue.put_nowait(event)

    async def get(self) -> OrderEvent:
        return await self.queue.get()

    def __repr__(self):
        return f"<Subscription restaurant={self.restaurant_id} queued={self.queue.qsize()} dropped={self.dropped}>"


class BaseEventBroker(ABC):
    """
    Publish/subscribe hub for order events.

    Subclasses decide how a published event reaches ``_fan_out``; local
    subscriber bookkeeping is shared.
    """

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._subscriptions: dict[int, set[Subscription]] = {}

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the backend name."""
        pass

    @abstractmethod
    async def publish(self, event: OrderEvent) -> None:
        """Send an event to every subscriber of its restaurant."""
        pass

    async def start(self) -> None:
        """Open connections and background tasks."""

    async def stop(self) -> None:
        """Release connections and background tasks."""

    async def health_check(self) -> bool:
        return True

    def subscribe(self, restaurant_id: int) -> Subscription:
        subscription = Subscription(restaurant_id, maxsize=self.queue_size)
        self._subscriptions.setdefault(restaurant_id, set()).add(subscription)
        logger.debug(f"Dashboard subscribed to restaurant #{restaurant_id}")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscribers = self._subscriptions.get(subscription.restaurant_id)
        if not subscribers:
            return
        subscribers.discard(subscription)
        if not subscribers:
            del self._subscriptions[subscription.restaurant_id]
        if subscription.dropped:
            logger.warning(f"{subscription!r} closed after dropping {subscription.dropped} event(s)")

    def subscriber_count(self, restaurant_id: int) -> int:
        return len(self._subscriptions.get(restaurant_id, ()))

    def _fan_out(self, event: OrderEvent) -> int:
        subscribers = self._subscriptions.get(event.restaurant_id, ())
        for subscription in list(subscribers):
            subscription.deliver(event)
        return len(subscribers)

    async def publish_safely(self, event: OrderEvent) -> None:
        """Publish, logging instead of raising on failure."""
        try:
            await self.publish(event)
        except Exception as e:
            logger.error(f"Failed to publish {event.type} for restaurant #{event.restaurant_id}: {e}")
