"""
Redis Event Broker

Shares order events between API workers through a Redis pub/sub channel.
Every worker publishes to REALTIME_CHANNEL and runs one listener task that
hands received events to its own local subscriptions.

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import json
import logging
from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from qrar.services.realtime.base import BaseEventBroker, OrderEvent

logger = logging.getLogger(__name__)


class RedisEventBroker(BaseEventBroker):
    """
    Event broker backed by Redis pub/sub.

    Example:
        >>> broker = RedisEventBroker("redis://localhost:6379/0")
        >>> await broker.start()
        >>> await broker.publish(OrderEvent("order:created", 1, {...}))
    """

    def __init__(self, redis_url: str, channel: str = "qrar:orders", queue_size: int = 100):
        super().__init__(queue_size=queue_size)
        self.redis_url = redis_url
        self.channel = channel
        self._client: Optional[aioredis.Redis] = None
        self._listener: Optional[asyncio.Task] = None

    @property
    def provider_name(self) -> str:
        return "redis"

    async def start(self) -> None:
        if self._listener is not None:
            return
        self._client = aioredis.from_url(self.redis_url, decode_responses=True)
        pubsub = self._client.pubsub()
        await pubsub.subscribe(self.channel)
        self._listener = asyncio.create_task(self._listen(pubsub))
        logger.info(f"RedisEventBroker listening on {self.channel}")

    async def stop(self) -> None:
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        logger.info("RedisEventBroker stopped")

    async def publish(self, event: OrderEvent) -> None:
        if self._client is None:
            raise RuntimeError("RedisEventBroker.publish called before start()")
        await self._client.publish(self.channel, json.dumps(event.to_dict(), default=str))

    async def _listen(self, pubsub) -> None:
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    event = OrderEvent.from_dict(json.loads(message["data"]))
                except (ValueError, KeyError, TypeError) as e:
                    logger.warning(f"Ignoring malformed event on {self.channel}: {e}")
                    continue
                self._fan_out(event)
        except RedisError as e:
            logger.error(f"Redis listener stopped: {e}")
        finally:
            await pubsub.aclose()

    async def health_check(self) -> bool:
        if self._client is None:
            return False
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            return False
