import logging

import pytest

from qrar.services.realtime import (
    ORDER_CREATED,
    ORDER_UPDATED,
    MemoryEventBroker,
    OrderEvent,
    RedisEventBroker,
    Subscription,
    get_event_broker,
    reset_event_broker,
)


def _event(restaurant_id: int, n: int = 1, type_: str = ORDER_CREATED) -> OrderEvent:
    return OrderEvent(type_, restaurant_id, {"id": n})


async def test_full_queue_drops_oldest_event():
    subscription = Subscription(restaurant_id=1, maxsize=2)

    for n in (1, 2, 3):
        subscription.deliver(_event(1, n))

    assert subscription.dropped == 1
    assert (await subscription.get()).data == {"id": 2}
    assert (await subscription.get()).data == {"id": 3}


def test_subscription_needs_room_for_one_event():
    with pytest.raises(ValueError):
        Subscription(restaurant_id=1, maxsize=0)


async def test_events_only_reach_their_restaurant():
    broker = MemoryEventBroker()
    first = broker.subscribe(1)
    second = broker.subscribe(2)

    await broker.publish(_event(1))

    assert first.queue.qsize() == 1
    assert second.queue.empty()
    assert broker.published == 1


async def test_every_subscriber_of_a_restaurant_gets_the_event():
    broker = MemoryEventBroker()
    dashboards = [broker.subscribe(7) for _ in range(3)]

    await broker.publish(_event(7, type_=ORDER_UPDATED))

    for subscription in dashboards:
        event = await subscription.get()
        assert event.type == ORDER_UPDATED


async def test_unsubscribed_dashboard_stops_receiving():
    broker = MemoryEventBroker()
    subscription = broker.subscribe(1)
    assert broker.subscriber_count(1) == 1

    broker.unsubscribe(subscription)
    broker.unsubscribe(subscription)
    await broker.publish(_event(1))

    assert broker.subscriber_count(1) == 0
    assert subscription.queue.empty()


async def test_broker_queue_size_bounds_subscriptions():
    broker = MemoryEventBroker(queue_size=3)
    subscription = broker.subscribe(1)

    for n in range(5):
        await broker.publish(_event(1, n))

    assert subscription.queue.qsize() == 3
    assert subscription.dropped == 2


class _FailingBroker(MemoryEventBroker):
    async def publish(self, event):
        raise RuntimeError("connection lost")


async def test_publish_safely_logs_instead_of_raising(caplog):
    broker = _FailingBroker()

    with caplog.at_level(logging.ERROR):
        await broker.publish_safely(_event(1))

    assert "connection lost" in caplog.text


def test_event_from_wire_payload():
    event = OrderEvent.from_dict({"type": ORDER_CREATED, "restaurant_id": "4", "data": None})

    assert event.restaurant_id == 4
    assert event.data == {}
    assert event.to_dict() == {"type": ORDER_CREATED, "restaurant_id": 4, "data": {}}


async def test_redis_broker_requires_start_before_publish():
    broker = RedisEventBroker("redis://localhost:6379/0")

    assert broker.provider_name == "redis"
    assert await broker.health_check() is False
    with pytest.raises(RuntimeError):
        await broker.publish(_event(1))


async def test_redis_broker_fans_out_locally():
    broker = RedisEventBroker("redis://localhost:6379/0")
    subscription = broker.subscribe(3)

    # What the listener task does with a message from the channel
    broker._fan_out(_event(3))

    assert subscription.queue.qsize() == 1


def test_factory_uses_memory_backend_by_default():
    reset_event_broker()
    try:
        broker = get_event_broker()
        assert isinstance(broker, MemoryEventBroker)
        assert get_event_broker() is broker
    finally:
        reset_event_broker()
