"""
Dashboard WebSocket: streams order:created and order:updated events for the
restaurant owning the token.

    ws://host/ws/orders?token=<bearer token>

Messages are JSON objects ``{"type", "restaurant_id", "data"}``. A missing
or invalid token closes the socket with code 1008 before it is accepted.
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, status
from sqlalchemy.ext.asyncio import AsyncSession

from qrar.api.deps import authenticate_token
from qrar.core.security import InvalidTokenError
from qrar.database import get_db
from qrar.services.realtime import BaseEventBroker, Subscription, get_event_broker

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])


async def _forward_events(websocket: WebSocket, subscription: Subscription) -> None:
    while True:
        event = await subscription.get()
        await websocket.send_json(event.to_dict())


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/ws/orders")
async def order_events(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    broker: BaseEventBroker = Depends(get_event_broker),
) -> None:
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    try:
        restaurant = await authenticate_token(db, token)
    except InvalidTokenError as e:
        logger.info(f"WebSocket rejected: {e}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    restaurant_id = restaurant.id
    # The socket may stay open for hours; don't hold a connection for it
    await db.close()

    subscription = broker.subscribe(restaurant_id)
    try:
        await websocket.accept()
        logger.info(f"Dashboard connected for restaurant #{restaurant_id}")

        forward = asyncio.create_task(_forward_events(websocket, subscription))
        disconnect = asyncio.create_task(_wait_for_disconnect(websocket))
        done, pending = await asyncio.wait({forward, disconnect}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        for task in done:
            error = task.exception()
            if error is not None:
                logger.warning(f"Stopped streaming to restaurant #{restaurant_id}: {error}")
    finally:
        broker.unsubscribe(subscription)
        logger.info(f"Dashboard disconnected for restaurant #{restaurant_id}")
