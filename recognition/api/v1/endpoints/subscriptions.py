"""Real-time recognition feeds over WebSocket."""

import asyncio
import logging
from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, status

from recognition.core.database import session_manager
from recognition.core.security import Identity, get_token, resolve_identity
from recognition.services.NotificationFanout import NotificationFanout, Subscription
from recognition.services.UserDirectory import SqlUserDirectory

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/subscriptions",
    tags=["subscriptions"]
)

# What a send or receive on a socket the client has left raises, depending on the server
DISCONNECT_ERRORS = (WebSocketDisconnect, RuntimeError, OSError)


async def authenticate(websocket: WebSocket) -> Identity:
    # Short-lived session: the socket may stay open for hours
    async with session_manager.get_session() as db:
        return await resolve_identity(get_token(websocket), SqlUserDirectory(db))


async def forward(websocket: WebSocket, subscription: Subscription):
    async for payload in subscription:
        await websocket.send_json(payload)


async def wait_for_disconnect(websocket: WebSocket):
    """Read client frames until the client goes away. Anything it sends is ignored."""
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


async def stream(websocket: WebSocket, subscription: Subscription):
    """
    Accept the socket and forward events until the client goes away.

    The subscription is registered before accepting, so a client sees every
    event published once its connection is open. A disconnect noticed by
    either the reader or the sender ends both and unregisters the queue.
    """
    async with subscription:
        await websocket.accept()
        tasks = {
            asyncio.create_task(forward(websocket, subscription)),
            asyncio.create_task(wait_for_disconnect(websocket)),
        }
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        for task in done:
            error = task.exception()
            if error is not None and not isinstance(error, DISCONNECT_ERRORS):
                raise error

    logger.info(f"Subscriber disconnected from {subscription.channel}")


@router.websocket("/received")
async def recognitions_received(websocket: WebSocket):
    """Recognitions sent to the connected user, as they are created."""
    try:
        identity = await authenticate(websocket)
    except HTTPException as e:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.detail)
        return

    fanout = NotificationFanout(websocket.app.state.message_bus)
    logger.info(f"User {identity.id} subscribed to recognition notifications")
    await stream(websocket, fanout.subscribe_received(identity.id))


@router.websocket("/public")
async def recognitions_created(websocket: WebSocket):
    """Every PUBLIC recognition, as it is created."""
    try:
        await authenticate(websocket)
    except HTTPException as e:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.detail)
        return

    fanout = NotificationFanout(websocket.app.state.message_bus)
    logger.info("Client subscribed to new recognitions")
    await stream(websocket, fanout.subscribe_public())
