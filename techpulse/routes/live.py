"""
Live route: WebSocket stream of notifier events.

Each connection gets its own subscription; a slow client only loses its own
events. Clients are greeted with a "connected" event, then receive
new-article, trending-updated and heartbeat events as they are published.
"""

import asyncio
import logging
import secrets

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from ..config import config, state
from ..notifier import Event, EventType

logger = logging.getLogger(__name__)

router = APIRouter(tags=["live"])


async def _forward_events(websocket: WebSocket, subscription):
    async for event in subscription:
        await websocket.send_json(event.to_message())


async def _drain_client(websocket: WebSocket):
    """Consume (and ignore) client messages until it disconnects."""
    while True:
        await websocket.receive_text()


@router.websocket("/ws")
async def live_events(websocket: WebSocket):
    if config.AUTH_API_KEY:
        api_key = websocket.headers.get("x-api-key") or websocket.query_params.get("api_key", "")
        if not secrets.compare_digest(api_key, config.AUTH_API_KEY):
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

    notifier = state.notifier
    if notifier is None:
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return

    await websocket.accept()
    subscription = notifier.subscribe()
    try:
        await websocket.send_json(Event(
            type=EventType.CONNECTED,
            payload={"message": "Connected to TechPulse live updates"},
        ).to_message())

        sender = asyncio.create_task(_forward_events(websocket, subscription))
        receiver = asyncio.create_task(_drain_client(websocket))
        done, pending = await asyncio.wait({sender, receiver}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        for task in done:
            exc = task.exception()
            if exc and not isinstance(exc, WebSocketDisconnect):
                logger.debug(f"Live connection closed: {exc}")
    except WebSocketDisconnect:
        pass
    finally:
        subscription.close()
