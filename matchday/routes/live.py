"""WebSocket endpoint for live viewers."""

import logging
import uuid

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from matchday.events.broadcaster import WebSocketChannel

logger = logging.getLogger(__name__)

router = APIRouter(tags=["live"])


@router.websocket("/ws/live")
async def live_updates(websocket: WebSocket):
    """
    Register the connection with the broadcaster until the viewer leaves.

    Messages are {"event": "live-events:update", "data": {...}}. Anything
    the viewer sends is ignored.
    """
    broadcaster = websocket.app.state.broadcaster
    await websocket.accept()
    channel = WebSocketChannel(websocket, channel_id=uuid.uuid4().hex[:12])
    broadcaster.register(channel)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug(f"Live viewer {channel.channel_id} disconnected")
    finally:
        broadcaster.deregister(channel)
