"""
Fan-out Broadcaster: republishes inbound live events to connected viewers.

Design:
- Registry of subscriber channels, owned here for their whole lifetime
- publish() delivers to a snapshot of the registry, so connect/disconnect
  during a publish needs no lock
- Best-effort: no acknowledgment, no replay for late joiners, no ordering
  across channels
- Slow or dead channels are NOT detected or evicted; a failed send is
  logged and counted, and the channel stays registered until its own
  disconnect deregisters it
"""

import asyncio
import logging
from typing import Any, Protocol

from fastapi import WebSocket

from matchday.telemetry import record_fanout, set_subscriber_count

logger = logging.getLogger("matchday.events")

LIVE_EVENTS_UPDATE = "live-events:update"


class SubscriberChannel(Protocol):
    """Opaque live connection handle."""

    async def send(self, event_name: str, data: dict[str, Any]) -> None: ...


class WebSocketChannel:
    """Subscriber channel backed by a WebSocket connection."""

    __slots__ = ("websocket", "channel_id")

    def __init__(self, websocket: WebSocket, channel_id: str):
        self.websocket = websocket
        self.channel_id = channel_id

    async def send(self, event_name: str, data: dict[str, Any]) -> None:
        await self.websocket.send_json({"event": event_name, "data": data})

    def __repr__(self):
        return f"WebSocketChannel({self.channel_id})"


class FanoutBroadcaster:
    def __init__(self):
        self._channels: set = set()

    def register(self, channel: SubscriberChannel) -> None:
        self._channels.add(channel)
        set_subscriber_count(len(self._channels))
        logger.info(f"Broadcaster: registered {channel!r} (subscribers={len(self._channels)})")

    def deregister(self, channel: SubscriberChannel) -> None:
        self._channels.discard(channel)
        set_subscriber_count(len(self._channels))
        logger.info(f"Broadcaster: deregistered {channel!r} (subscribers={len(self._channels)})")

    @property
    def subscriber_count(self) -> int:
        return len(self._channels)

    async def publish(self, event_name: str, data: dict[str, Any]) -> int:
        """
        Deliver data to every channel registered at call time.

        Returns the number of channels the message was handed to.
        """
        channels = list(self._channels)
        if not channels:
            logger.debug(f"Broadcaster: no subscribers for {event_name}")
            return 0

        results = await asyncio.gather(
            *(channel.send(event_name, data) for channel in channels),
            return_exceptions=True,
        )

        failed = 0
        for channel, result in zip(channels, results):
            if isinstance(result, Exception):
                failed += 1
                logger.warning(f"Broadcaster: send to {channel!r} failed: {result}")

        delivered = len(channels) - failed
        record_fanout(delivered, failed)
        logger.debug(f"Broadcaster: {event_name} delivered to {delivered}/{len(channels)} channels")
        return delivered
