"""
Live fan-out and detached task infrastructure.

Usage:
    from matchday.events import FanoutBroadcaster, LIVE_EVENTS_UPDATE, TaskRunner

    broadcaster = FanoutBroadcaster()
    broadcaster.register(channel)
    await broadcaster.publish(LIVE_EVENTS_UPDATE, {"matchId": 12, "payload": {...}})

    runner = TaskRunner()
    runner.spawn("standings_recompute", lambda: engine.recompute(league_id))
"""

from matchday.events.broadcaster import (
    LIVE_EVENTS_UPDATE,
    FanoutBroadcaster,
    SubscriberChannel,
    WebSocketChannel,
)
from matchday.events.tasks import TaskRunner

__all__ = [
    "LIVE_EVENTS_UPDATE",
    "FanoutBroadcaster",
    "SubscriberChannel",
    "WebSocketChannel",
    "TaskRunner",
]
