"""
Ingestion Gateway - entry point for the score-reporting system's webhooks.

accept_live_update() is the synchronous part of a live update: signature
check, event persistence, fan-out, then live state on the match. On a completion
it hands standings and content off as detached tasks, so the caller's
response never waits on (or fails because of) derived work.
"""

import hmac
import json
import logging
from typing import Any, Optional

from matchday.config import Settings
from matchday.content.pipeline import ALL_SCANS, ContentPipeline
from matchday.errors import InvalidRequest, PersistenceFailure, Unauthorized
from matchday.events.broadcaster import LIVE_EVENTS_UPDATE, FanoutBroadcaster
from matchday.events.tasks import TaskRunner
from matchday.models import MatchEvent
from matchday.standings.engine import StandingsEngine
from matchday.stores.events import EventStore
from matchday.stores.matches import COMPLETED, MatchStore
from matchday.telemetry import capture_exception, record_webhook

logger = logging.getLogger(__name__)

DEFAULT_EVENT_TYPE = "goal"


def verify_signature(signature: Optional[str], secret: str) -> bool:
    """Constant-time comparison; an unset secret or missing signature never matches."""
    if not secret or not signature:
        return False
    return hmac.compare_digest(signature.encode("utf-8"), secret.encode("utf-8"))


def _minute(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def event_fields(payload: dict) -> dict:
    """MatchEvent columns derived from a live-update payload."""
    description = payload.get("last_event") or payload.get("description")
    if not description:
        description = json.dumps(payload, default=str)
    return {
        "event_type": payload.get("event_type") or DEFAULT_EVENT_TYPE,
        "minute_mark": _minute(payload.get("minute")),
        "description": description,
    }


class IngestionGateway:
    def __init__(
        self,
        settings: Settings,
        events: EventStore,
        matches: MatchStore,
        broadcaster: FanoutBroadcaster,
        tasks: TaskRunner,
        standings: StandingsEngine,
        pipeline: ContentPipeline,
    ):
        self._settings = settings
        self._events = events
        self._matches = matches
        self._broadcaster = broadcaster
        self._tasks = tasks
        self._standings = standings
        self._pipeline = pipeline

    def _authorize(self, endpoint: str, signature: Optional[str], match_id: Any) -> int:
        if not verify_signature(signature, self._settings.WEBHOOK_SECRET):
            record_webhook(endpoint, "unauthorized")
            logger.warning(f"[WEBHOOK] {endpoint}: invalid signature, rejected")
            raise Unauthorized("Invalid signature")

        if match_id is None or match_id == "":
            record_webhook(endpoint, "invalid")
            raise InvalidRequest("Missing matchId")
        try:
            match_id = int(match_id)
        except (TypeError, ValueError):
            record_webhook(endpoint, "invalid")
            raise InvalidRequest("matchId must be an integer")
        if match_id == 0:
            record_webhook(endpoint, "invalid")
            raise InvalidRequest("Missing matchId")
        return match_id

    async def accept_live_update(
        self,
        match_id: Any,
        payload: Optional[dict],
        signature: Optional[str],
    ) -> MatchEvent:
        """
        Store a live event, fan it out to viewers and update the match.

        A failure to update the match is logged; the stored event has already
        been delivered by then.

        Raises:
            Unauthorized: signature mismatch (nothing stored, nothing sent)
            InvalidRequest: match_id missing
            PersistenceFailure: event could not be stored
        """
        match_id = self._authorize("live-updates", signature, match_id)
        payload = payload or {}

        event = await self._events.append(match_id=match_id, **event_fields(payload))
        delivered = await self._broadcaster.publish(
            LIVE_EVENTS_UPDATE,
            {"matchId": match_id, "payload": payload, "eventId": event.id},
        )

        try:
            match = await self._matches.apply_live_state(match_id, payload)
        except PersistenceFailure as e:
            logger.error(f"[WEBHOOK] Live state not applied for match_id={match_id}: {e.message}", exc_info=True)
            capture_exception(e, job_id="live_state", match_id=match_id)
            match = None

        record_webhook("live-updates", "accepted")
        logger.info(
            f"[WEBHOOK] Stored event id={event.id} match_id={match_id} "
            f"type={event.event_type} (delivered to {delivered} viewers)"
        )

        if payload.get("status") == COMPLETED:
            self._on_completed(match_id, match.league_id if match is not None else None)

        return event

    def _on_completed(self, match_id: int, league_id: Optional[int]) -> None:
        if league_id is not None:
            self._tasks.spawn("standings_recompute", lambda: self._standings.recompute(league_id))
        else:
            logger.warning(f"[WEBHOOK] match_id={match_id} completed without a known league, standings untouched")

        self.schedule_content_pass("webhook_completed")

    async def accept_lineup_upload(
        self,
        match_id: Any,
        team_id: Any,
        signature: Optional[str],
    ) -> bool:
        """
        Acknowledge an uploaded lineup and schedule a content pass.

        Returns True when a pass was scheduled (False with generation disabled).
        """
        match_id = self._authorize("lineup-uploaded", signature, match_id)
        record_webhook("lineup-uploaded", "accepted")
        logger.info(f"[WEBHOOK] Lineup uploaded for match_id={match_id} team_id={team_id}")
        return self.schedule_content_pass("webhook_lineup")

    def schedule_content_pass(self, trigger: str) -> bool:
        if not self._settings.NEWS_GENERATION_ENABLED:
            logger.debug(f"[WEBHOOK] News generation disabled, no content pass for {trigger}")
            return False
        self._tasks.spawn(
            "content_generation",
            lambda: self._pipeline.generate_from_current_state(trigger=trigger, scans=ALL_SCANS),
        )
        return True
