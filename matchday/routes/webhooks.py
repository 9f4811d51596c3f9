"""Webhooks from the external score-reporting system.

Both endpoints authenticate with the pre-shared secret carried in the
signature header (X-PHP-Signature by default).
"""

import logging
from typing import Optional, Union

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from matchday.security import limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


class LiveUpdateRequest(BaseModel):
    matchId: Optional[Union[int, str]] = None
    payload: Optional[dict] = None


class LineupUploadedRequest(BaseModel):
    matchId: Optional[Union[int, str]] = None
    teamId: Optional[Union[int, str]] = None


def _signature(request: Request) -> Optional[str]:
    return request.headers.get(request.app.state.settings.WEBHOOK_SIGNATURE_HEADER)


@router.post("/live-updates", status_code=201)
@limiter.limit("600/minute")
async def live_updates(request: Request, body: LiveUpdateRequest):
    """
    Receive a live match update.

    Stores the event and fans it out before responding; standings and
    news for a completed match run after the response.
    """
    event = await request.app.state.gateway.accept_live_update(
        match_id=body.matchId,
        payload=body.payload,
        signature=_signature(request),
    )
    return JSONResponse(status_code=201, content={"message": "Event stored", "eventId": event.id})


@router.post("/lineup-uploaded")
@limiter.limit("120/minute")
async def lineup_uploaded(request: Request, body: LineupUploadedRequest):
    """Receive notice of an uploaded lineup; news generation runs after the response."""
    scheduled = await request.app.state.gateway.accept_lineup_upload(
        match_id=body.matchId,
        team_id=body.teamId,
        signature=_signature(request),
    )
    return {"message": "Lineup received", "scheduled": scheduled}
