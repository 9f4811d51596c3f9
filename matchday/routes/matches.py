"""Stored live events of a match."""

from fastapi import APIRouter, Request

from matchday.security import limiter

router = APIRouter(prefix="/api/matches", tags=["matches"])


@router.get("/{match_id}/events")
@limiter.limit("120/minute")
async def match_events(request: Request, match_id: int):
    """Events of one match, oldest first."""
    events = await request.app.state.events.list_for_match(match_id)
    return {"events": [event.to_dict() for event in events]}
