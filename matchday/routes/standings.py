"""League standings: read (always recomputed) and manual recalculation."""

from fastapi import APIRouter, Depends, Request

from matchday.security import limiter, verify_api_key

router = APIRouter(prefix="/api/standings", tags=["standings"])


@router.get("/league/{league_id}")
@limiter.limit("60/minute")
async def league_standings(request: Request, league_id: int):
    entries = await request.app.state.standings.get_standings(league_id)
    return {"standings": [entry.to_dict() for entry in entries]}


@router.get("")
@limiter.limit("30/minute")
async def all_standings(request: Request):
    """Every league's table, flattened, each row tagged with its league."""
    tables = await request.app.state.standings.get_all_standings()
    standings = []
    for league_id, entries in tables.items():
        for entry in entries:
            standings.append({"league_id": league_id, **entry.to_dict()})
    return {"standings": standings}


@router.post("/recalculate/{league_id}")
@limiter.limit("10/minute")
async def recalculate_standings(
    request: Request,
    league_id: int,
    _: bool = Depends(verify_api_key),
):
    entries = await request.app.state.standings.get_standings(league_id)
    return {
        "message": "Standings recalculated",
        "standings": [entry.to_dict() for entry in entries],
    }
