"""
Match data access for the live pipeline.

Read-side queries used by the standings engine and the content scans, plus
the one write the webhook performs on a match (live status and score).
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import aliased

from matchday.errors import PersistenceFailure
from matchday.models import League, Match, Player, PlayerMatchStat, Team, utcnow

logger = logging.getLogger(__name__)

COMPLETED = "completed"
SCHEDULED = "scheduled"
IN_PROGRESS = "in_progress"
FRIENDLY = "friendly"

# Goalkeeper -> defender -> midfielder -> forward -> anything else
POSITION_ORDER = {"Goalkeeper": 1, "Defender": 2, "Midfielder": 3, "Forward": 4}


@dataclass
class MatchSummary:
    """Match joined with team and competition names."""

    match_id: int
    league_id: Optional[int]
    home_team_id: int
    away_team_id: int
    home_team: str
    away_team: str
    home_score: Optional[int]
    away_score: Optional[int]
    match_date: datetime
    venue: Optional[str]
    competition: Optional[str]
    status: str


def _int_or_none(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class MatchStore:
    def __init__(self, session_factory):
        self._session_factory = session_factory

    # ── live state ──────────────────────────────────────────────────────────

    async def apply_live_state(self, match_id: int, payload: dict) -> Optional[Match]:
        """
        Copy status and score carried by a webhook payload onto the match.

        Stamps finished_at on the transition to completed. Returns the match
        (None when the match is unknown).
        """
        try:
            async with self._session_factory() as session:
                match = await session.get(Match, match_id)
                if match is None:
                    logger.warning(f"[WEBHOOK] match_id={match_id} not found, live state not applied")
                    return None

                status = payload.get("status")
                if status:
                    if status == COMPLETED and match.status != COMPLETED:
                        match.finished_at = utcnow()
                    match.status = status

                home_score = _int_or_none(payload.get("home_score"))
                away_score = _int_or_none(payload.get("away_score"))
                if home_score is not None:
                    match.home_score = home_score
                if away_score is not None:
                    match.away_score = away_score

                await session.commit()
                return match
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Could not update match {match_id}") from e

    # ── standings inputs ────────────────────────────────────────────────────

    async def league_teams(self, league_id: int) -> list[Team]:
        return await self._scalars(
            select(Team).where(Team.league_id == league_id).order_by(Team.id)
        )

    async def completed_league_matches(self, league_id: int) -> list[Match]:
        """Completed, non-friendly matches of a league with both scores recorded."""
        return await self._scalars(
            select(Match)
            .where(
                Match.league_id == league_id,
                Match.status == COMPLETED,
                Match.match_type != FRIENDLY,
                Match.home_score.is_not(None),
                Match.away_score.is_not(None),
            )
            .order_by(Match.match_date, Match.id)
        )

    async def league_ids(self) -> list[int]:
        return await self._scalars(select(League.id).order_by(League.id))

    # ── content scans ───────────────────────────────────────────────────────

    async def recent_lineups(
        self,
        uploaded_since: datetime,
        now: datetime,
        min_players: int,
        limit: int,
    ) -> list[MatchSummary]:
        """
        Not-yet-played matches with a lineup uploaded since uploaded_since.

        A match qualifies when at least one side has min_players distinct
        players among the recent uploads. Newest upload first.
        """
        stmt = (
            select(
                PlayerMatchStat.match_id,
                PlayerMatchStat.club_id,
                func.count(func.distinct(PlayerMatchStat.player_id)).label("players"),
                func.max(PlayerMatchStat.created_at).label("uploaded_at"),
            )
            .join(Match, Match.id == PlayerMatchStat.match_id)
            .where(
                PlayerMatchStat.created_at >= uploaded_since,
                Match.status.in_([SCHEDULED, IN_PROGRESS]),
                Match.match_date >= now,
            )
            .group_by(PlayerMatchStat.match_id, PlayerMatchStat.club_id)
        )
        try:
            async with self._session_factory() as session:
                side_rows = (await session.execute(stmt)).all()
        except SQLAlchemyError as e:
            raise PersistenceFailure("Could not scan uploaded lineups") from e

        per_match: dict[int, dict] = defaultdict(lambda: {"sides": {}, "uploaded_at": None})
        for row in side_rows:
            entry = per_match[row.match_id]
            entry["sides"][row.club_id] = row.players
            if entry["uploaded_at"] is None or row.uploaded_at > entry["uploaded_at"]:
                entry["uploaded_at"] = row.uploaded_at

        qualifying = [
            (match_id, entry)
            for match_id, entry in per_match.items()
            if max(entry["sides"].values()) >= min_players
        ]
        qualifying.sort(key=lambda item: item[1]["uploaded_at"], reverse=True)
        qualifying = qualifying[:limit]
        if not qualifying:
            return []

        summaries = {
            s.match_id: s
            for s in await self._summaries(Match.id.in_([match_id for match_id, _ in qualifying]))
        }
        return [summaries[match_id] for match_id, _ in qualifying if match_id in summaries]

    async def lineup(self, match_id: int, team_id: int, limit: int = 11) -> list[dict]:
        """Confirmed roster of one side, goalkeeper first, then by squad number."""
        position_rank = case(POSITION_ORDER, value=Player.position, else_=5)
        stmt = (
            select(Player.id, Player.first_name, Player.last_name, Player.position, Player.jersey_number)
            .join(PlayerMatchStat, PlayerMatchStat.player_id == Player.id)
            .where(PlayerMatchStat.match_id == match_id, PlayerMatchStat.club_id == team_id)
            .order_by(position_rank, Player.jersey_number)
            .limit(limit)
        )
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).all()
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Could not read lineup for match {match_id}") from e
        roster = []
        seen = set()
        for row in rows:
            if row.id in seen:
                continue
            seen.add(row.id)
            roster.append({
                "first_name": row.first_name,
                "last_name": row.last_name,
                "position": row.position,
                "jersey_number": row.jersey_number,
            })
        return roster

    async def recent_results(self, since: datetime, limit: int) -> list[MatchSummary]:
        finished = func.coalesce(Match.finished_at, Match.match_date)
        return await self._summaries(
            Match.status == COMPLETED,
            finished >= since,
            order_by=[finished.desc(), Match.id.desc()],
            limit=limit,
        )

    async def upcoming(self, now: datetime, until: datetime, limit: int) -> list[MatchSummary]:
        return await self._summaries(
            Match.status == SCHEDULED,
            Match.match_date >= now,
            Match.match_date <= until,
            order_by=[Match.match_date, Match.id],
            limit=limit,
        )

    async def most_active_league(self, since: datetime) -> Optional[dict]:
        """League with the most recent match dated on or after since."""
        last_match = func.max(Match.match_date).label("last_match")
        stmt = (
            select(League.id, League.name, last_match)
            .join(Match, Match.league_id == League.id)
            .where(Match.match_date >= since)
            .group_by(League.id, League.name)
            .order_by(last_match.desc(), League.id)
            .limit(1)
        )
        try:
            async with self._session_factory() as session:
                row = (await session.execute(stmt)).first()
        except SQLAlchemyError as e:
            raise PersistenceFailure("Could not scan active leagues") from e
        if row is None:
            return None
        return {"league_id": row.id, "competition": row.name}

    # ── helpers ─────────────────────────────────────────────────────────────

    async def _summaries(self, *filters, order_by=None, limit: Optional[int] = None) -> list[MatchSummary]:
        home = aliased(Team)
        away = aliased(Team)
        stmt = (
            select(
                Match,
                home.name.label("home_team"),
                away.name.label("away_team"),
                League.name.label("competition"),
            )
            .join(home, home.id == Match.home_team_id)
            .join(away, away.id == Match.away_team_id)
            .outerjoin(League, League.id == Match.league_id)
            .where(*filters)
        )
        if order_by:
            stmt = stmt.order_by(*order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).all()
        except SQLAlchemyError as e:
            raise PersistenceFailure("Could not read matches") from e

        return [
            MatchSummary(
                match_id=match.id,
                league_id=match.league_id,
                home_team_id=match.home_team_id,
                away_team_id=match.away_team_id,
                home_team=home_team,
                away_team=away_team,
                home_score=match.home_score,
                away_score=match.away_score,
                match_date=match.match_date,
                venue=match.venue,
                competition=competition,
                status=match.status,
            )
            for match, home_team, away_team, competition in rows
        ]

    async def _scalars(self, stmt) -> list:
        try:
            async with self._session_factory() as session:
                return list((await session.execute(stmt)).scalars().all())
        except SQLAlchemyError as e:
            raise PersistenceFailure("Could not read match data") from e
