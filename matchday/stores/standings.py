"""Standings Store: per-team season tallies keyed by (league_id, team_id)."""

import logging
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from matchday.db_utils import bulk_upsert
from matchday.errors import PersistenceFailure
from matchday.models import StandingsRow, Team

logger = logging.getLogger(__name__)

CONFLICT_COLUMNS = ["league_id", "team_id"]


class StandingsStore:
    def __init__(self, session_factory):
        self._session_factory = session_factory

    async def replace_league(self, league_id: int, rows: list[dict[str, Any]]) -> int:
        """
        Replace a league's table with rows in one transaction.

        Upserts every row and deletes rows of teams that are no longer
        assigned to the league, so the stored set always matches the input.
        """
        team_ids = [row["team_id"] for row in rows]
        try:
            async with self._session_factory() as session:
                stale = delete(StandingsRow).where(StandingsRow.league_id == league_id)
                if team_ids:
                    stale = stale.where(StandingsRow.team_id.not_in(team_ids))
                await session.execute(stale)
                count = await bulk_upsert(session, StandingsRow, rows, CONFLICT_COLUMNS)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"[STANDINGS] Failed to store table for league_id={league_id}: {e}")
            raise PersistenceFailure(f"Could not store standings for league {league_id}") from e
        return count

    async def list_league(self, league_id: int) -> list[tuple[StandingsRow, str]]:
        """Stored rows of a league with team names, unordered."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(StandingsRow, Team.name)
                    .join(Team, Team.id == StandingsRow.team_id)
                    .where(StandingsRow.league_id == league_id)
                )
                return [(row, name) for row, name in result.all()]
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Could not read standings for league {league_id}") from e
