"""
Standings Engine.

compute_table() is the pure part: seed one zeroed row per assigned team,
attribute every completed match, derive goal difference and points.
StandingsEngine wraps it with the load/replace cycle and the read path,
which always recomputes before reading (consistency over read cost).
"""

import logging
import time
from dataclasses import asdict, dataclass
from typing import Iterable, Optional

from matchday.stores.matches import MatchStore
from matchday.stores.standings import StandingsStore
from matchday.telemetry import record_standings_recompute

logger = logging.getLogger(__name__)

POINTS_WIN = 3
POINTS_DRAW = 1


@dataclass
class StandingsEntry:
    """One displayed table row."""

    position: int
    team_id: int
    team_name: str
    played: int
    won: int
    drawn: int
    lost: int
    goals_for: int
    goals_against: int
    goal_difference: int
    points: int

    def to_dict(self) -> dict:
        return asdict(self)


def _zeroed_row(league_id: int, team_id: int) -> dict:
    return {
        "league_id": league_id,
        "team_id": team_id,
        "played": 0,
        "won": 0,
        "drawn": 0,
        "lost": 0,
        "goals_for": 0,
        "goals_against": 0,
        "goal_difference": 0,
        "points": 0,
    }


def compute_table(league_id: int, team_ids: Iterable[int], matches: Iterable) -> list[dict]:
    """
    Compute a league table from completed matches.

    Args:
        league_id: League the rows belong to
        team_ids: Teams assigned to the league (one row each, even with no games)
        matches: Objects with home_team_id, away_team_id, home_score, away_score

    Returns:
        Row dicts ordered by team_id, ready for StandingsStore.replace_league.
        Matches involving a team outside team_ids are ignored.
    """
    rows = {team_id: _zeroed_row(league_id, team_id) for team_id in team_ids}

    for match in matches:
        home = rows.get(match.home_team_id)
        away = rows.get(match.away_team_id)
        if home is None or away is None:
            logger.debug(
                f"[STANDINGS] Skipping match with unassigned team "
                f"({match.home_team_id} vs {match.away_team_id}) in league_id={league_id}"
            )
            continue

        home_goals = match.home_score
        away_goals = match.away_score

        home["played"] += 1
        away["played"] += 1
        home["goals_for"] += home_goals
        home["goals_against"] += away_goals
        away["goals_for"] += away_goals
        away["goals_against"] += home_goals

        if home_goals > away_goals:
            home["won"] += 1
            away["lost"] += 1
        elif away_goals > home_goals:
            away["won"] += 1
            home["lost"] += 1
        else:
            home["drawn"] += 1
            away["drawn"] += 1

    for row in rows.values():
        row["goal_difference"] = row["goals_for"] - row["goals_against"]
        row["points"] = POINTS_WIN * row["won"] + POINTS_DRAW * row["drawn"]

    return [rows[team_id] for team_id in sorted(rows)]


def standings_sort_key(row: dict) -> tuple:
    """Tie-break chain: points, goal difference, goals for, wins (all desc), then name."""
    return (
        -row["points"],
        -row["goal_difference"],
        -row["goals_for"],
        -row["won"],
        row["team_name"],
        row["team_id"],
    )


def rank_rows(rows: list[dict]) -> list[StandingsEntry]:
    """Sort rows by the tie-break chain and number them from 1."""
    ordered = sorted(rows, key=standings_sort_key)
    return [
        StandingsEntry(
            position=index,
            team_id=row["team_id"],
            team_name=row["team_name"],
            played=row["played"],
            won=row["won"],
            drawn=row["drawn"],
            lost=row["lost"],
            goals_for=row["goals_for"],
            goals_against=row["goals_against"],
            goal_difference=row["goal_difference"],
            points=row["points"],
        )
        for index, row in enumerate(ordered, start=1)
    ]


class StandingsEngine:
    def __init__(self, matches: MatchStore, standings: StandingsStore):
        self._matches = matches
        self._standings = standings

    async def recompute(self, league_id: int) -> list[dict]:
        """
        Recompute and fully replace the stored table of a league.

        Idempotent: concurrent runs for the same league are last-writer-wins.
        """
        start_time = time.time()
        try:
            teams = await self._matches.league_teams(league_id)
            matches = await self._matches.completed_league_matches(league_id)
            rows = compute_table(league_id, [team.id for team in teams], matches)
            await self._standings.replace_league(league_id, rows)
        except Exception:
            record_standings_recompute("error")
            raise

        record_standings_recompute("ok")
        elapsed_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"[STANDINGS] Recomputed league_id={league_id}: "
            f"{len(rows)} teams, {len(matches)} matches ({elapsed_ms}ms)"
        )
        return rows

    async def get_standings(self, league_id: int) -> list[StandingsEntry]:
        """Recompute, then read the league table in display order."""
        await self.recompute(league_id)
        stored = await self._standings.list_league(league_id)
        rows = []
        for row, team_name in stored:
            data = row.model_dump(exclude={"id"})
            data["team_name"] = team_name
            rows.append(data)
        return rank_rows(rows)

    async def get_all_standings(self, league_ids: Optional[list[int]] = None) -> dict[int, list[StandingsEntry]]:
        """Tables of every league (or the given ones), each recomputed."""
        if league_ids is None:
            league_ids = await self._matches.league_ids()
        return {league_id: await self.get_standings(league_id) for league_id in league_ids}
