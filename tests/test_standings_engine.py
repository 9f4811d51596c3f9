"""
Tests for the standings engine.

compute_table/rank_rows are pure; StandingsEngine runs against SQLite.
"""

from types import SimpleNamespace

import pytest
from sqlalchemy import update

from matchday.models import Team
from matchday.standings import StandingsEngine, compute_table, rank_rows, standings_sort_key


def _match(home, away, home_score, away_score):
    return SimpleNamespace(home_team_id=home, away_team_id=away, home_score=home_score, away_score=away_score)


def _named(rows, names):
    return [dict(row, team_name=names[row["team_id"]]) for row in rows]


class TestComputeTable:
    """Pure table computation."""

    def test_home_win_attribution(self):
        """Home win: 3 points home, loss away, goals on both sides."""
        rows = compute_table(1, [10, 20], [_match(10, 20, 2, 1)])
        home, away = rows

        assert home == {
            "league_id": 1, "team_id": 10, "played": 1, "won": 1, "drawn": 0, "lost": 0,
            "goals_for": 2, "goals_against": 1, "goal_difference": 1, "points": 3,
        }
        assert away["lost"] == 1
        assert away["points"] == 0
        assert away["goal_difference"] == -1

    def test_draw_gives_one_point_each(self):
        rows = compute_table(1, [10, 20], [_match(10, 20, 1, 1)])
        assert [row["points"] for row in rows] == [1, 1]
        assert [row["drawn"] for row in rows] == [1, 1]

    def test_team_without_matches_has_zeroed_row(self):
        """Every assigned team gets a row, even before its first game."""
        rows = compute_table(1, [10, 20, 30], [_match(10, 20, 0, 3)])
        idle = [row for row in rows if row["team_id"] == 30][0]
        assert idle["played"] == 0
        assert idle["points"] == 0

    def test_match_with_unassigned_team_ignored(self):
        rows = compute_table(1, [10, 20], [_match(10, 99, 5, 0)])
        assert all(row["played"] == 0 for row in rows)

    def test_goal_difference_and_points_invariants(self):
        """GD = GF - GA and points = 3W + D for every row."""
        matches = [
            _match(10, 20, 3, 0),
            _match(20, 30, 2, 2),
            _match(30, 10, 1, 4),
            _match(20, 10, 1, 0),
        ]
        for row in compute_table(1, [10, 20, 30], matches):
            assert row["goal_difference"] == row["goals_for"] - row["goals_against"]
            assert row["points"] == 3 * row["won"] + row["drawn"]
            assert row["played"] == row["won"] + row["drawn"] + row["lost"]

    def test_rows_ordered_by_team_id(self):
        rows = compute_table(1, [30, 10, 20], [])
        assert [row["team_id"] for row in rows] == [10, 20, 30]


class TestRanking:
    """Tie-break chain: points, GD, GF, wins, then team name."""

    def test_points_then_goal_difference(self):
        rows = _named(
            compute_table(1, [1, 2, 3], [_match(1, 3, 4, 0), _match(2, 3, 1, 0)]),
            {1: "Tura Magic", 2: "African Stars", 3: "Blue Waters"},
        )
        ranked = rank_rows(rows)
        assert [entry.team_name for entry in ranked] == ["Tura Magic", "African Stars", "Blue Waters"]
        assert [entry.position for entry in ranked] == [1, 2, 3]

    def test_goals_for_breaks_equal_goal_difference(self):
        rows = _named(
            compute_table(1, [1, 2, 3, 4], [_match(1, 3, 3, 2), _match(2, 4, 1, 0)]),
            {1: "Zebra FC", 2: "Alpha FC", 3: "C", 4: "D"},
        )
        ranked = rank_rows(rows)
        # Both winners on 3 points and +1; Zebra scored more
        assert ranked[0].team_name == "Zebra FC"
        assert ranked[1].team_name == "Alpha FC"

    def test_name_breaks_full_tie(self):
        rows = _named(compute_table(1, [1, 2], []), {1: "Orlando Pirates", 2: "Eleven Arrows"})
        ranked = rank_rows(rows)
        assert [entry.team_name for entry in ranked] == ["Eleven Arrows", "Orlando Pirates"]

    def test_strict_total_order_for_distinct_names(self):
        rows = _named(
            compute_table(1, [1, 2, 3, 4], [_match(1, 2, 1, 1), _match(3, 4, 1, 1)]),
            {1: "A", 2: "B", 3: "C", 4: "D"},
        )
        keys = [standings_sort_key(row) for row in rows]
        assert len(set(keys)) == len(keys)


class TestStandingsEngine:
    """Recompute/read cycle against the database."""

    @pytest.fixture
    def engine_under_test(self, match_store, standings_store):
        return StandingsEngine(match_store, standings_store)

    @pytest.fixture
    async def league_setup(self, seed):
        league = await seed.league()
        black_africa = await seed.team("Black Africa FC", league)
        tura = await seed.team("Tura Magic", league)
        stars = await seed.team("African Stars", league)
        await seed.result(black_africa, tura, league, 2, 1)
        await seed.result(stars, black_africa, league, 0, 0)
        return league, black_africa, tura, stars

    @pytest.mark.asyncio
    async def test_recompute_is_idempotent(self, engine_under_test, standings_store, league_setup):
        """Two recomputes in a row store identical row sets."""
        league, *_ = league_setup

        first = await engine_under_test.recompute(league.id)
        stored_first = sorted(
            (row.model_dump(exclude={"id"}) for row, _ in await standings_store.list_league(league.id)),
            key=lambda row: row["team_id"],
        )
        second = await engine_under_test.recompute(league.id)
        stored_second = sorted(
            (row.model_dump(exclude={"id"}) for row, _ in await standings_store.list_league(league.id)),
            key=lambda row: row["team_id"],
        )

        assert first == second
        assert stored_first == stored_second
        assert len(stored_second) == 3

    @pytest.mark.asyncio
    async def test_get_standings_ranks_league(self, engine_under_test, league_setup):
        league, black_africa, tura, stars = league_setup

        table = await engine_under_test.get_standings(league.id)

        assert [entry.team_name for entry in table] == ["Black Africa FC", "African Stars", "Tura Magic"]
        top = table[0]
        assert (top.played, top.won, top.drawn, top.points) == (2, 1, 1, 4)
        assert top.goal_difference == 1

    @pytest.mark.asyncio
    async def test_friendlies_and_unscored_matches_excluded(self, engine_under_test, seed, league_setup):
        league, black_africa, tura, _ = league_setup
        await seed.result(tura, black_africa, league, 5, 0, match_type="friendly")
        await seed.match(tura, black_africa, league, status="completed")  # no score recorded

        table = {entry.team_name: entry for entry in await engine_under_test.get_standings(league.id)}

        assert table["Tura Magic"].played == 1
        assert table["Tura Magic"].points == 0

    @pytest.mark.asyncio
    async def test_team_leaving_league_loses_its_row(
        self, engine_under_test, standings_store, session_factory, league_setup
    ):
        league, _, tura, _ = league_setup
        await engine_under_test.recompute(league.id)

        async with session_factory() as session:
            await session.execute(update(Team).where(Team.id == tura.id).values(league_id=None))
            await session.commit()
        await engine_under_test.recompute(league.id)

        team_ids = {row.team_id for row, _ in await standings_store.list_league(league.id)}
        assert tura.id not in team_ids
        assert len(team_ids) == 2

    @pytest.mark.asyncio
    async def test_get_all_standings_covers_every_league(self, engine_under_test, seed, league_setup):
        league, *_ = league_setup
        other = await seed.league("Namibia First Division")
        await seed.team("Okahandja United", other)

        tables = await engine_under_test.get_all_standings()

        assert set(tables) == {league.id, other.id}
        assert [entry.team_name for entry in tables[other.id]] == ["Okahandja United"]
