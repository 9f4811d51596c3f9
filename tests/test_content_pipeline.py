"""
Tests for the content generation pipeline.

The generative capability is left unconfigured, so every article comes from
the fallback templates; the clock is fixed at conftest.NOW.
"""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import httpx
import pytest
from conftest import NOW, build_pipeline

from matchday.content import ALL_SCANS, ContentPipeline, dedup_key
from matchday.errors import PersistenceFailure
from matchday.llm import ArticleWriter, GeminiClient, ImageClient
from matchday.llm.schemas import LEAGUE_UPDATE, LINEUP, MATCH_RESULT, UPCOMING_MATCH
from matchday.models import GeneratedArticle, Player, PlayerMatchStat
from matchday.stores import ArticleStore, MatchStore


@pytest.fixture
async def league(seed):
    return await seed.league()


@pytest.fixture
async def teams(seed, league):
    return [
        await seed.team(name, league)
        for name in ("Black Africa FC", "Tura Magic", "African Stars", "Blue Waters")
    ]


class TestDedupKey:
    def test_result_key_has_no_time_bucket(self):
        assert dedup_key(MATCH_RESULT, NOW, match_id=12) == "match-result:12"

    def test_lineup_key_per_day(self):
        assert dedup_key(LINEUP, NOW, match_id=12) == "lineup:12:2025-03-15"

    def test_upcoming_key_per_iso_week(self):
        assert dedup_key(UPCOMING_MATCH, NOW, match_id=12) == "upcoming-match:12:2025-W11"

    def test_league_update_key_per_league_and_day(self):
        assert dedup_key(LEAGUE_UPDATE, NOW, league_id=3) == "league-update:3:2025-03-15"


class TestResultScan:
    """Completed matches in the trailing 24 hours; covered once, forever."""

    @pytest.mark.asyncio
    async def test_recent_result_published_once(self, pipeline, seed, league, teams, article_store):
        black_africa, tura, *_ = teams
        match = await seed.result(
            black_africa, tura, league, 2, 1,
            match_date=NOW - timedelta(hours=3), finished_at=NOW - timedelta(hours=1),
        )

        first = await pipeline.generate_from_current_state(scans=("result",))
        second = await pipeline.generate_from_current_state(scans=("result",))

        assert first.success
        assert first.articles == ["Black Africa FC 2-1 Tura Magic"]
        assert first.by_kind == {MATCH_RESULT: 1}
        assert second.count == 0
        assert second.skipped == {MATCH_RESULT: 1}

        [article] = await article_store.list_recent()
        assert article.source_kind == MATCH_RESULT
        assert article.source_match_id == match.id
        assert article.source_league_id == league.id
        assert article.dedup_key == f"match-result:{match.id}"
        assert article.generator == "fallback"
        assert article.image_url

    @pytest.mark.asyncio
    async def test_old_result_ignored(self, pipeline, seed, league, teams):
        black_africa, tura, *_ = teams
        await seed.result(black_africa, tura, league, 2, 1, finished_at=NOW - timedelta(hours=30))

        report = await pipeline.generate_from_current_state(scans=("result",))

        assert report.count == 0

    @pytest.mark.asyncio
    async def test_match_date_used_when_finish_time_unknown(self, pipeline, seed, league, teams):
        black_africa, tura, *_ = teams
        await seed.result(black_africa, tura, league, 0, 0, match_date=NOW - timedelta(hours=2))

        report = await pipeline.generate_from_current_state(scans=("result",))

        assert report.articles == ["Black Africa FC 0-0 Tura Magic"]

    @pytest.mark.asyncio
    async def test_at_most_five_results(self, pipeline, seed, league, teams):
        home, away, *_ = teams
        for hours in range(1, 7):
            await seed.result(home, away, league, hours, 0, finished_at=NOW - timedelta(hours=hours))

        report = await pipeline.generate_from_current_state(scans=("result",))

        assert report.count == 5
        # Newest first
        assert report.articles[0] == "Black Africa FC 1-0 Tura Magic"


class TestMalformedUpstreamReplies:
    """Garbled 200 replies from the text and image services still end in an article."""

    @pytest.mark.asyncio
    async def test_result_article_written_from_template(self, settings, session_factory, seed, league, teams):
        settings.GEMINI_API_KEY = "gemini-key"
        settings.UNSPLASH_ACCESS_KEY = "access-key"
        black_africa, tura, *_ = teams
        await seed.result(
            black_africa, tura, league, 2, 1,
            match_date=NOW - timedelta(hours=3), finished_at=NOW - timedelta(hours=1),
        )

        text_client = GeminiClient(settings)
        text_client._client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="not json"))
        )
        images = ImageClient(settings, curated=("https://img.example/pool.jpg",))
        images._client = httpx.AsyncClient(
            transport=httpx.MockTransport(
                lambda request: httpx.Response(200, json=[{"urls": {"regular": "https://img.example/x.jpg"}}])
            )
        )
        pipeline = ContentPipeline(
            matches=MatchStore(session_factory),
            articles=ArticleStore(session_factory),
            writer=ArticleWriter(text_client),
            images=images,
            settings=settings,
            clock=lambda: NOW,
        )
        try:
            report = await pipeline.generate_from_current_state(scans=("result",))
        finally:
            await text_client.close()
            await images.close()

        assert report.success, report.error
        assert report.articles == ["Black Africa FC 2-1 Tura Magic"]
        [article] = await ArticleStore(session_factory).list_recent()
        assert article.generator == "fallback"
        assert article.image_url == "https://img.example/pool.jpg"


class TestLineupScan:
    """Lineups uploaded in the last 2 hours for matches not yet played."""

    @pytest.fixture
    async def upcoming_match(self, seed, league, teams):
        black_africa, tura, *_ = teams
        return await seed.match(black_africa, tura, league, match_date=NOW + timedelta(hours=3))

    @pytest.mark.asyncio
    async def test_full_lineup_published(self, pipeline, seed, teams, upcoming_match, article_store):
        black_africa, tura, *_ = teams
        await seed.lineup(upcoming_match, black_africa, 11, created_at=NOW - timedelta(minutes=30))
        await seed.lineup(upcoming_match, tura, 7, created_at=NOW - timedelta(minutes=20))

        report = await pipeline.generate_from_current_state(scans=("lineup",))

        assert report.by_kind == {LINEUP: 1}
        [article] = await article_store.list_recent()
        assert article.title == "Lineup Revealed: Black Africa FC vs Tura Magic"
        assert "Black Africa FC: Black1 Player (#1, Goalkeeper)" in article.content
        assert article.dedup_key == f"lineup:{upcoming_match.id}:2025-03-15"

    @pytest.mark.asyncio
    async def test_fewer_than_eleven_players_per_side(self, pipeline, seed, teams, upcoming_match):
        """10 + 10 players is not a confirmed lineup."""
        black_africa, tura, *_ = teams
        await seed.lineup(upcoming_match, black_africa, 10, created_at=NOW - timedelta(minutes=30))
        await seed.lineup(upcoming_match, tura, 10, created_at=NOW - timedelta(minutes=30))

        report = await pipeline.generate_from_current_state(scans=("lineup",))

        assert report.count == 0

    @pytest.mark.asyncio
    async def test_stale_upload_ignored(self, pipeline, seed, teams, upcoming_match):
        black_africa, *_ = teams
        await seed.lineup(upcoming_match, black_africa, 11, created_at=NOW - timedelta(hours=3))

        report = await pipeline.generate_from_current_state(scans=("lineup",))

        assert report.count == 0

    @pytest.mark.asyncio
    async def test_played_match_ignored(self, pipeline, seed, league, teams):
        black_africa, tura, *_ = teams
        played = await seed.result(black_africa, tura, league, 1, 0, match_date=NOW - timedelta(hours=1))
        await seed.lineup(played, black_africa, 11, created_at=NOW - timedelta(minutes=30))

        report = await pipeline.generate_from_current_state(scans=("lineup",))

        assert report.count == 0

    @pytest.mark.asyncio
    async def test_lineup_deduplicated_within_a_day(self, pipeline, seed, teams, upcoming_match):
        black_africa, *_ = teams
        await seed.lineup(upcoming_match, black_africa, 11, created_at=NOW - timedelta(minutes=30))

        await pipeline.generate_from_current_state(scans=("lineup",))
        again = await pipeline.generate_from_current_state(scans=("lineup",))

        assert again.count == 0
        assert again.skipped == {LINEUP: 1}

    @pytest.mark.asyncio
    async def test_roster_order_goalkeeper_first(self, seed, teams, upcoming_match, match_store):
        """Position order beats squad number: GK -> DEF -> MID -> FWD -> other."""
        black_africa, *_ = teams
        players = await seed.add(
            Player(first_name="Peter", last_name="Shalulile", position="Forward", jersey_number=9),
            Player(first_name="Ryan", last_name="Nyambe", position="Defender", jersey_number=2),
            Player(first_name="Loydt", last_name="Kazapua", position="Goalkeeper", jersey_number=16),
            Player(first_name="Deon", last_name="Hotto", position="Midfielder", jersey_number=7),
            Player(first_name="Kit", last_name="Man", position=None, jersey_number=1),
        )
        await seed.add(*[
            PlayerMatchStat(match_id=upcoming_match.id, player_id=player.id, club_id=black_africa.id)
            for player in players
        ])

        roster = await match_store.lineup(upcoming_match.id, black_africa.id)

        assert [player["last_name"] for player in roster] == ["Kazapua", "Nyambe", "Hotto", "Shalulile", "Man"]


class TestUpcomingScan:
    @pytest.mark.asyncio
    async def test_two_soonest_within_a_week(self, pipeline, seed, league, teams):
        a, b, c, d = teams
        await seed.match(c, d, league, match_date=NOW + timedelta(days=3))
        await seed.match(a, b, league, match_date=NOW + timedelta(days=1))
        await seed.match(b, c, league, match_date=NOW + timedelta(days=5))
        await seed.match(d, a, league, match_date=NOW + timedelta(days=9))

        report = await pipeline.generate_from_current_state(scans=("upcoming",))

        assert report.articles == [
            "Upcoming: Black Africa FC vs Tura Magic",
            "Upcoming: African Stars vs Blue Waters",
        ]

    @pytest.mark.asyncio
    async def test_preview_not_repeated_within_week(self, pipeline, seed, league, teams):
        a, b, *_ = teams
        await seed.match(a, b, league, match_date=NOW + timedelta(days=2))

        await pipeline.generate_from_current_state(scans=("upcoming",))
        again = await pipeline.generate_from_current_state(scans=("upcoming",))

        assert again.count == 0
        assert again.skipped == {UPCOMING_MATCH: 1}


class TestLeagueUpdateScan:
    @pytest.mark.asyncio
    async def test_one_update_per_day(self, pipeline, seed, league, teams):
        a, b, *_ = teams
        await seed.result(a, b, league, 1, 0, match_date=NOW - timedelta(days=10))

        first = await pipeline.generate_from_current_state(scans=("league_update",))
        second = await pipeline.generate_from_current_state(scans=("league_update",))

        assert first.articles == ["League Update: Namibia Premier League"]
        assert second.count == 0
        assert second.skipped == {LEAGUE_UPDATE: 1}

    @pytest.mark.asyncio
    async def test_no_recent_activity(self, pipeline, seed, league, teams):
        a, b, *_ = teams
        await seed.result(a, b, league, 1, 0, match_date=NOW - timedelta(days=45))

        report = await pipeline.generate_from_current_state(scans=("league_update",))

        assert report.count == 0


class TestFullPass:
    """All scans together, concurrency and failure isolation."""

    @pytest.fixture
    async def newsworthy(self, seed, league, teams):
        a, b, c, d = teams
        await seed.result(a, b, league, 2, 1, finished_at=NOW - timedelta(hours=2))
        await seed.result(c, d, league, 0, 3, finished_at=NOW - timedelta(hours=5))
        await seed.match(b, c, league, match_date=NOW + timedelta(days=2))

    @pytest.mark.asyncio
    async def test_full_pass_counts_by_kind(self, pipeline, newsworthy):
        report = await pipeline.generate_from_current_state()

        assert report.success
        assert report.error is None
        assert report.by_kind == {MATCH_RESULT: 2, UPCOMING_MATCH: 1, LEAGUE_UPDATE: 1}
        assert report.count == 4
        assert report.scans == ALL_SCANS

    @pytest.mark.asyncio
    async def test_two_runs_in_succession(self, pipeline, newsworthy, article_store):
        await pipeline.generate_from_current_state(trigger="timer")
        second = await pipeline.generate_from_current_state(trigger="webhook_completed")

        assert second.count == 0
        assert await article_store.count() == 4

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_run(self, pipeline, newsworthy, article_store):
        first, second = await asyncio.gather(
            pipeline.generate_from_current_state(trigger="timer"),
            pipeline.generate_from_current_state(trigger="manual"),
        )

        assert first is second
        assert await article_store.count() == 4
        assert not pipeline.in_flight

    @pytest.mark.asyncio
    async def test_concurrent_runs_with_different_scans(self, pipeline, newsworthy, article_store):
        await asyncio.gather(
            pipeline.generate_from_current_state(trigger="timer"),
            pipeline.generate_from_current_state(trigger="lineup_timer", scans=("lineup",)),
            pipeline.generate_from_current_state(trigger="manual", scans=("result",)),
        )

        assert await article_store.count(MATCH_RESULT) == 2
        assert await article_store.count() == 4

    @pytest.mark.asyncio
    async def test_independent_pipelines_race(self, settings, session_factory, newsworthy, article_store):
        """Two processes' pipelines on one database still publish each item once."""
        one = build_pipeline(settings, session_factory)
        two = build_pipeline(settings, session_factory)

        await asyncio.gather(
            one.generate_from_current_state(scans=("result",)),
            two.generate_from_current_state(scans=("result",)),
        )

        assert await article_store.count(MATCH_RESULT) == 2

    @pytest.mark.asyncio
    async def test_losing_insert_is_a_skip(self, article_store):
        def article():
            return GeneratedArticle(
                title="Black Africa FC 2-1 Tura Magic", summary="S", content="C",
                source_kind=MATCH_RESULT, source_match_id=1, dedup_key="match-result:1",
            )

        assert await article_store.create(article()) is not None
        assert await article_store.create(article()) is None
        assert await article_store.count() == 1

    @pytest.mark.asyncio
    async def test_failing_scan_does_not_stop_the_others(self, pipeline, newsworthy):
        pipeline._matches.recent_results = AsyncMock(side_effect=PersistenceFailure("Could not read matches"))

        report = await pipeline.generate_from_current_state(trigger="timer")

        assert not report.success
        assert "result: Could not read matches" in report.error
        assert report.by_kind == {UPCOMING_MATCH: 1, LEAGUE_UPDATE: 1}

    @pytest.mark.asyncio
    async def test_unknown_scan_rejected(self, pipeline):
        with pytest.raises(ValueError):
            await pipeline.generate_from_current_state(scans=("gossip",))
