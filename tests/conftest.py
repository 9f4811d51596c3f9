"""
Shared fixtures: file-backed SQLite per test, seed helpers, fake channels.
"""

from datetime import datetime, timedelta
from typing import Optional

import pytest

from matchday.config import Settings
from matchday.content import ContentPipeline
from matchday.database import build_engine, build_session_factory, close_db, init_db
from matchday.llm import ArticleWriter, GeminiClient, ImageClient
from matchday.models import League, Match, Player, PlayerMatchStat, Team
from matchday.security import limiter
from matchday.stores import ArticleStore, EventStore, MatchStore, StandingsStore

# Fixed clock for pipeline tests (Saturday afternoon, naive UTC)
NOW = datetime(2025, 3, 15, 12, 0, 0)

POSITIONS = ["Goalkeeper"] + ["Defender"] * 4 + ["Midfielder"] * 4 + ["Forward"] * 2


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite:///{tmp_path / 'matchday.db'}",
        ENVIRONMENT="development",
        API_KEY="",
        METRICS_BEARER_TOKEN="",
        WEBHOOK_SECRET="test-secret",
        NEWS_GENERATION_ENABLED=True,
        NEWS_SCHEDULER_ENABLED=False,
        GEMINI_API_KEY="",
        UNSPLASH_ACCESS_KEY="",
        SENTRY_DSN="",
    )


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    yield


@pytest.fixture
async def engine(settings):
    engine = build_engine(settings.DATABASE_URL)
    await init_db(engine)
    yield engine
    await close_db(engine)


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def match_store(session_factory) -> MatchStore:
    return MatchStore(session_factory)


@pytest.fixture
def article_store(session_factory) -> ArticleStore:
    return ArticleStore(session_factory)


@pytest.fixture
def event_store(session_factory) -> EventStore:
    return EventStore(session_factory)


@pytest.fixture
def standings_store(session_factory) -> StandingsStore:
    return StandingsStore(session_factory)


def build_pipeline(settings, session_factory, clock=lambda: NOW) -> ContentPipeline:
    """Pipeline with the generative capability unconfigured (templates only)."""
    return ContentPipeline(
        matches=MatchStore(session_factory),
        articles=ArticleStore(session_factory),
        writer=ArticleWriter(GeminiClient(settings)),
        images=ImageClient(settings),
        settings=settings,
        clock=clock,
    )


@pytest.fixture
def pipeline(settings, session_factory) -> ContentPipeline:
    return build_pipeline(settings, session_factory)


class Seeder:
    """Writes collaborator rows (leagues, teams, fixtures, lineups) for a test."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    async def add(self, *rows):
        async with self._session_factory() as session:
            session.add_all(rows)
            await session.commit()
        return rows[0] if len(rows) == 1 else rows

    async def league(self, name: str = "Namibia Premier League") -> League:
        return await self.add(League(name=name, season="2024/25"))

    async def team(self, name: str, league: Optional[League] = None) -> Team:
        return await self.add(Team(name=name, league_id=league.id if league else None))

    async def match(
        self,
        home: Team,
        away: Team,
        league: Optional[League] = None,
        match_date: datetime = NOW,
        status: str = "scheduled",
        home_score: Optional[int] = None,
        away_score: Optional[int] = None,
        finished_at: Optional[datetime] = None,
        venue: str = "Sam Nujoma Stadium",
        match_type: str = "official",
    ) -> Match:
        return await self.add(
            Match(
                league_id=league.id if league else None,
                home_team_id=home.id,
                away_team_id=away.id,
                match_date=match_date,
                status=status,
                home_score=home_score,
                away_score=away_score,
                finished_at=finished_at,
                venue=venue,
                match_type=match_type,
            )
        )

    async def result(self, home: Team, away: Team, league: League, home_score: int, away_score: int, **kwargs) -> Match:
        kwargs.setdefault("match_date", NOW - timedelta(days=3))
        return await self.match(
            home, away, league, status="completed", home_score=home_score, away_score=away_score, **kwargs
        )

    async def lineup(self, match: Match, team: Team, count: int = 11, created_at: datetime = NOW) -> list[Player]:
        """Upload a lineup of `count` new players for `team` in `match`."""
        players = []
        for index in range(count):
            players.append(
                Player(
                    first_name=f"{team.name.split()[0]}{index + 1}",
                    last_name="Player",
                    position=POSITIONS[index % len(POSITIONS)],
                    jersey_number=index + 1,
                    team_id=team.id,
                )
            )
        if not players:
            return []
        await self.add(*players)
        await self.add(*[
            PlayerMatchStat(match_id=match.id, player_id=player.id, club_id=team.id, created_at=created_at)
            for player in players
        ])
        return players


@pytest.fixture
def seed(session_factory) -> Seeder:
    return Seeder(session_factory)


class FakeChannel:
    """Subscriber channel recording what it was sent."""

    def __init__(self, name: str = "fake", fail: bool = False):
        self.name = name
        self.fail = fail
        self.received: list[tuple[str, dict]] = []

    async def send(self, event_name: str, data: dict) -> None:
        if self.fail:
            raise ConnectionError(f"{self.name} closed")
        self.received.append((event_name, data))

    def __repr__(self):
        return f"FakeChannel({self.name})"
