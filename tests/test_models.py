"""
Tests for the table definitions: timestamps are stored as naive UTC.
"""

from datetime import timedelta

import pytest
from sqlalchemy import DateTime

from matchday.models import GeneratedArticle, Match, MatchEvent, PlayerMatchStat, utcnow
from matchday.stores import EventStore

DATETIME_COLUMNS = [
    (Match, "match_date"),
    (Match, "finished_at"),
    (PlayerMatchStat, "created_at"),
    (MatchEvent, "received_at"),
    (GeneratedArticle, "published_at"),
    (GeneratedArticle, "created_at"),
]


class TestTimestampColumns:
    @pytest.mark.parametrize("model,column", DATETIME_COLUMNS)
    def test_plain_datetime_without_timezone(self, model, column):
        col_type = model.__table__.c[column].type
        assert type(col_type) is DateTime
        assert col_type.timezone is False

    def test_utcnow_is_naive(self):
        assert utcnow().tzinfo is None

    @pytest.mark.asyncio
    async def test_naive_timestamps_round_trip(self, seed, session_factory, event_store: EventStore):
        league = await seed.league()
        home = await seed.team("Black Africa FC", league)
        away = await seed.team("Tura Magic", league)
        kick_off = utcnow() + timedelta(days=2)
        match = await seed.match(home, away, league, match_date=kick_off)

        event = await event_store.append(match_id=match.id, event_type="goal", minute_mark=3, description="Goal")
        [stored] = await event_store.list_for_match(match.id)

        assert stored.id == event.id
        assert stored.received_at.tzinfo is None
        async with session_factory() as session:
            reloaded = await session.get(Match, match.id)
        assert reloaded.match_date == kick_off
