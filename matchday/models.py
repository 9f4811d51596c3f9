"""Database models using SQLModel."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, DateTime, Text, UniqueConstraint
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    """Naive UTC timestamp (all stored datetimes are naive UTC, DateTime without timezone)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ═══════════════════════════════════════════════════════════════
# Collaborator tables (owned by the CRUD side of the backend)
# ═══════════════════════════════════════════════════════════════


class League(SQLModel, table=True):
    """Competition a team is assigned to."""

    __tablename__ = "leagues"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=255, description="League name")
    season: Optional[str] = Field(default=None, max_length=20, description="e.g. '2025/26'")


class Team(SQLModel, table=True):
    """Club, assigned to at most one league."""

    __tablename__ = "teams"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=255, description="Team name")
    league_id: Optional[int] = Field(default=None, foreign_key="leagues.id", index=True)


class Match(SQLModel, table=True):
    """Fixture with its live state."""

    __tablename__ = "matches"

    id: Optional[int] = Field(default=None, primary_key=True)
    league_id: Optional[int] = Field(default=None, foreign_key="leagues.id", index=True)
    home_team_id: int = Field(foreign_key="teams.id", index=True)
    away_team_id: int = Field(foreign_key="teams.id", index=True)
    match_date: datetime = Field(sa_type=DateTime, index=True, description="Kick-off (UTC)")
    venue: Optional[str] = Field(default=None, max_length=255, description="Stadium name")

    status: str = Field(
        max_length=20, default="scheduled", description="scheduled, in_progress, completed, postponed"
    )
    home_score: Optional[int] = Field(default=None, description="NULL if not played")
    away_score: Optional[int] = Field(default=None, description="NULL if not played")
    match_type: str = Field(
        max_length=20, default="official", description="'official' or 'friendly'"
    )
    finished_at: Optional[datetime] = Field(
        default=None, sa_type=DateTime, description="When status turned completed"
    )


class Player(SQLModel, table=True):
    """Registered player."""

    __tablename__ = "players"

    id: Optional[int] = Field(default=None, primary_key=True)
    first_name: str = Field(max_length=100)
    last_name: str = Field(max_length=100)
    position: Optional[str] = Field(
        default=None, max_length=30, description="Goalkeeper, Defender, Midfielder, Forward"
    )
    jersey_number: Optional[int] = Field(default=None)
    team_id: Optional[int] = Field(default=None, foreign_key="teams.id", index=True)


class PlayerMatchStat(SQLModel, table=True):
    """One player named in an uploaded lineup."""

    __tablename__ = "player_match_stats"

    id: Optional[int] = Field(default=None, primary_key=True)
    match_id: int = Field(foreign_key="matches.id", index=True)
    player_id: int = Field(foreign_key="players.id", index=True)
    club_id: int = Field(foreign_key="teams.id", description="Side the player lines up for")
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime, index=True)


# ═══════════════════════════════════════════════════════════════
# Live pipeline tables
# ═══════════════════════════════════════════════════════════════


class MatchEvent(SQLModel, table=True):
    """
    One ingested notification about a match's state.

    Append-only: rows are never updated or deleted by the live pipeline.
    match_id carries no foreign key so events for matches the CRUD side
    has not created yet are still recorded.
    """

    __tablename__ = "match_events"

    id: Optional[int] = Field(default=None, primary_key=True)
    match_id: int = Field(index=True)
    event_type: str = Field(max_length=50, default="goal")
    minute_mark: int = Field(default=0)
    description: str = Field(sa_column=Column(Text, nullable=False))
    received_at: datetime = Field(default_factory=utcnow, sa_type=DateTime, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "match_id": self.match_id,
            "event_type": self.event_type,
            "minute_mark": self.minute_mark,
            "description": self.description,
            "received_at": self.received_at.isoformat() if self.received_at else None,
        }


class StandingsRow(SQLModel, table=True):
    """
    One team's aggregate within one league.

    goal_difference and points are derived on every recompute. No timestamp
    columns: two recomputes over the same matches write identical rows.
    """

    __tablename__ = "standings"
    __table_args__ = (
        UniqueConstraint("league_id", "team_id", name="uq_standings_league_team"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    league_id: int = Field(index=True)
    team_id: int = Field(foreign_key="teams.id")
    played: int = Field(default=0)
    won: int = Field(default=0)
    drawn: int = Field(default=0)
    lost: int = Field(default=0)
    goals_for: int = Field(default=0)
    goals_against: int = Field(default=0)
    goal_difference: int = Field(default=0, description="goals_for - goals_against")
    points: int = Field(default=0, description="3*won + drawn")


class GeneratedArticle(SQLModel, table=True):
    """
    Article written by the content pipeline.

    source_kind/source_match_id tie the article to the newsworthy item it
    covers. dedup_key is unique so a racing duplicate insert fails instead
    of publishing twice; articles created by moderation leave it NULL.
    """

    __tablename__ = "news"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=200)
    summary: str = Field(max_length=300)
    content: str = Field(sa_column=Column(Text, nullable=False))
    image_url: Optional[str] = Field(default=None, max_length=500)

    source_kind: str = Field(
        max_length=30, index=True, description="lineup, match-result, upcoming-match, league-update"
    )
    source_match_id: Optional[int] = Field(default=None, index=True)
    source_league_id: Optional[int] = Field(default=None)
    dedup_key: Optional[str] = Field(default=None, max_length=100, unique=True)
    generator: str = Field(max_length=20, default="fallback", description="'ai' or 'fallback'")

    published_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime, index=True)
