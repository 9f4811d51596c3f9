"""Persistence adapters for the live pipeline."""

from matchday.stores.articles import ArticleStore
from matchday.stores.events import EventStore
from matchday.stores.matches import MatchStore, MatchSummary
from matchday.stores.standings import StandingsStore

__all__ = [
    "ArticleStore",
    "EventStore",
    "MatchStore",
    "MatchSummary",
    "StandingsStore",
]
