from matchday.standings.engine import (
    StandingsEngine,
    StandingsEntry,
    compute_table,
    rank_rows,
    standings_sort_key,
)

__all__ = [
    "StandingsEngine",
    "StandingsEntry",
    "compute_table",
    "rank_rows",
    "standings_sort_key",
]
