"""Article generation input/output types and length caps."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

# Article kinds (GeneratedArticle.source_kind)
LINEUP = "lineup"
MATCH_RESULT = "match-result"
UPCOMING_MATCH = "upcoming-match"
LEAGUE_UPDATE = "league-update"

ARTICLE_KINDS = (LINEUP, MATCH_RESULT, UPCOMING_MATCH, LEAGUE_UPDATE)

TITLE_MAX = 200
SUMMARY_MAX = 300
CONTENT_MAX = 2000


@dataclass
class ArticleContext:
    """Structured facts handed to the generative capability (and the templates)."""

    kind: str
    home_team: Optional[str] = None
    away_team: Optional[str] = None
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    venue: Optional[str] = None
    competition: Optional[str] = None
    match_date: Optional[datetime] = None
    home_lineup: list[str] = field(default_factory=list)
    away_lineup: list[str] = field(default_factory=list)

    def to_prompt_dict(self) -> dict[str, Any]:
        """JSON-safe view without empty fields."""
        data = asdict(self)
        if self.match_date is not None:
            data["match_date"] = self.match_date.isoformat()
        if self.home_lineup or self.away_lineup:
            data["home_players_count"] = len(self.home_lineup)
            data["away_players_count"] = len(self.away_lineup)
        return {key: value for key, value in data.items() if value not in (None, [], "")}


class ArticleDraft(BaseModel):
    """Title/summary/body triple, whichever path produced it."""

    title: str = Field(min_length=1)
    summary: str = Field(min_length=1)
    content: str = Field(min_length=1)


def clip(text: str, limit: int) -> str:
    """Trim to limit characters, marking the cut with an ellipsis."""
    text = text.strip()
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."


def clamp_draft(draft: ArticleDraft) -> ArticleDraft:
    return ArticleDraft(
        title=clip(draft.title, TITLE_MAX),
        summary=clip(draft.summary, SUMMARY_MAX),
        content=clip(draft.content, CONTENT_MAX),
    )
