"""Article synthesis: generative text, fallback templates, image lookup."""

from matchday.llm.article_writer import ArticleWriter, WrittenArticle
from matchday.llm.gemini_client import GeminiClient
from matchday.llm.image_client import ImageClient
from matchday.llm.schemas import (
    ARTICLE_KINDS,
    LEAGUE_UPDATE,
    LINEUP,
    MATCH_RESULT,
    UPCOMING_MATCH,
    ArticleContext,
    ArticleDraft,
)
from matchday.llm.templates import render_fallback

__all__ = [
    "ArticleWriter",
    "WrittenArticle",
    "GeminiClient",
    "ImageClient",
    "ARTICLE_KINDS",
    "LEAGUE_UPDATE",
    "LINEUP",
    "MATCH_RESULT",
    "UPCOMING_MATCH",
    "ArticleContext",
    "ArticleDraft",
    "render_fallback",
]
