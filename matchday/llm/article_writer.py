"""
Article writer: generative text with a deterministic fallback.

Builds a compact prompt from an ArticleContext, validates the JSON reply
({title, summary, content}) and caps lengths. Any failure of the generative
path (not configured, HTTP error, timeout, unparsable or empty reply) is an
UpstreamUnavailable that ends in the template for the article kind.
"""

import json
import logging
import re
from dataclasses import dataclass

from pydantic import ValidationError

from matchday.errors import UpstreamUnavailable
from matchday.llm.gemini_client import GeminiClient, GeminiError
from matchday.llm.schemas import ArticleContext, ArticleDraft, clamp_draft
from matchday.llm.templates import render_fallback
from matchday.telemetry import record_upstream_fallback

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = (
    "You are a professional sports journalist specializing in Namibian football. "
    "Write engaging, accurate news articles."
)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


@dataclass
class WrittenArticle:
    draft: ArticleDraft
    generator: str  # "ai" or "fallback"


def build_article_prompt(ctx: ArticleContext) -> str:
    """Prompt for one article; facts go in as JSON so nothing is paraphrased."""
    return (
        "Write a news article for the Namibia Football Association based on the following "
        "information:\n\n"
        f"{json.dumps(ctx.to_prompt_dict(), indent=2, ensure_ascii=False)}\n\n"
        "Requirements:\n"
        "- Professional, engaging style focused on Namibian football\n"
        "- Use only the teams, players, scores and venues given above\n"
        "- Between 150 and 300 words\n\n"
        "Respond with JSON only:\n"
        '{"title": "max 80 characters", "summary": "max 150 characters", "content": "full article"}'
    )


def parse_article_response(text: str) -> ArticleDraft:
    """
    Extract {title, summary, content} from a model reply.

    Raises:
        UpstreamUnavailable: reply has no JSON object or misses a field.
    """
    match = _JSON_OBJECT.search(text or "")
    if not match:
        raise UpstreamUnavailable("generative reply contained no JSON object")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise UpstreamUnavailable(f"generative reply was not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise UpstreamUnavailable("generative reply was not a JSON object")

    try:
        return clamp_draft(ArticleDraft.model_validate(data))
    except ValidationError as e:
        raise UpstreamUnavailable(f"generative reply failed validation: {e.error_count()} errors") from e


class ArticleWriter:
    def __init__(self, text_client: GeminiClient):
        self._text_client = text_client

    async def generate(self, ctx: ArticleContext) -> ArticleDraft:
        """Generative path only. Raises UpstreamUnavailable on any failure."""
        try:
            result = await self._text_client.generate(
                build_article_prompt(ctx),
                system_instruction=SYSTEM_INSTRUCTION,
            )
        except GeminiError as e:
            raise UpstreamUnavailable(str(e)) from e

        if result.status != "COMPLETED":
            raise UpstreamUnavailable(f"generative text {result.status}: {result.error}")

        draft = parse_article_response(result.text)
        logger.info(
            f"[NEWS] Generated {ctx.kind} article (tokens_in={result.tokens_in}, "
            f"tokens_out={result.tokens_out}, exec_ms={result.exec_ms})"
        )
        return draft

    async def write(self, ctx: ArticleContext) -> WrittenArticle:
        """Article for ctx; never raises for upstream problems."""
        try:
            return WrittenArticle(draft=await self.generate(ctx), generator="ai")
        except UpstreamUnavailable as e:
            logger.info(f"[NEWS] Generative text unavailable for {ctx.kind} ({e.message}), using template")
            record_upstream_fallback("text")
            return WrittenArticle(draft=render_fallback(ctx), generator="fallback")
