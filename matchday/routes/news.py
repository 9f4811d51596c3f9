"""Generated news: manual generation trigger and recent articles."""

import logging

from fastapi import APIRouter, Depends, Query, Request

from matchday.security import limiter, verify_api_key

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai-news", tags=["news"])


@router.post("/generate")
@limiter.limit("5/minute")
async def generate_news(request: Request, _: bool = Depends(verify_api_key)):
    """
    Run a full content generation pass now and report what it produced.

    Joins the in-flight run if one is already executing.
    """
    report = await request.app.state.pipeline.generate_from_current_state(trigger="manual")
    message = f"Generated {report.count} news articles" if report.success else f"Failed: {report.error}"
    return {
        "success": report.success,
        "message": message,
        "articles": report.articles,
        "by_kind": report.by_kind,
    }


@router.get("")
@limiter.limit("60/minute")
async def recent_news(request: Request, limit: int = Query(default=25, ge=1, le=100)):
    articles = await request.app.state.articles.list_recent(limit=limit)
    return {
        "articles": [
            article.model_dump(exclude={"dedup_key"}, mode="json")
            for article in articles
        ]
    }
