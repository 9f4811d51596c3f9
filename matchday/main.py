"""Matchday live service: webhooks, live fan-out, standings and generated news."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from matchday.config import Settings, get_settings
from matchday.content import ContentPipeline
from matchday.database import build_engine, build_session_factory, close_db, init_db
from matchday.errors import MatchdayError
from matchday.events import FanoutBroadcaster, TaskRunner
from matchday.ingestion import IngestionGateway
from matchday.llm import ArticleWriter, GeminiClient, ImageClient
from matchday.routes import (
    core_router,
    live_router,
    matches_router,
    news_router,
    standings_router,
    webhooks_router,
)
from matchday.scheduler import NewsScheduler
from matchday.security import limiter
from matchday.standings import StandingsEngine
from matchday.stores import ArticleStore, EventStore, MatchStore, StandingsStore
from matchday.telemetry.sentry import init_sentry

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build every component on app.state, start the timers, tear down in reverse."""
    settings: Settings = app.state.settings
    logging.getLogger().setLevel(settings.LOG_LEVEL.upper())

    # Startup
    logger.info("Starting Matchday live service...")
    engine = build_engine(settings.DATABASE_URL)
    await init_db(engine)
    session_factory = build_session_factory(engine)

    matches = MatchStore(session_factory)
    articles = ArticleStore(session_factory)
    events = EventStore(session_factory)
    standings = StandingsEngine(matches, StandingsStore(session_factory))

    text_client = GeminiClient(settings)
    images = ImageClient(settings)
    pipeline = ContentPipeline(
        matches=matches,
        articles=articles,
        writer=ArticleWriter(text_client),
        images=images,
        settings=settings,
    )

    broadcaster = FanoutBroadcaster()
    tasks = TaskRunner()
    gateway = IngestionGateway(
        settings=settings,
        events=events,
        matches=matches,
        broadcaster=broadcaster,
        tasks=tasks,
        standings=standings,
        pipeline=pipeline,
    )
    news_scheduler = NewsScheduler(pipeline, settings)

    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.matches = matches
    app.state.articles = articles
    app.state.events = events
    app.state.standings = standings
    app.state.pipeline = pipeline
    app.state.broadcaster = broadcaster
    app.state.tasks = tasks
    app.state.gateway = gateway
    app.state.news_scheduler = news_scheduler

    if settings.NEWS_GENERATION_ENABLED and settings.NEWS_SCHEDULER_ENABLED:
        news_scheduler.start()
    else:
        logger.info("[SCHEDULER] News scheduler disabled by configuration")

    yield

    # Shutdown
    logger.info("Shutting down...")
    news_scheduler.stop()
    await tasks.drain()
    await text_client.close()
    await images.close()
    await close_db(engine)


async def matchday_error_handler(request: Request, exc: MatchdayError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=exc)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    # Only activates if SENTRY_DSN is set
    init_sentry(settings)

    app = FastAPI(
        title="Matchday Live",
        description="Live match events, standings and generated news",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in settings.ALLOW_ORIGIN.split(",")],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # Add rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(MatchdayError, matchday_error_handler)

    # Include routers
    app.include_router(core_router)
    app.include_router(webhooks_router)
    app.include_router(live_router)
    app.include_router(matches_router)
    app.include_router(standings_router)
    app.include_router(news_router)

    return app


app = create_app()
