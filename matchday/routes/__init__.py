"""HTTP and WebSocket routers."""

from matchday.routes.core import router as core_router
from matchday.routes.live import router as live_router
from matchday.routes.matches import router as matches_router
from matchday.routes.news import router as news_router
from matchday.routes.standings import router as standings_router
from matchday.routes.webhooks import router as webhooks_router

__all__ = [
    "core_router",
    "live_router",
    "matches_router",
    "news_router",
    "standings_router",
    "webhooks_router",
]
