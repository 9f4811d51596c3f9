"""Security: rate limiting and API key for operator endpoints."""

import hmac
import logging
from typing import Optional

from fastapi import HTTPException, Request, Security
from fastapi.security import APIKeyHeader
from slowapi import Limiter
from slowapi.util import get_remote_address

from matchday.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Rate limiter using client IP
limiter = Limiter(key_func=get_remote_address)

# API Key header for operator endpoints
api_key_header = APIKeyHeader(name=get_settings().API_KEY_HEADER, auto_error=False)


def _settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


async def verify_api_key(
    request: Request,
    api_key: Optional[str] = Security(api_key_header),
) -> bool:
    """
    Verify API key for operator endpoints.

    SECURITY: In production, API_KEY must be configured. Empty API_KEY
    blocks all operator requests (fail-closed). In development, empty API_KEY
    allows all requests for convenience.
    """
    settings = _settings(request)

    # FAIL-CLOSED: In production, require API_KEY to be configured
    if not settings.API_KEY:
        if settings.ENVIRONMENT == "production":
            logger.error("API_KEY not configured in production - blocking operator access")
            raise HTTPException(
                status_code=503,
                detail="Service misconfigured. Operator access disabled.",
            )
        # Dev only: allow all if API_KEY not set
        return True

    if not api_key:
        raise HTTPException(
            status_code=401,
            detail=f"Missing API key. Provide it via {settings.API_KEY_HEADER} header.",
        )

    if not hmac.compare_digest(api_key.encode("utf-8"), settings.API_KEY.encode("utf-8")):
        logger.warning("Invalid API key attempt from request")
        raise HTTPException(
            status_code=403,
            detail="Invalid API key",
        )

    return True
