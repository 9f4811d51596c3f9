"""
Article image lookup.

Fallback chain: Unsplash random photo -> curated pool (pseudo-random pick)
-> no image. lookup() never raises.
"""

import logging
import random
from typing import Optional

import httpx

from matchday.config import Settings
from matchday.errors import UpstreamUnavailable
from matchday.telemetry import record_upstream_fallback

logger = logging.getLogger(__name__)

UNSPLASH_RANDOM_URL = "https://api.unsplash.com/photos/random"

CURATED_IMAGES = (
    "https://images.unsplash.com/photo-1574629810360-7efbbe195018?w=800&q=80",
    "https://images.unsplash.com/photo-1431324155629-1a6deb1dec8d?w=800&q=80",
    "https://images.unsplash.com/photo-1575361204480-aadea25e6e68?w=800&q=80",
)


class ImageClient:
    def __init__(
        self,
        settings: Settings,
        curated: tuple[str, ...] = CURATED_IMAGES,
        rng: Optional[random.Random] = None,
    ):
        self.access_key = (settings.UNSPLASH_ACCESS_KEY or "").strip()
        self.query = settings.UNSPLASH_QUERY
        self.timeout = settings.IMAGE_LOOKUP_TIMEOUT_SECONDS
        self.curated = curated
        self._rng = rng or random.Random()
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def search(self) -> str:
        """Random photo URL from Unsplash. Raises UpstreamUnavailable on any failure."""
        if not self.access_key:
            raise UpstreamUnavailable("UNSPLASH_ACCESS_KEY not configured")

        client = await self._get_client()
        try:
            response = await client.get(
                UNSPLASH_RANDOM_URL,
                params={"query": self.query, "client_id": self.access_key},
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamUnavailable(f"Unsplash lookup failed: {e}") from e

        urls = data.get("urls") if isinstance(data, dict) else None
        if not isinstance(urls, dict):
            raise UpstreamUnavailable("Unsplash response was not a photo object")
        url = urls.get("regular") or urls.get("small")
        if not url or not isinstance(url, str):
            raise UpstreamUnavailable("Unsplash response carried no image URL")
        return url

    def pick_curated(self) -> Optional[str]:
        if not self.curated:
            return None
        return self._rng.choice(self.curated)

    async def lookup(self) -> Optional[str]:
        """Image URL for an article, or None when every source failed."""
        try:
            return await self.search()
        except UpstreamUnavailable as e:
            logger.info(f"[NEWS] Image search unavailable ({e.message}), using curated pool")
            record_upstream_fallback("image")
        except Exception as e:
            logger.warning(f"[NEWS] Image search failed ({e}), using curated pool", exc_info=True)
            record_upstream_fallback("image")

        try:
            return self.pick_curated()
        except (IndexError, TypeError) as e:
            logger.warning(f"[NEWS] Curated image pick failed, publishing without image: {e}")
            return None
