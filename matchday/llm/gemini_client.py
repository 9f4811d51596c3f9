"""
Google Gemini API client for article generation.

Returns a GeminiResult for every call; HTTP errors and timeouts are reported
through status/error rather than raised.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

import httpx

from matchday.config import Settings

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"


@dataclass
class GeminiResult:
    """Result from a Gemini API call."""

    status: str  # COMPLETED, ERROR, TIMEOUT
    text: str
    tokens_in: int
    tokens_out: int
    exec_ms: int
    model_version: str
    error: Optional[str] = None
    finish_reason: Optional[str] = None  # STOP, MAX_TOKENS, SAFETY, RECITATION, OTHER


class GeminiError(Exception):
    """Error from Gemini API."""

    pass


class GeminiClient:
    """Async client for Google Gemini API."""

    def __init__(self, settings: Settings):
        self.api_key = (settings.GEMINI_API_KEY or "").strip()
        self.model = settings.GEMINI_MODEL
        self.timeout = settings.NARRATIVE_LLM_TIMEOUT_SECONDS
        self.max_tokens = settings.GEMINI_MAX_TOKENS
        self.temperature = settings.NARRATIVE_LLM_TEMPERATURE
        self.top_p = settings.NARRATIVE_LLM_TOP_P

        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def close(self):
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def generate(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> GeminiResult:
        """
        Generate text using Gemini API.

        Args:
            prompt: The prompt to send to the model.
            system_instruction: Optional system role text.
            max_tokens: Override default max tokens.
            temperature: Override default temperature.

        Raises:
            GeminiError: if no API key is configured.
        """
        if not self.api_key:
            raise GeminiError("GEMINI_API_KEY not configured")

        client = await self._get_client()
        url = f"{GEMINI_BASE_URL}/{self.model}:generateContent"

        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "maxOutputTokens": max_tokens or self.max_tokens,
                "temperature": temperature if temperature is not None else self.temperature,
                "topP": self.top_p,
                "responseMimeType": "application/json",
            },
        }
        if system_instruction:
            payload["systemInstruction"] = {"parts": [{"text": system_instruction}]}

        start_time = time.time()

        try:
            response = await client.post(url, json=payload, headers={"x-goog-api-key": self.api_key})
            elapsed_ms = int((time.time() - start_time) * 1000)

            if response.status_code != 200:
                error_text = response.text[:500]
                logger.error(f"Gemini API error {response.status_code}: {error_text}")
                return GeminiResult(
                    status="ERROR",
                    text="",
                    tokens_in=0,
                    tokens_out=0,
                    exec_ms=elapsed_ms,
                    model_version=self.model,
                    error=f"HTTP {response.status_code}: {error_text}",
                )

            data = response.json()
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            text, finish_reason = self._extract_text_and_reason(data)
            usage = data.get("usageMetadata", {})

            if finish_reason and finish_reason != "STOP":
                logger.warning(
                    f"Gemini finishReason={finish_reason} (tokens_out={usage.get('candidatesTokenCount', 0)}, "
                    f"text_len={len(text)})"
                )

            return GeminiResult(
                status="COMPLETED",
                text=text,
                tokens_in=usage.get("promptTokenCount", 0),
                tokens_out=usage.get("candidatesTokenCount", 0),
                exec_ms=elapsed_ms,
                model_version=data.get("modelVersion", self.model),
                finish_reason=finish_reason,
            )

        except httpx.TimeoutException:
            elapsed_ms = int((time.time() - start_time) * 1000)
            logger.error(f"Gemini API timeout after {elapsed_ms}ms")
            return GeminiResult(
                status="TIMEOUT",
                text="",
                tokens_in=0,
                tokens_out=0,
                exec_ms=elapsed_ms,
                model_version=self.model,
                error="Request timed out",
            )
        except Exception as e:
            elapsed_ms = int((time.time() - start_time) * 1000)
            logger.exception(f"Gemini API error: {e}")
            return GeminiResult(
                status="ERROR",
                text="",
                tokens_in=0,
                tokens_out=0,
                exec_ms=elapsed_ms,
                model_version=self.model,
                error=str(e),
            )

    def _extract_text_and_reason(self, response: dict) -> tuple[str, Optional[str]]:
        """Extract text and finishReason from Gemini response."""
        candidates = response.get("candidates") if isinstance(response, dict) else None
        if not candidates or not isinstance(candidates, list) or not isinstance(candidates[0], dict):
            return "", None

        candidate = candidates[0]
        finish_reason = candidate.get("finishReason")

        content = candidate.get("content")
        parts = content.get("parts") if isinstance(content, dict) else None
        if not parts or not isinstance(parts, list) or not isinstance(parts[0], dict):
            return "", finish_reason

        text = parts[0].get("text", "")
        return (text if isinstance(text, str) else ""), finish_reason
