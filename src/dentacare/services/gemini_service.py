"""
Gemini AI Service.

Thin wrapper over the google-genai client used by the clinic assistant.
Features:
- Automatic retries with exponential backoff for transient network failures
- JSON parsing tolerant of markdown code fences
- Optional file part (scanned insurance card, x-ray report) for vision requests
- Async/await for all I/O operations
"""
from __future__ import annotations

import json
import logging
import time
from typing import Any

from google import genai
from google.genai import types as genai_types
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..core.config import get_settings
from ..core.exceptions import AIServiceError

logger = logging.getLogger(__name__)


class GeminiService:
    """
    Google Gemini API wrapper.

    Usage:
        gemini = get_gemini_service()
        result = await gemini.generate_structured(
            prompt="Draft treatment notes for ...",
            system_instruction="You are a dental clinic assistant.",
            max_tokens=1500,
        )
    """

    def __init__(self) -> None:
        self.settings = get_settings()
        self._client: genai.Client | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.GOOGLE_API_KEY)

    @property
    def client(self) -> genai.Client:
        """Get or create the Gemini client instance."""
        if self._client is None:
            if not self.settings.GOOGLE_API_KEY:
                raise AIServiceError(
                    message="Google API key not configured",
                    original_error="GOOGLE_API_KEY environment variable is empty",
                )
            self._client = genai.Client(
                api_key=self.settings.GOOGLE_API_KEY,
                http_options=genai_types.HttpOptions(timeout=self.settings.GEMINI_TIMEOUT * 1000),
            )
            logger.info("Initialized Gemini client with model: %s", self.settings.GEMINI_MODEL)
        return self._client

    def _get_generation_config(
        self,
        system_instruction: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> genai_types.GenerateContentConfig:
        """Generation config with defaults from settings."""
        return genai_types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=temperature if temperature is not None else self.settings.GEMINI_TEMPERATURE,
            max_output_tokens=max_tokens or self.settings.GEMINI_MAX_TOKENS,
        )

    def _get_retry_decorator(self):
        """Return a cached tenacity retry decorator.

        Built once per instance so retry statistics are not reset on every call.
        """
        if not hasattr(self, "_retry_decorator"):
            self._retry_decorator = retry(
                stop=stop_after_attempt(self.settings.GEMINI_MAX_RETRIES),
                wait=wait_exponential(
                    multiplier=self.settings.GEMINI_RETRY_DELAY,
                    min=1,
                    max=60,
                ),
                retry=retry_if_exception_type((
                    ConnectionError,
                    TimeoutError,
                )),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            )
        return self._retry_decorator

    async def _call_model(self, contents: Any, config: genai_types.GenerateContentConfig) -> str:
        start_time = time.time()
        response = await self.client.aio.models.generate_content(
            model=self.settings.GEMINI_MODEL,
            contents=contents,
            config=config,
        )
        elapsed_ms = (time.time() - start_time) * 1000
        logger.info("Gemini response in %.2fms", elapsed_ms)
        return response.text or ""

    async def generate(
        self,
        prompt: str,
        system_instruction: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        file_content: bytes | None = None,
        mime_type: str | None = None,
    ) -> str:
        """
        Generate a text response from Gemini.

        Connection and timeout errors propagate unchanged so the retry
        decorator can see them; everything else becomes AIServiceError.

        Raises:
            AIServiceError: If generation fails
        """
        config = self._get_generation_config(system_instruction, temperature, max_tokens)
        contents: Any = prompt
        if file_content is not None:
            contents = [
                prompt,
                genai_types.Part.from_bytes(data=file_content, mime_type=mime_type or "application/octet-stream"),
            ]
            logger.info("Gemini vision request for %s", mime_type)
        else:
            logger.debug("Gemini request: %s...", prompt[:200])

        try:
            return await self._call_model(contents, config)
        except (ConnectionError, TimeoutError):
            raise
        except AIServiceError:
            raise
        except Exception as e:
            error_str = str(e).lower()
            if "blocked" in error_str or "safety" in error_str:
                logger.error("Prompt blocked by Gemini safety filters: %s", e)
                raise AIServiceError(
                    message="Request blocked by AI safety filters",
                    original_error=str(e),
                )
            logger.error("Gemini API error: %s", e)
            raise AIServiceError(
                message="AI service temporarily unavailable",
                original_error=str(e),
            )

    async def generate_with_retry(self, prompt: str, **kwargs: Any) -> str:
        """Generate text with exponential backoff for transient failures."""
        @self._get_retry_decorator()
        async def _generate():
            return await self.generate(prompt, **kwargs)

        try:
            return await _generate()
        except (ConnectionError, TimeoutError) as e:
            logger.error("Gemini unreachable after retries: %s", e)
            raise AIServiceError(
                message="AI service temporarily unavailable",
                original_error=str(e),
            )

    async def generate_structured(self, prompt: str, **kwargs: Any) -> dict[str, Any]:
        """
        Generate a JSON object from Gemini.

        Accepts the same keyword arguments as ``generate``.

        Raises:
            AIServiceError: If generation or JSON parsing fails
        """
        raw_response = await self.generate_with_retry(prompt, **kwargs)
        return self._parse_json_response(raw_response)

    def _parse_json_response(self, response: str) -> dict[str, Any]:
        """
        Parse JSON from a Gemini response.

        Gemini sometimes wraps JSON in markdown code blocks.
        """
        cleaned = response.strip()

        if cleaned.startswith("```json"):
            cleaned = cleaned[7:]
        elif cleaned.startswith("```"):
            cleaned = cleaned[3:]

        if cleaned.endswith("```"):
            cleaned = cleaned[:-3]

        cleaned = cleaned.strip()

        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as e:
            logger.error("Failed to parse JSON response: %s", e)
            logger.debug("Raw response: %s", response)
            raise AIServiceError(
                message="Failed to parse AI response as JSON",
                original_error=str(e),
            )
        if not isinstance(parsed, dict):
            raise AIServiceError(
                message="AI response was not a JSON object",
                original_error=f"got {type(parsed).__name__}",
            )
        return parsed


_gemini_service: GeminiService | None = None


def get_gemini_service() -> GeminiService:
    """Get the global Gemini service instance."""
    global _gemini_service
    if _gemini_service is None:
        _gemini_service = GeminiService()
    return _gemini_service
