"""
AI Text Completion Client using Gemini

DESIGN DECISION: The client is stateless. Every call takes a prompt and
returns the first text part of the first candidate, nothing more.
It never sees or touches the ledger; callers decide what goes into the prompt.

Configuration is read at call time, not at construction, so the application
starts normally without an API key and only the AI features report a
ConfigurationError.
"""

from typing import Any, Optional

import google.generativeai as genai
import structlog
from pydantic import ValidationError

from ledgerbook.config import GeminiSettings


logger = structlog.get_logger(__name__)


class AIClientError(Exception):
    """Base exception for AI client errors."""
    pass


class ConfigurationError(AIClientError):
    """The AI client is not configured (e.g., no API key)."""
    pass


class RemoteError(AIClientError):
    """The remote call failed or returned no usable text."""
    pass


class GeminiTextClient:
    """
    Free-text prompt in, free-text answer out.

    Uses the google-generativeai SDK.
    """

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = settings

    def _load_settings(self) -> GeminiSettings:
        if self._settings is not None:
            return self._settings
        try:
            return GeminiSettings()
        except ValidationError as e:
            logger.error("gemini_not_configured", error=str(e))
            raise ConfigurationError(
                "The GEMINI_API_KEY environment variable is not configured."
            ) from e

    def _build_model(self, settings: GeminiSettings) -> Any:
        genai.configure(api_key=settings.api_key)
        return genai.GenerativeModel(
            model_name=settings.model_name,
            generation_config={
                "temperature": settings.temperature,
                "max_output_tokens": settings.max_tokens,
            },
        )

    async def complete(self, prompt: str) -> str:
        """
        Send a prompt and return the first text of the first candidate.

        Raises:
            ConfigurationError: No API key is configured
            RemoteError: Network/API failure, unreadable response,
                or a response without candidate text
        """
        settings = self._load_settings()
        model = self._build_model(settings)

        logger.debug("gemini_request", model=settings.model_name, prompt_chars=len(prompt))
        try:
            response = await model.generate_content_async(prompt)
        except Exception as e:
            logger.error("gemini_request_failed", error=str(e))
            raise RemoteError(f"Network error calling Gemini: {e}") from e

        text = extract_first_text(response)
        if text is None:
            logger.error("gemini_response_without_text", response=repr(response)[:500])
            raise RemoteError("Could not extract text from the AI response.")

        logger.info("gemini_request_completed", response_chars=len(text))
        return text


def extract_first_text(response: Any) -> Optional[str]:
    """
    Dig the first text part out of a generate_content response.

    Returns None when any level (candidates, content, parts, text) is
    missing or has the wrong shape.
    """
    try:
        candidates = list(response.candidates or [])
        if not candidates:
            return None
        content = candidates[0].content
        if content is None:
            return None
        parts = list(content.parts or [])
        if not parts:
            return None
        text = parts[0].text
    except (AttributeError, TypeError, IndexError, ValueError):
        return None

    if not isinstance(text, str):
        return None
    return text
