"""AI text completion services."""

from ledgerbook.services.ai.gemini_client import (
    AIClientError,
    ConfigurationError,
    GeminiTextClient,
    RemoteError,
    extract_first_text,
)

__all__ = [
    "AIClientError",
    "ConfigurationError",
    "GeminiTextClient",
    "RemoteError",
    "extract_first_text",
]
