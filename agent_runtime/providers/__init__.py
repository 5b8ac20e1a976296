"""Language model providers"""
from typing import Optional

from agent_runtime.config import Settings, settings as default_settings
from agent_runtime.errors import ValidationError
from agent_runtime.providers.client import LanguageModelClient
from agent_runtime.providers.gemini_provider import GeminiProvider
from agent_runtime.providers.groq_provider import GroqProvider

PROVIDER_GEMINI = "gemini"
PROVIDER_GROQ = "groq"


def get_language_model_client(
    provider: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> LanguageModelClient:
    """Build the configured language model client"""
    settings = settings or default_settings
    provider = (provider or settings.LLM_PROVIDER).lower()

    if provider == PROVIDER_GEMINI:
        return GeminiProvider(settings=settings)
    if provider == PROVIDER_GROQ:
        return GroqProvider(settings=settings)
    raise ValidationError(f"Unknown LLM provider: {provider}", {"provider": provider})


__all__ = [
    "LanguageModelClient",
    "GeminiProvider",
    "GroqProvider",
    "get_language_model_client",
    "PROVIDER_GEMINI",
    "PROVIDER_GROQ",
]
