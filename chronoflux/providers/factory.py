"""
Provider factory for creating AI providers from resolved AI settings
"""

from chronoflux.config import settings
from chronoflux.errors import ConfigurationError
from chronoflux.schemas.settings import AISettings

from .base import BaseProvider
from .ollama import OllamaProvider
from .openrouter import OpenRouterProvider


def create_provider(ai_settings: AISettings) -> BaseProvider:
    """Create the provider selected by ``ai_settings``"""

    if ai_settings.provider == "openrouter":
        if not ai_settings.openrouter_api_key:
            raise ConfigurationError(
                "OpenRouter API key not configured. Please set it in Settings.",
                provider="openrouter",
            )
        return OpenRouterProvider(
            api_base=settings.openrouter_api_base,
            api_key=ai_settings.openrouter_api_key,
            model_name=ai_settings.openrouter_model,
            timeout=settings.openrouter_timeout,
            debug_logging=ai_settings.debug_logging,
        )
    elif ai_settings.provider == "ollama":
        return OllamaProvider(
            api_base=ai_settings.ollama_url,
            model_name=ai_settings.ollama_model,
            timeout=settings.ollama_timeout,
            debug_logging=ai_settings.debug_logging,
        )
    else:
        raise ConfigurationError(f"Unsupported provider: {ai_settings.provider}")
