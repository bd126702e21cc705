"""
AI provider implementations for ChronoFlux
"""

from .base import BaseProvider, ConnectionStatus
from .factory import create_provider
from .ollama import OllamaProvider
from .openrouter import OpenRouterProvider

__all__ = [
    "BaseProvider",
    "ConnectionStatus",
    "OllamaProvider",
    "OpenRouterProvider",
    "create_provider",
]
