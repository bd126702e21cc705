"""
AI provider settings resolved once per request and passed explicitly
"""

from typing import Literal

from pydantic import BaseModel, Field

from chronoflux.config import settings

AIProviderName = Literal["ollama", "openrouter"]


class AISettings(BaseModel):
    """Provider selection plus the endpoint, model and key for each backend"""

    provider: AIProviderName = Field(default="ollama")
    ollama_url: str = Field(default="http://localhost:11434")
    ollama_model: str = Field(default="qwen3:8b")
    openrouter_api_key: str = Field(default="")
    openrouter_model: str = Field(default="openai/gpt-5-mini")
    debug_logging: bool = Field(default=False)

    @classmethod
    def from_config(cls) -> "AISettings":
        """Defaults taken from the environment configuration"""
        return cls(
            provider=settings.ai_provider,
            ollama_url=settings.ollama_url,
            ollama_model=settings.ollama_model,
            openrouter_api_key=settings.openrouter_api_key,
            openrouter_model=settings.openrouter_model,
            debug_logging=settings.ai_debug_logging,
        )

    def redacted(self) -> dict:
        """Dump for API responses, with the API key masked"""
        data = self.model_dump()
        key = data.get("openrouter_api_key") or ""
        data["openrouter_api_key"] = f"{key[:6]}..." if len(key) > 6 else ("***" if key else "")
        data["has_openrouter_api_key"] = bool(key)
        return data
