"""
Configuration management for the ChronoFlux engine
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # AI Provider defaults (overridable per user via the settings store)
    ai_provider: Literal["ollama", "openrouter"] = Field(default="ollama")
    ollama_url: str = Field(default="http://localhost:11434")
    ollama_model: str = Field(default="qwen3:8b")
    openrouter_api_base: str = Field(default="https://openrouter.ai/api/v1")
    openrouter_api_key: str = Field(default="")
    openrouter_model: str = Field(default="openai/gpt-5-mini")
    ai_debug_logging: bool = Field(default=False)

    # Request bounds (seconds)
    ollama_timeout: float = Field(default=60.0)
    openrouter_timeout: float = Field(default=120.0)
    max_tokens: int = Field(default=2000)

    # Turn pipeline
    ai_max_retries: int = Field(default=3)
    ai_retry_base_delay: float = Field(
        default=1.0, description="Base delay in seconds, doubled after each attempt"
    )
    history_summary_interval: int = Field(
        default=5, description="Regenerate the history summary every N turns"
    )
    recent_turn_window: int = Field(default=5)

    # Server Configuration
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    log_file: str = Field(default="")

    # Database Configuration
    database_path: str = Field(
        default="data/chronoflux.db",
        description="SQLite database file path for games, nations and turns",
    )

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


# Global settings instance
settings = Settings()
