"""
AI settings API endpoints.

Stored values override the environment defaults; the OpenRouter key is never
returned in full.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from chronoflux.api.deps import get_ai_settings, get_store
from chronoflux.db.store import DocumentStore, SettingsStore
from chronoflux.providers.factory import create_provider
from chronoflux.schemas.settings import AIProviderName, AISettings
from chronoflux.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


class AISettingsUpdate(BaseModel):
    """Partial update; omitted fields keep their current value"""

    provider: Optional[AIProviderName] = None
    ollama_url: Optional[str] = None
    ollama_model: Optional[str] = None
    openrouter_api_key: Optional[str] = None
    openrouter_model: Optional[str] = None
    debug_logging: Optional[bool] = None


@router.get("/ai")
async def get_ai_settings_endpoint(ai_settings: AISettings = Depends(get_ai_settings)):
    return ai_settings.redacted()


@router.put("/ai")
async def update_ai_settings(
    request: AISettingsUpdate,
    store: DocumentStore = Depends(get_store),
    current: AISettings = Depends(get_ai_settings),
):
    updated = current.model_copy(update=request.model_dump(exclude_none=True))
    saved = SettingsStore(store).save_ai_settings(updated)
    logger.info(f"✓ AI settings updated: provider={saved.provider}")
    return saved.redacted()


@router.post("/ai/reset")
async def reset_ai_settings(store: DocumentStore = Depends(get_store)):
    return SettingsStore(store).reset_ai_settings().redacted()


@router.post("/ai/test")
async def test_ai_connection(ai_settings: AISettings = Depends(get_ai_settings)):
    """Check that the configured provider is reachable and the model exists"""
    provider = create_provider(ai_settings)
    status = await provider.test_connection()
    if not status.success:
        logger.warning(f"[Settings] Connection test failed: {status.error}")
    return {**status.model_dump(), **provider.describe()}
