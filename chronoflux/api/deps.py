"""
Shared FastAPI dependencies and the error-to-status mapping
"""

from typing import Optional

from fastapi import Depends

from chronoflux.config import settings
from chronoflux.db.store import DocumentStore, SettingsStore
from chronoflux.errors import (
    AIProviderError,
    AuthError,
    ChronoFluxError,
    ConcurrentTurnConflictError,
    ConnectivityError,
    GameNotFoundError,
    JsonExtractionError,
    NationNotFoundError,
    PlayerNationUnsetError,
    QuotaError,
    RateLimitError,
    RelationshipNotFoundError,
    ScenarioInUseError,
    ScenarioNotFoundError,
    ScenarioProtectedError,
)
from chronoflux.providers.base import BaseProvider
from chronoflux.providers.factory import create_provider
from chronoflux.schemas.settings import AISettings

_store: Optional[DocumentStore] = None


def get_store() -> DocumentStore:
    """Process-wide document store at ``settings.database_path``"""
    global _store
    if _store is None:
        _store = DocumentStore(settings.database_path)
    return _store


def get_ai_settings(store: DocumentStore = Depends(get_store)) -> AISettings:
    return SettingsStore(store).load_ai_settings()


def get_provider(ai_settings: AISettings = Depends(get_ai_settings)) -> BaseProvider:
    """Provider built from the settings resolved for this request"""
    return create_provider(ai_settings)


# Subclasses before their parents
_STATUS_CODES = [
    (GameNotFoundError, 404),
    (ScenarioNotFoundError, 404),
    (NationNotFoundError, 404),
    (RelationshipNotFoundError, 404),
    (PlayerNationUnsetError, 400),
    (ScenarioProtectedError, 403),
    (ScenarioInUseError, 409),
    (ConcurrentTurnConflictError, 409),
    (ConnectivityError, 503),
    (AuthError, 401),
    (RateLimitError, 429),
    (QuotaError, 402),
    (AIProviderError, 502),
    (JsonExtractionError, 502),
]


def status_for(error: ChronoFluxError) -> int:
    for error_type, status_code in _STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500

