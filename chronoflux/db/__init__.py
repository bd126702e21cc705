"""
Persistence layer for ChronoFlux
"""

from .schema import Base
from .store import DocumentStore, Query, SettingsStore, StoreTransaction, now_ms

__all__ = [
    "Base",
    "DocumentStore",
    "StoreTransaction",
    "Query",
    "SettingsStore",
    "now_ms",
]
