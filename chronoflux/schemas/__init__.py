"""
Pydantic schemas for ChronoFlux
"""

from .ai import (
    ActionInterpretation,
    EventSpec,
    LegacyEventList,
    MaterializedEvent,
    MergedTurnPayload,
    NewNationSpec,
    RelationshipChange,
    StructuredEventResponse,
    TurnSummary,
    parse_event_response,
)
from .settings import AISettings
from .world import (
    RESOURCE_KEYS,
    GameContext,
    InitialWorldState,
    KnownNation,
    NationSeed,
    RecentTurn,
    RelationshipSeed,
    RelationshipView,
    Resources,
    ScenarioSpec,
    WorldSnapshot,
    clamp,
    clamp_score,
)

__all__ = [
    # AI payloads
    "ActionInterpretation",
    "EventSpec",
    "LegacyEventList",
    "StructuredEventResponse",
    "parse_event_response",
    "NewNationSpec",
    "RelationshipChange",
    "MergedTurnPayload",
    "MaterializedEvent",
    "TurnSummary",
    # Settings
    "AISettings",
    # World state
    "RESOURCE_KEYS",
    "Resources",
    "NationSeed",
    "RelationshipSeed",
    "InitialWorldState",
    "ScenarioSpec",
    "RecentTurn",
    "RelationshipView",
    "KnownNation",
    "WorldSnapshot",
    "GameContext",
    "clamp",
    "clamp_score",
]
