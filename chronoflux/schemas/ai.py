"""
Schemas for AI payloads: the structured shapes expected back from the model
and the merged payload handed to the reconciler.

Model output is untrusted, so every field has a tolerant default and the
validators coerce the common near-misses (numbers as strings, a single string
where a list was asked for) instead of rejecting the whole response.
"""

import math
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .world import EventType, Feasibility, RelationshipStatus, Resources

RELATIONSHIP_STATUSES = ("allied", "neutral", "hostile", "at_war")
EVENT_TYPES = ("political", "military", "diplomatic", "economic", "other")


def _finite(raw: Any) -> Optional[float]:
    """Numeric value of ``raw``, or None for booleans, junk, NaN and infinities"""
    if isinstance(raw, bool):
        return None
    if not isinstance(raw, (int, float)):
        try:
            raw = float(raw)
        except (TypeError, ValueError):
            return None
    if not math.isfinite(raw):
        return None
    return raw


def _numeric_map(value: Any) -> Dict[str, float]:
    if not isinstance(value, dict):
        return {}
    result: Dict[str, float] = {}
    for key, raw in value.items():
        number = _finite(raw)
        if number is not None:
            result[str(key)] = number
    return result


class RelationshipChange(BaseModel):
    """A relationship delta between two nations named by the model"""

    model_config = ConfigDict(populate_by_name=True)

    nation1: str
    nation2: str
    score_change: float = Field(default=0, alias="scoreChange")
    status_change: Optional[RelationshipStatus] = Field(
        default=None, alias="statusChange"
    )

    @field_validator("score_change", mode="before")
    @classmethod
    def coerce_score(cls, v):
        number = _finite(v)
        return 0 if number is None else number

    @field_validator("status_change", mode="before")
    @classmethod
    def drop_unknown_status(cls, v):
        if isinstance(v, str) and v.lower() in RELATIONSHIP_STATUSES:
            return v.lower()
        return None


class NewNationSpec(BaseModel):
    """Attributes the model supplied for a nation it introduced"""

    government: str = "Unknown"
    territories: List[str] = Field(default_factory=list)
    resources: Resources = Field(default_factory=Resources)

    @field_validator("territories", mode="before")
    @classmethod
    def coerce_territories(cls, v):
        if isinstance(v, str):
            return [v]
        return v or []

    @field_validator("resources", mode="before")
    @classmethod
    def coerce_resources(cls, v):
        if isinstance(v, dict):
            return {k: n for k, n in _numeric_map(v).items() if k in Resources.model_fields}
        return v or {}


class ActionInterpretation(BaseModel):
    """Stage one: how the model reads the player's action"""

    feasibility: Feasibility = "medium"
    immediate_consequences: List[str] = Field(default_factory=list)
    nation_reactions: Dict[str, str] = Field(default_factory=dict)
    resource_changes: Dict[str, float] = Field(default_factory=dict)
    relationship_changes: List[RelationshipChange] = Field(default_factory=list)
    new_nations: Dict[str, NewNationSpec] = Field(default_factory=dict)
    narrative: str = ""

    @field_validator("feasibility", mode="before")
    @classmethod
    def normalize_feasibility(cls, v):
        if isinstance(v, str) and v.lower() in ("high", "medium", "low"):
            return v.lower()
        return "medium"

    @field_validator("immediate_consequences", mode="before")
    @classmethod
    def coerce_consequences(cls, v):
        if isinstance(v, str):
            return [v]
        return [str(item) for item in (v or [])]

    @field_validator("nation_reactions", mode="before")
    @classmethod
    def coerce_reactions(cls, v):
        if not isinstance(v, dict):
            return {}
        return {str(k): str(val) for k, val in v.items()}

    @field_validator("resource_changes", mode="before")
    @classmethod
    def coerce_resource_changes(cls, v):
        return _numeric_map(v)

    @field_validator("relationship_changes", "new_nations", mode="before")
    @classmethod
    def none_to_empty(cls, v, info):
        if v is None:
            return [] if info.field_name == "relationship_changes" else {}
        return v

    @classmethod
    def fallback(cls, nation_name: str, action: str) -> "ActionInterpretation":
        """Neutral interpretation used when the model never produced one"""
        return cls(
            feasibility="medium",
            immediate_consequences=["Action being evaluated..."],
            narrative=(
                f"{nation_name} attempts to {action}. "
                "The consequences are still unfolding."
            ),
        )


class EventSpec(BaseModel):
    """An event as declared by the model (nations referenced by name)"""

    type: EventType = "other"
    title: str = "Untitled Event"
    description: str = ""
    affected_nations: List[str] = Field(default_factory=list)
    impact: Dict[str, float] = Field(default_factory=dict)

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        if isinstance(v, str) and v.lower() in EVENT_TYPES:
            return v.lower()
        return "other"

    @field_validator("affected_nations", mode="before")
    @classmethod
    def coerce_affected(cls, v):
        if isinstance(v, str):
            return [v]
        return [str(item) for item in (v or [])]

    @field_validator("impact", mode="before")
    @classmethod
    def coerce_impact(cls, v):
        return _numeric_map(v)


class LegacyEventList(BaseModel):
    """Event stage response given as a bare JSON array"""

    kind: Literal["legacy"] = "legacy"
    events: List[EventSpec] = Field(default_factory=list)


class StructuredEventResponse(BaseModel):
    """Event stage response given as an object with optional extras"""

    kind: Literal["structured"] = "structured"
    events: List[EventSpec] = Field(default_factory=list)
    new_nations: Dict[str, NewNationSpec] = Field(default_factory=dict)
    nation_updates: Dict[str, Dict[str, float]] = Field(default_factory=dict)

    @field_validator("events", "new_nations", mode="before")
    @classmethod
    def none_to_empty(cls, v, info):
        if v is None:
            return [] if info.field_name == "events" else {}
        return v

    @field_validator("nation_updates", mode="before")
    @classmethod
    def coerce_updates(cls, v):
        if not isinstance(v, dict):
            return {}
        updates: Dict[str, Dict[str, float]] = {}
        for name, changes in v.items():
            if isinstance(changes, dict) and isinstance(changes.get("resources"), dict):
                changes = changes["resources"]
            updates[str(name)] = _numeric_map(changes)
        return updates


EventStageResponse = Union[LegacyEventList, StructuredEventResponse]


def parse_event_response(data: Any) -> StructuredEventResponse:
    """
    Normalize either event stage shape into a StructuredEventResponse.

    Raises:
        ValueError: when the data is neither a list nor an object
    """
    if isinstance(data, list):
        variant: EventStageResponse = LegacyEventList(events=data)
    elif isinstance(data, dict):
        variant = StructuredEventResponse(**{k: v for k, v in data.items() if k != "kind"})
    else:
        raise ValueError(f"Expected a JSON array or object, got {type(data).__name__}")

    if isinstance(variant, LegacyEventList):
        return StructuredEventResponse(events=variant.events)
    return variant


class MergedTurnPayload(BaseModel):
    """Everything the reconciler needs to commit one turn"""

    feasibility: Feasibility = "medium"
    narrative: str = ""
    consequences: str = ""
    resource_changes: Dict[str, float] = Field(default_factory=dict)
    relationship_changes: List[RelationshipChange] = Field(default_factory=list)
    events: List[EventSpec] = Field(default_factory=list)
    new_nations: Dict[str, NewNationSpec] = Field(default_factory=dict)
    nation_updates: Dict[str, Dict[str, float]] = Field(default_factory=dict)
    history_summary: Optional[str] = None


class MaterializedEvent(BaseModel):
    """An event after nation names were resolved to ids"""

    type: EventType
    title: str
    description: str
    affected_nations: List[str]
    impact: Dict[str, float]


class TurnSummary(BaseModel):
    """Result of a committed AI turn"""

    success: bool = True
    turn_number: int
    turn_id: str
    events: List[MaterializedEvent] = Field(default_factory=list)
    narrative: str
    consequences: str
    resource_changes: Dict[str, float] = Field(default_factory=dict)
    feasibility: Feasibility = "medium"
    created_nations: List[str] = Field(
        default_factory=list, description="Ids of nations auto-created this turn"
    )
