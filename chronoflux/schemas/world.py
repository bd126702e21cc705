"""
World-state schema definitions: resources, nations, relationships, scenarios
"""

import math
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

RESOURCE_KEYS = ("military", "economy", "stability", "influence")

RESOURCE_MIN = 0
RESOURCE_MAX = 100
SCORE_MIN = -100
SCORE_MAX = 100

RelationshipStatus = Literal["allied", "neutral", "hostile", "at_war"]
GameStatus = Literal["active", "paused", "completed"]
EventType = Literal["political", "military", "diplomatic", "economic", "other"]
Feasibility = Literal["high", "medium", "low"]


def clamp(value: float, low: float, high: float) -> float:
    """Clamp ``value`` into ``[low, high]``"""
    return max(low, min(high, value))


def clamp_score(value: float) -> float:
    return clamp(value, SCORE_MIN, SCORE_MAX)


class Resources(BaseModel):
    """The four bounded national capacity channels"""

    military: float = Field(default=50, description="Military strength 0-100")
    economy: float = Field(default=50, description="Economic output 0-100")
    stability: float = Field(default=50, description="Internal stability 0-100")
    influence: float = Field(default=50, description="Diplomatic influence 0-100")

    def apply_delta(self, delta: Dict[str, float]) -> "Resources":
        """
        Add ``delta`` channel by channel and clamp each result.

        Missing channels count as 0; unknown keys are ignored.
        """
        values = {}
        for key in RESOURCE_KEYS:
            change = _as_number(delta.get(key, 0))
            values[key] = clamp(
                getattr(self, key) + change, RESOURCE_MIN, RESOURCE_MAX
            )
        return Resources(**values)

    def clamped(self) -> "Resources":
        return Resources(
            **{
                key: clamp(_as_number(getattr(self, key)), RESOURCE_MIN, RESOURCE_MAX)
                for key in RESOURCE_KEYS
            }
        )

    @classmethod
    def from_document(cls, data: Optional[Dict[str, Any]]) -> "Resources":
        data = data or {}
        return cls(**{key: _as_number(data.get(key, 0)) for key in RESOURCE_KEYS})

    def to_document(self) -> Dict[str, float]:
        return {key: _as_int_if_whole(getattr(self, key)) for key in RESOURCE_KEYS}


def _as_number(value: Any) -> float:
    if isinstance(value, bool):
        return 0
    if not isinstance(value, (int, float)):
        try:
            value = float(value)
        except (TypeError, ValueError):
            return 0
    # Non-finite values count as 0
    return value if math.isfinite(value) else 0


def _as_int_if_whole(value: float):
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


class NationSeed(BaseModel):
    """Nation entry inside a scenario's initial world state"""

    id: str = Field(..., description="Scenario-local key used to pick the player nation")
    name: str
    government: str = "Unknown"
    resources: Resources = Field(default_factory=Resources)
    territories: List[str] = Field(default_factory=list)


class RelationshipSeed(BaseModel):
    """Relationship entry inside a scenario's initial world state"""

    nation1_id: str
    nation2_id: str
    status: RelationshipStatus = "neutral"
    trade_agreements: bool = False
    military_alliance: bool = False
    relationship_score: float = 0


class InitialWorldState(BaseModel):
    nations: List[NationSeed] = Field(default_factory=list)
    relationships: List[RelationshipSeed] = Field(default_factory=list)
    global_events: List[str] = Field(default_factory=list)


class ScenarioSpec(BaseModel):
    """User-authored scenario payload"""

    name: str = Field(..., min_length=1)
    description: str = ""
    period: str = Field(..., description="Historical period label")
    start_year: int
    initial_world_state: InitialWorldState = Field(default_factory=InitialWorldState)
    ai_context: str = ""


class RecentTurn(BaseModel):
    """A past turn as rendered into prompts"""

    turn_number: int
    player_action: str
    narrative: str = ""
    consequences: str = ""
    events: List[Dict[str, Any]] = Field(default_factory=list)
    world_state_changes: Dict[str, Any] = Field(default_factory=dict)


class RelationshipView(BaseModel):
    """Relationship seen from the player nation's side"""

    name: str
    status: str
    score: float


class KnownNation(BaseModel):
    name: str
    government: str = "Unknown"
    resources: Optional[Resources] = None
    territories: List[str] = Field(default_factory=list)


class WorldSnapshot(BaseModel):
    """World state the turn prompts are rendered from"""

    player_resources: Resources
    relationships: List[RelationshipView] = Field(default_factory=list)
    turn_history: List[RecentTurn] = Field(default_factory=list)
    history_summary: str = ""
    other_nations: List[KnownNation] = Field(default_factory=list)


class GameContext(BaseModel):
    """
    Snapshot of a game read before the LLM stages run.

    ``current_turn`` is the counter value the snapshot was read at; the
    reconciler refuses to commit if the game has moved on since.
    """

    game_id: str
    player_nation_id: str
    player_nation_name: str
    player_government: str = "Unknown"
    current_year: int
    current_turn: int
    world_state: WorldSnapshot
