"""
Game API endpoints.

Covers the game lifecycle, world-state reads, manual nation and relationship
edits, turn submission (AI-resolved or offline placeholder) and the advisor.
"""

from typing import Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from chronoflux.api.deps import get_provider, get_store
from chronoflux.config import settings
from chronoflux.db.store import DocumentStore
from chronoflux.engine.advisor import Advisor
from chronoflux.engine.context import GameContextBuilder
from chronoflux.engine.initializer import GameInitializer
from chronoflux.engine.orchestrator import TurnOrchestrator
from chronoflux.engine.reconciler import WorldStateReconciler
from chronoflux.engine.world import WorldService
from chronoflux.providers.base import BaseProvider
from chronoflux.schemas.ai import TurnSummary
from chronoflux.schemas.world import RelationshipStatus, Resources
from chronoflux.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


class CreateGameRequest(BaseModel):
    """Request to start a game from a scenario"""

    scenario_id: str
    player_nation_key: str = Field(
        ..., description="Scenario-local id of the nation the player controls"
    )
    player_id: Optional[str] = None


class CreateGameResponse(BaseModel):
    game_id: str


class PlayerIdRequest(BaseModel):
    player_id: str


class TurnRequest(BaseModel):
    """A free-text player action"""

    action: str = Field(..., min_length=1)


class AdvisorRequest(BaseModel):
    question: str = Field(..., min_length=1)


class AdvisorResponse(BaseModel):
    answer: str


class ResourceChangeRequest(BaseModel):
    resource_changes: Dict[str, float]


class RelationshipScoreRequest(BaseModel):
    nation1_id: str
    nation2_id: str
    score_change: float = Field(..., allow_inf_nan=False)
    new_status: Optional[RelationshipStatus] = None


class RelationshipStatusRequest(BaseModel):
    nation1_id: str
    nation2_id: str
    status: RelationshipStatus
    relationship_score: Optional[float] = Field(default=None, allow_inf_nan=False)


# ==================== Lifecycle ====================


@router.post("/", response_model=CreateGameResponse)
async def create_game(request: CreateGameRequest, store: DocumentStore = Depends(get_store)):
    game_id = GameInitializer(store).create_game(
        request.scenario_id, request.player_nation_key, player_id=request.player_id
    )
    return CreateGameResponse(game_id=game_id)


@router.get("/")
async def list_games(player_id: str, store: DocumentStore = Depends(get_store)):
    """Games of one player, most recently updated first"""
    return WorldService(store).list_games_for_user(player_id)


@router.get("/{game_id}")
async def get_game(game_id: str, store: DocumentStore = Depends(get_store)):
    return WorldService(store).get_game(game_id)


@router.put("/{game_id}/player")
async def update_player_id(
    game_id: str, request: PlayerIdRequest, store: DocumentStore = Depends(get_store)
):
    return WorldService(store).update_game_player_id(game_id, request.player_id)


@router.delete("/{game_id}")
async def delete_game(game_id: str, store: DocumentStore = Depends(get_store)):
    return GameInitializer(store).delete_game(game_id)


# ==================== World state ====================


@router.get("/{game_id}/world")
async def get_world_state(game_id: str, store: DocumentStore = Depends(get_store)):
    return WorldService(store).get_world_state(game_id)


@router.get("/{game_id}/context")
async def get_game_context(game_id: str, store: DocumentStore = Depends(get_store)):
    """The snapshot the AI stages are prompted with"""
    context = GameContextBuilder(store, settings.recent_turn_window).build(game_id)
    return context.model_dump()


@router.get("/{game_id}/turns")
async def list_turns(game_id: str, store: DocumentStore = Depends(get_store)):
    return WorldService(store).list_turns(game_id)


@router.get("/{game_id}/events")
async def list_events(game_id: str, store: DocumentStore = Depends(get_store)):
    return WorldService(store).list_events(game_id)


@router.patch("/{game_id}/nations/{nation_id}/resources")
async def update_nation_resources(
    game_id: str,
    nation_id: str,
    request: ResourceChangeRequest,
    store: DocumentStore = Depends(get_store),
):
    return WorldService(store).update_nation_resources(
        game_id, nation_id, request.resource_changes
    )


@router.put("/{game_id}/nations/{nation_id}/resources")
async def set_nation_resources(
    game_id: str,
    nation_id: str,
    resources: Resources,
    store: DocumentStore = Depends(get_store),
):
    return WorldService(store).set_nation_resources(game_id, nation_id, resources)


@router.patch("/{game_id}/relationships")
async def update_relationship_score(
    game_id: str,
    request: RelationshipScoreRequest,
    store: DocumentStore = Depends(get_store),
):
    return WorldService(store).update_relationship_score(
        game_id,
        request.nation1_id,
        request.nation2_id,
        request.score_change,
        new_status=request.new_status,
    )


@router.put("/{game_id}/relationships")
async def set_relationship_status(
    game_id: str,
    request: RelationshipStatusRequest,
    store: DocumentStore = Depends(get_store),
):
    return WorldService(store).set_relationship_status(
        game_id,
        request.nation1_id,
        request.nation2_id,
        request.status,
        relationship_score=request.relationship_score,
    )


# ==================== Turns ====================


@router.post("/{game_id}/turns")
async def submit_turn(
    game_id: str, request: TurnRequest, store: DocumentStore = Depends(get_store)
):
    """Offline mode: record the action with placeholder text, no AI"""
    return WorldStateReconciler(store).submit_turn(game_id, request.action)


@router.post("/{game_id}/turns/ai", response_model=TurnSummary)
async def submit_turn_with_ai(
    game_id: str,
    request: TurnRequest,
    store: DocumentStore = Depends(get_store),
    provider: BaseProvider = Depends(get_provider),
):
    """Resolve the action through the AI pipeline and commit the result"""
    logger.info(
        f"[API] AI turn requested for game {game_id}",
        extra={"component": "API", "game_id": game_id, "provider": provider.name},
    )
    return await TurnOrchestrator(store, provider).process_turn(game_id, request.action)


@router.post("/{game_id}/advisor", response_model=AdvisorResponse)
async def ask_advisor(
    game_id: str,
    request: AdvisorRequest,
    store: DocumentStore = Depends(get_store),
    provider: BaseProvider = Depends(get_provider),
):
    answer = await Advisor(store, provider).ask(game_id, request.question)
    return AdvisorResponse(answer=answer)
