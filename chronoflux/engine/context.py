"""
Game context builder: reads the world snapshot the turn prompts are built from
"""

from typing import Dict, List

from chronoflux.db.store import Document, DocumentStore
from chronoflux.errors import (
    GameNotFoundError,
    NationNotFoundError,
    PlayerNationUnsetError,
    ScenarioNotFoundError,
)
from chronoflux.schemas.world import (
    GameContext,
    KnownNation,
    RecentTurn,
    RelationshipView,
    Resources,
    WorldSnapshot,
)
from chronoflux.utils.logger import get_logger

logger = get_logger(__name__)


class GameContextBuilder:
    """
    Builds a ``GameContext`` from one consistent read of the store.

    The snapshot records the game's ``current_turn`` so the reconciler can
    detect a turn committed by someone else while the model was thinking.
    """

    def __init__(self, store: DocumentStore, recent_turn_window: int = 5):
        self.store = store
        self.recent_turn_window = recent_turn_window

    def build(self, game_id: str) -> GameContext:
        with self.store.transaction() as tx:
            game = tx.get("games", game_id)
            if not game:
                raise GameNotFoundError(game_id)

            scenario = tx.get("scenarios", game["scenario_id"])
            if not scenario:
                raise ScenarioNotFoundError(game["scenario_id"])

            player_nation_id = game.get("player_nation_id")
            if not player_nation_id:
                raise PlayerNationUnsetError(game_id)
            player = tx.get("nations", player_nation_id)
            if not player:
                raise NationNotFoundError(player_nation_id)

            nations = tx.query("nations").where(game_id=game_id).collect()
            relationships = (
                tx.query("relationships")
                .where(game_id=game_id)
                .filter(
                    lambda r: player_nation_id in (r["nation1_id"], r["nation2_id"])
                )
                .collect()
            )
            recent = tx.recent_turns(game_id, self.recent_turn_window)

        by_id: Dict[str, Document] = {n["id"]: n for n in nations}

        relationship_views: List[RelationshipView] = []
        for rel in relationships:
            other_id = (
                rel["nation2_id"]
                if rel["nation1_id"] == player_nation_id
                else rel["nation1_id"]
            )
            other = by_id.get(other_id)
            relationship_views.append(
                RelationshipView(
                    name=other["name"] if other else "Unknown",
                    status=rel["status"],
                    score=rel["relationship_score"],
                )
            )

        # Stored newest first; prompts want oldest first
        turn_history = [_recent_turn(turn) for turn in reversed(recent)]

        other_nations = [
            KnownNation(
                name=n["name"],
                government=n.get("government") or "Unknown",
                resources=Resources.from_document(n.get("resources")),
                territories=n.get("territories") or [],
            )
            for n in nations
            if n["id"] != player_nation_id
        ]

        context = GameContext(
            game_id=game_id,
            player_nation_id=player_nation_id,
            player_nation_name=player["name"],
            player_government=player.get("government") or "Unknown",
            current_year=scenario["start_year"] + game["current_turn"] - 1,
            current_turn=game["current_turn"],
            world_state=WorldSnapshot(
                player_resources=Resources.from_document(player.get("resources")),
                relationships=relationship_views,
                turn_history=turn_history,
                history_summary=game.get("history_summary") or "",
                other_nations=other_nations,
            ),
        )
        logger.debug(
            f"[Context] Built context for game {game_id} at turn {context.current_turn}",
            extra={
                "component": "Context",
                "game_id": game_id,
                "nations": len(nations),
                "recent_turns": len(turn_history),
            },
        )
        return context


def _recent_turn(turn: Document) -> RecentTurn:
    ai_response = turn.get("ai_response") or {}
    return RecentTurn(
        turn_number=turn["turn_number"],
        player_action=turn["player_action"],
        narrative=ai_response.get("narrative", ""),
        consequences=ai_response.get("consequences", ""),
        events=[
            {
                "title": e.get("title", ""),
                "description": e.get("description", ""),
                "type": e.get("type", "other"),
            }
            for e in ai_response.get("events", [])
        ],
        world_state_changes=ai_response.get("world_state_changes") or {},
    )
