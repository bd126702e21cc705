"""
World-state queries and direct nation/relationship updates
"""

from typing import Any, Dict, List, Optional

from chronoflux.db.store import Document, DocumentStore, StoreTransaction, now_ms
from chronoflux.engine.reconciler import find_relationship
from chronoflux.errors import (
    GameNotFoundError,
    NationNotFoundError,
    RelationshipNotFoundError,
    ScenarioNotFoundError,
)
from chronoflux.schemas.world import Resources, clamp_score
from chronoflux.utils.logger import get_logger

logger = get_logger(__name__)


class WorldService:
    """Read models and manual edits for one store"""

    def __init__(self, store: DocumentStore):
        self.store = store

    # ==================== Games ====================

    def get_game(self, game_id: str) -> Document:
        game = self.store.get("games", game_id)
        if not game:
            raise GameNotFoundError(game_id)
        return game

    def list_games_for_user(self, player_id: str) -> List[Document]:
        """Games owned by ``player_id``, most recently updated first"""
        return (
            self.store.query("games")
            .where(player_id=player_id)
            .order_by("updated_at", descending=True)
            .collect()
        )

    def update_game_player_id(self, game_id: str, player_id: str) -> Document:
        if not self.store.patch(
            "games", game_id, {"player_id": player_id, "updated_at": now_ms()}
        ):
            raise GameNotFoundError(game_id)
        return self.get_game(game_id)

    def get_world_state(self, game_id: str) -> Dict[str, Any]:
        """Game, scenario summary, nations, relationships and player nation"""
        with self.store.transaction() as tx:
            game = tx.get("games", game_id)
            if not game:
                raise GameNotFoundError(game_id)
            scenario = tx.get("scenarios", game["scenario_id"])
            if not scenario:
                raise ScenarioNotFoundError(game["scenario_id"])

            nations = tx.query("nations").where(game_id=game_id).collect()
            relationships = tx.query("relationships").where(game_id=game_id).collect()
            player_nation = tx.get("nations", game.get("player_nation_id"))

        return {
            "game": game,
            "scenario": {
                "id": scenario["id"],
                "name": scenario["name"],
                "description": scenario["description"],
                "historical_period": scenario["historical_period"],
                "start_year": scenario["start_year"],
            },
            "nations": nations,
            "relationships": relationships,
            "player_nation": player_nation,
        }

    def list_turns(self, game_id: str) -> List[Document]:
        """All turns of a game, newest first"""
        return (
            self.store.query("turns")
            .where(game_id=game_id)
            .order_by("turn_number", descending=True)
            .collect()
        )

    def list_events(self, game_id: str) -> List[Document]:
        return (
            self.store.query("events")
            .where(game_id=game_id)
            .order_by("turn_number", descending=True)
            .collect()
        )

    # ==================== Nations ====================

    def list_nations(self, game_id: str) -> List[Document]:
        return self.store.query("nations").where(game_id=game_id).collect()

    def update_nation_resources(
        self, game_id: str, nation_id: str, resource_changes: Dict[str, float]
    ) -> Document:
        """Add deltas to a nation's resources, clamping each to [0, 100]"""
        with self.store.transaction() as tx:
            nation = _game_nation(tx, game_id, nation_id)
            resources = Resources.from_document(nation["resources"]).apply_delta(
                resource_changes
            )
            tx.patch("nations", nation_id, {"resources": resources.to_document()})
            return tx.get("nations", nation_id)  # type: ignore[return-value]

    def set_nation_resources(
        self, game_id: str, nation_id: str, resources: Resources
    ) -> Document:
        """Overwrite a nation's resources, clamped to [0, 100]"""
        with self.store.transaction() as tx:
            _game_nation(tx, game_id, nation_id)
            tx.patch("nations", nation_id, {"resources": resources.clamped().to_document()})
            return tx.get("nations", nation_id)  # type: ignore[return-value]

    # ==================== Relationships ====================

    def list_relationships(self, game_id: str) -> List[Document]:
        return self.store.query("relationships").where(game_id=game_id).collect()

    def get_relationship(self, game_id: str, nation1_id: str, nation2_id: str) -> Document:
        with self.store.transaction() as tx:
            relationship = find_relationship(tx, game_id, nation1_id, nation2_id)
        if not relationship:
            raise RelationshipNotFoundError(nation1_id, nation2_id)
        return relationship

    def update_relationship_score(
        self,
        game_id: str,
        nation1_id: str,
        nation2_id: str,
        score_change: float,
        new_status: Optional[str] = None,
    ) -> Document:
        """Add ``score_change`` to an existing relationship, clamped to [-100, 100]"""
        with self.store.transaction() as tx:
            relationship = find_relationship(tx, game_id, nation1_id, nation2_id)
            if not relationship:
                raise RelationshipNotFoundError(nation1_id, nation2_id)
            fields: Document = {
                "relationship_score": clamp_score(
                    relationship["relationship_score"] + score_change
                )
            }
            if new_status is not None:
                fields["status"] = new_status
            tx.patch("relationships", relationship["id"], fields)
            return tx.get("relationships", relationship["id"])  # type: ignore[return-value]

    def set_relationship_status(
        self,
        game_id: str,
        nation1_id: str,
        nation2_id: str,
        status: str,
        relationship_score: Optional[float] = None,
    ) -> Document:
        with self.store.transaction() as tx:
            relationship = find_relationship(tx, game_id, nation1_id, nation2_id)
            if not relationship:
                raise RelationshipNotFoundError(nation1_id, nation2_id)
            fields: Document = {"status": status}
            if relationship_score is not None:
                fields["relationship_score"] = clamp_score(relationship_score)
            tx.patch("relationships", relationship["id"], fields)
            return tx.get("relationships", relationship["id"])  # type: ignore[return-value]


def _game_nation(tx: StoreTransaction, game_id: str, nation_id: str) -> Document:
    """Nation ``nation_id`` if it belongs to ``game_id``"""
    nation = tx.get("nations", nation_id)
    if not nation or nation["game_id"] != game_id:
        raise NationNotFoundError(nation_id)
    return nation
