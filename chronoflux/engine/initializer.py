"""
Game initializer for scenarios and game lifecycle.

This module seeds the built-in scenarios, creates games from a scenario's
initial world state and tears games down again, including every row that
belongs to them.
"""

from typing import Any, Dict, List, Optional

from chronoflux.db.store import Document, DocumentStore, now_ms
from chronoflux.errors import (
    GameNotFoundError,
    NationNotFoundError,
    ScenarioInUseError,
    ScenarioNotFoundError,
    ScenarioProtectedError,
)
from chronoflux.schemas.world import InitialWorldState, ScenarioSpec, clamp_score
from chronoflux.utils.logger import get_logger

logger = get_logger(__name__)


BUILT_IN_SCENARIOS: List[Dict[str, Any]] = [
    {
        "name": "World War I",
        "description": "The Great War begins in Europe.",
        "historical_period": "Early 20th Century",
        "start_year": 1914,
        "ai_context": "Europe is a powder keg. Alliances are rigid. Nationalism is high.",
        "initial_world_state": {
            "nations": [
                {
                    "id": "germany",
                    "name": "Germany",
                    "government": "Empire",
                    "resources": {"military": 80, "economy": 70, "stability": 60, "influence": 70},
                    "territories": ["Germany"],
                },
                {
                    "id": "france",
                    "name": "France",
                    "government": "Republic",
                    "resources": {"military": 70, "economy": 60, "stability": 50, "influence": 60},
                    "territories": ["France"],
                },
                {
                    "id": "russia",
                    "name": "Russia",
                    "government": "Empire",
                    "resources": {"military": 60, "economy": 40, "stability": 30, "influence": 50},
                    "territories": ["Russia"],
                },
                {
                    "id": "uk",
                    "name": "United Kingdom",
                    "government": "Monarchy",
                    "resources": {"military": 90, "economy": 80, "stability": 80, "influence": 90},
                    "territories": ["UK"],
                },
                {
                    "id": "austria",
                    "name": "Austria-Hungary",
                    "government": "Empire",
                    "resources": {"military": 50, "economy": 40, "stability": 20, "influence": 40},
                    "territories": ["Austria"],
                },
            ],
            "relationships": [],
            "global_events": ["Assassination of Archduke Franz Ferdinand"],
        },
    },
    {
        "name": "Cold War",
        "description": "The world is divided between East and West.",
        "historical_period": "Post-WWII",
        "start_year": 1947,
        "ai_context": "The Iron Curtain has descended. Nuclear proliferation is a threat.",
        "initial_world_state": {
            "nations": [
                {
                    "id": "usa",
                    "name": "USA",
                    "government": "Democracy",
                    "resources": {"military": 90, "economy": 95, "stability": 80, "influence": 90},
                    "territories": ["USA"],
                },
                {
                    "id": "ussr",
                    "name": "USSR",
                    "government": "Communist State",
                    "resources": {"military": 90, "economy": 60, "stability": 50, "influence": 80},
                    "territories": ["USSR"],
                },
            ],
            "relationships": [],
            "global_events": ["Truman Doctrine"],
        },
    },
    {
        "name": "Ancient Rome",
        "description": "The Republic is crumbling.",
        "historical_period": "Antiquity",
        "start_year": -44,
        "ai_context": "Caesar has been assassinated. Civil war looms.",
        "initial_world_state": {
            "nations": [
                {
                    "id": "rome_octavian",
                    "name": "Rome (Octavian)",
                    "government": "Republic",
                    "resources": {"military": 70, "economy": 60, "stability": 40, "influence": 70},
                    "territories": ["Italy"],
                },
                {
                    "id": "rome_antony",
                    "name": "Rome (Antony)",
                    "government": "Republic",
                    "resources": {"military": 70, "economy": 50, "stability": 40, "influence": 60},
                    "territories": ["Egypt"],
                },
            ],
            "relationships": [],
            "global_events": ["Ides of March"],
        },
    },
    {
        "name": "Custom",
        "description": "A blank slate for your own history.",
        "historical_period": "Custom",
        "start_year": 2000,
        "ai_context": "A custom scenario.",
        "initial_world_state": {"nations": [], "relationships": [], "global_events": []},
    },
]


class GameInitializer:
    """
    Creates and removes scenarios and games.

    Attributes:
        store: Document store all rows are written to
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    # ==================== Scenarios ====================

    def seed_scenarios(self) -> str:
        """Insert the built-in scenarios unless any scenario exists already"""
        if self.store.query("scenarios").first():
            return "Scenarios already seeded"

        with self.store.transaction() as tx:
            for scenario in BUILT_IN_SCENARIOS:
                tx.insert("scenarios", {**scenario, "is_user_created": False})

        logger.info(f"✓ Seeded {len(BUILT_IN_SCENARIOS)} built-in scenarios")
        return "Scenarios seeded"

    def list_scenarios(self) -> List[Document]:
        return self.store.query("scenarios").collect()

    def get_scenario(self, scenario_id: str) -> Document:
        scenario = self.store.get("scenarios", scenario_id)
        if not scenario:
            raise ScenarioNotFoundError(scenario_id)
        return scenario

    def create_or_update_scenario(self, spec: ScenarioSpec) -> Document:
        """
        Upsert a user scenario keyed by name, period and start year.

        Returns:
            The stored scenario document
        """
        fields = {
            "name": spec.name,
            "description": spec.description,
            "historical_period": spec.period,
            "start_year": spec.start_year,
            "initial_world_state": spec.initial_world_state.model_dump(),
            "ai_context": spec.ai_context,
        }
        with self.store.transaction() as tx:
            existing = (
                tx.query("scenarios")
                .where(
                    name=spec.name,
                    historical_period=spec.period,
                    start_year=spec.start_year,
                )
                .first()
            )
            if existing:
                tx.patch("scenarios", existing["id"], fields)
                scenario_id = existing["id"]
                logger.info(f"Updated scenario '{spec.name}' ({scenario_id})")
            else:
                scenario_id = tx.insert("scenarios", {**fields, "is_user_created": True})
                logger.info(f"Created scenario '{spec.name}' ({scenario_id})")
        return self.get_scenario(scenario_id)

    def delete_scenario(self, scenario_id: str) -> Dict[str, bool]:
        """Delete a user-created scenario that no unfinished game uses"""
        with self.store.transaction() as tx:
            scenario = tx.get("scenarios", scenario_id)
            if not scenario:
                raise ScenarioNotFoundError(scenario_id)
            if not scenario["is_user_created"]:
                raise ScenarioProtectedError()

            in_use = (
                tx.query("games")
                .where(scenario_id=scenario_id)
                .filter(lambda g: g["status"] != "completed")
                .first()
            )
            if in_use:
                raise ScenarioInUseError()

            tx.delete("scenarios", scenario_id)

        logger.info(f"Deleted scenario {scenario_id}")
        return {"success": True}

    # ==================== Games ====================

    def create_game(
        self,
        scenario_id: str,
        player_nation_key: str,
        player_id: Optional[str] = None,
    ) -> str:
        """
        Create a game and its nations and relationships from a scenario.

        Args:
            scenario_id: Scenario to start from
            player_nation_key: Scenario-local id of the nation the player controls
            player_id: Optional owning player

        Returns:
            The new game id

        Raises:
            ScenarioNotFoundError: scenario does not exist
            NationNotFoundError: the scenario has no nation with that key
        """
        with self.store.transaction() as tx:
            scenario = tx.get("scenarios", scenario_id)
            if not scenario:
                raise ScenarioNotFoundError(scenario_id)

            world = InitialWorldState.model_validate(scenario.get("initial_world_state") or {})
            now = now_ms()
            game_id = tx.insert(
                "games",
                {
                    "scenario_id": scenario_id,
                    "player_id": player_id,
                    "current_turn": 1,
                    "status": "active",
                    "history_summary": "",
                    "created_at": now,
                    "updated_at": now,
                },
            )

            nation_ids: Dict[str, str] = {}
            player_nation_id = None
            for seed in world.nations:
                is_player = seed.id == player_nation_key
                nation_id = tx.insert(
                    "nations",
                    {
                        "game_id": game_id,
                        "name": seed.name,
                        "government": seed.government,
                        "resources": seed.resources.clamped().to_document(),
                        "territories": list(seed.territories),
                        "is_player_controlled": is_player,
                    },
                )
                nation_ids[seed.id] = nation_id
                if is_player:
                    player_nation_id = nation_id

            for rel in world.relationships:
                nation1_id = nation_ids.get(rel.nation1_id)
                nation2_id = nation_ids.get(rel.nation2_id)
                if not nation1_id or not nation2_id or nation1_id == nation2_id:
                    continue
                tx.insert(
                    "relationships",
                    {
                        "game_id": game_id,
                        "nation1_id": nation1_id,
                        "nation2_id": nation2_id,
                        "status": rel.status,
                        "trade_agreements": rel.trade_agreements,
                        "military_alliance": rel.military_alliance,
                        "relationship_score": clamp_score(rel.relationship_score),
                    },
                )

            if not player_nation_id:
                raise NationNotFoundError(
                    f"{player_nation_key} (not in scenario initial world state)"
                )

            tx.patch(
                "games",
                game_id,
                {"player_nation_id": player_nation_id, "updated_at": now_ms()},
            )

        logger.info(
            f"✓ Created game {game_id} from scenario '{scenario['name']}'",
            extra={
                "component": "Initializer",
                "game_id": game_id,
                "nations": len(nation_ids),
                "player_nation": player_nation_key,
            },
        )
        return game_id

    def delete_game(self, game_id: str) -> Dict[str, bool]:
        """Delete a game with its relationships, turns, events and nations"""
        with self.store.transaction() as tx:
            if not tx.get("games", game_id):
                raise GameNotFoundError(game_id)

            counts = {}
            for collection in ("relationships", "turns", "events", "nations"):
                rows = tx.query(collection).where(game_id=game_id).collect()
                for row in rows:
                    tx.delete(collection, row["id"])
                counts[collection] = len(rows)

            tx.delete("games", game_id)

        logger.info(
            f"Deleted game {game_id}",
            extra={"component": "Initializer", "game_id": game_id, "deleted": counts},
        )
        return {"success": True}
