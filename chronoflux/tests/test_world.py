"""
Tests for world-state reads, manual edits and the advisor.
"""

import time

import pytest

from chronoflux import prompts
from chronoflux.engine.advisor import Advisor
from chronoflux.engine.reconciler import WorldStateReconciler
from chronoflux.engine.world import WorldService
from chronoflux.errors import (
    ConnectivityError,
    GameNotFoundError,
    NationNotFoundError,
    RelationshipNotFoundError,
)
from chronoflux.schemas.world import Resources
from chronoflux.tests.fakes import FakeProvider, nation_by_name


@pytest.fixture
def world(store):
    return WorldService(store)


class TestGames:
    def test_world_state(self, world, wwi_game):
        state = world.get_world_state(wwi_game)
        assert state["game"]["id"] == wwi_game
        assert state["scenario"]["name"] == "World War I"
        assert state["scenario"]["start_year"] == 1914
        assert len(state["nations"]) == 5
        assert state["player_nation"]["name"] == "Germany"
        assert state["relationships"] == []

    def test_world_state_missing(self, world):
        with pytest.raises(GameNotFoundError):
            world.get_world_state("missing")

    def test_list_games_for_user_newest_first(self, store, world, initializer, wwi_scenario):
        first = initializer.create_game(wwi_scenario["id"], "germany", player_id="alice")
        time.sleep(0.01)
        second = initializer.create_game(wwi_scenario["id"], "france", player_id="alice")
        initializer.create_game(wwi_scenario["id"], "uk", player_id="bob")

        assert [g["id"] for g in world.list_games_for_user("alice")] == [second, first]

        time.sleep(0.01)
        store.patch("games", first, {"updated_at": int(time.time() * 1000)})
        assert [g["id"] for g in world.list_games_for_user("alice")] == [first, second]

    def test_update_player_id(self, world, wwi_game):
        assert world.update_game_player_id(wwi_game, "carol")["player_id"] == "carol"
        with pytest.raises(GameNotFoundError):
            world.update_game_player_id("missing", "carol")

    def test_list_turns_descending(self, store, world, wwi_game):
        reconciler = WorldStateReconciler(store)
        for action in ("one", "two", "three"):
            reconciler.submit_turn(wwi_game, action)

        assert [t["turn_number"] for t in world.list_turns(wwi_game)] == [4, 3, 2]


class TestNationEdits:
    def test_update_resources_clamps_after_add(self, store, world, wwi_game):
        germany = nation_by_name(store, wwi_game, "Germany")
        updated = world.update_nation_resources(
            wwi_game, germany["id"], {"military": 30, "economy": -5}
        )
        assert updated["resources"]["military"] == 100
        assert updated["resources"]["economy"] == 65

    def test_set_resources_clamps(self, store, world, wwi_game):
        germany = nation_by_name(store, wwi_game, "Germany")
        updated = world.set_nation_resources(
            wwi_game, germany["id"], Resources(military=-10, economy=40, stability=120, influence=55.5)
        )
        assert updated["resources"] == {
            "military": 0,
            "economy": 40,
            "stability": 100,
            "influence": 55.5,
        }

    def test_missing_nation(self, world, wwi_game):
        with pytest.raises(NationNotFoundError):
            world.update_nation_resources(wwi_game, "missing", {"military": 1})

    def test_nation_from_other_game_rejected(self, store, world, initializer, wwi_game, wwi_scenario):
        other_game = initializer.create_game(wwi_scenario["id"], "france")
        germany = nation_by_name(store, wwi_game, "Germany")

        with pytest.raises(NationNotFoundError):
            world.update_nation_resources(other_game, germany["id"], {"military": -30})
        with pytest.raises(NationNotFoundError):
            world.set_nation_resources(other_game, germany["id"], Resources(military=1))
        assert nation_by_name(store, wwi_game, "Germany")["resources"]["military"] == 80

    def test_non_finite_values_ignored(self, store, world, wwi_game):
        germany = nation_by_name(store, wwi_game, "Germany")
        updated = world.update_nation_resources(
            wwi_game, germany["id"], {"military": float("nan"), "economy": float("inf")}
        )
        assert updated["resources"]["military"] == 80
        assert updated["resources"]["economy"] == 70


class TestRelationshipEdits:
    @pytest.fixture
    def pair(self, store, wwi_game):
        germany = nation_by_name(store, wwi_game, "Germany")
        austria = nation_by_name(store, wwi_game, "Austria-Hungary")
        store.insert(
            "relationships",
            {
                "game_id": wwi_game,
                "nation1_id": austria["id"],
                "nation2_id": germany["id"],
                "status": "allied",
                "relationship_score": 90,
            },
        )
        return germany["id"], austria["id"]

    def test_update_score_either_order(self, world, wwi_game, pair):
        germany_id, austria_id = pair
        updated = world.update_relationship_score(wwi_game, germany_id, austria_id, 25)
        assert updated["relationship_score"] == 100
        assert updated["status"] == "allied"

        updated = world.update_relationship_score(
            wwi_game, austria_id, germany_id, -150, new_status="hostile"
        )
        assert updated["relationship_score"] == -50
        assert updated["status"] == "hostile"

    def test_set_status(self, world, wwi_game, pair):
        germany_id, austria_id = pair
        updated = world.set_relationship_status(
            wwi_game, germany_id, austria_id, "neutral", relationship_score=-300
        )
        assert updated["status"] == "neutral"
        assert updated["relationship_score"] == -100

    def test_missing_relationship(self, store, world, wwi_game):
        germany = nation_by_name(store, wwi_game, "Germany")
        france = nation_by_name(store, wwi_game, "France")
        with pytest.raises(RelationshipNotFoundError):
            world.update_relationship_score(wwi_game, germany["id"], france["id"], 5)


class TestAdvisor:
    @pytest.mark.asyncio
    async def test_answer(self, store, wwi_game):
        provider = FakeProvider(["  Your army is strong, my liege.  "])
        answer = await Advisor(store, provider).ask(wwi_game, "How strong is our army?")

        assert answer == "Your army is strong, my liege."
        prompt = provider.calls[0]["prompt"]
        assert prompt.startswith("You are the Royal Advisor to the leader of Germany")
        assert "How strong is our army?" in prompt
        assert provider.calls[0]["temperature"] == 0.7

    @pytest.mark.asyncio
    async def test_fallback_on_provider_failure(self, store, wwi_game):
        provider = FakeProvider([RuntimeError("model crashed")])
        answer = await Advisor(store, provider).ask(wwi_game, "Any news?")
        assert answer == prompts.ADVISOR_FALLBACK

    @pytest.mark.asyncio
    async def test_connectivity_propagates(self, store, wwi_game):
        provider = FakeProvider([ConnectivityError("Could not connect to Ollama")])
        with pytest.raises(ConnectivityError):
            await Advisor(store, provider).ask(wwi_game, "Any news?")

    @pytest.mark.asyncio
    async def test_missing_game(self, store):
        with pytest.raises(GameNotFoundError):
            await Advisor(store, FakeProvider()).ask("missing", "Hello?")
