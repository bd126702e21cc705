"""
Tests for the world-state reconciler.
"""

from unittest.mock import patch

import pytest

from chronoflux.db.store import StoreTransaction
from chronoflux.engine.json_extractor import parse_model
from chronoflux.engine.reconciler import (
    PLACEHOLDER_NARRATIVE,
    WorldStateReconciler,
    apply_relationship_change,
    find_relationship,
)
from chronoflux.errors import (
    ConcurrentTurnConflictError,
    GameNotFoundError,
    PlayerNationUnsetError,
)
from chronoflux.schemas.ai import (
    ActionInterpretation,
    EventSpec,
    MergedTurnPayload,
    NewNationSpec,
    RelationshipChange,
)
from chronoflux.schemas.world import Resources
from chronoflux.tests.fakes import nation_by_name


def _payload(**fields):
    defaults = {
        "feasibility": "high",
        "narrative": "Germany mobilizes.",
        "consequences": "Troops mass on the border",
    }
    defaults.update(fields)
    return MergedTurnPayload(**defaults)


class TestResourceReconciliation:
    """Player resource deltas are added then clamped"""

    def test_delta_applied(self, store, wwi_game):
        reconciler = WorldStateReconciler(store)
        summary = reconciler.reconcile(
            wwi_game, "Mobilize", _payload(resource_changes={"military": -5, "stability": -3})
        )

        germany = nation_by_name(store, wwi_game, "Germany")
        assert germany["resources"] == {
            "military": 75,
            "economy": 70,
            "stability": 57,
            "influence": 70,
        }
        assert summary.turn_number == 2
        assert store.get("games", wwi_game)["current_turn"] == 2

    def test_clamped_high_and_low(self, store, wwi_game):
        WorldStateReconciler(store).reconcile(
            wwi_game, "All in", _payload(resource_changes={"military": 500, "economy": -500})
        )
        germany = nation_by_name(store, wwi_game, "Germany")
        assert germany["resources"]["military"] == 100
        assert germany["resources"]["economy"] == 0

    def test_nation_updates_skip_player(self, store, wwi_game):
        WorldStateReconciler(store).reconcile(
            wwi_game,
            "Wait",
            _payload(
                nation_updates={
                    "France": {"military": 10},
                    "Germany": {"military": 10},
                }
            ),
        )
        assert nation_by_name(store, wwi_game, "France")["resources"]["military"] == 80
        assert nation_by_name(store, wwi_game, "Germany")["resources"]["military"] == 80


class TestRelationshipReconciliation:
    """Relationship scores move per change and clamp at every step"""

    def test_created_when_missing(self, store, wwi_game):
        summary = WorldStateReconciler(store).reconcile(
            wwi_game,
            "Insult France",
            _payload(
                relationship_changes=[
                    RelationshipChange(nation1="Germany", nation2="France", score_change=-30, status_change="hostile")
                ]
            ),
        )
        germany = nation_by_name(store, wwi_game, "Germany")
        france = nation_by_name(store, wwi_game, "France")
        with store.transaction() as tx:
            rel = find_relationship(tx, wwi_game, france["id"], germany["id"])
        assert rel["relationship_score"] == -30
        assert rel["status"] == "hostile"
        assert summary.created_nations == []

    def test_clamped_per_step(self, store, wwi_game):
        changes = [
            RelationshipChange(nation1="Germany", nation2="France", score_change=-80),
            RelationshipChange(nation1="France", nation2="Germany", score_change=-80),
            RelationshipChange(nation1="Germany", nation2="France", score_change=50),
        ]
        WorldStateReconciler(store).reconcile(
            wwi_game, "Escalate", _payload(relationship_changes=changes)
        )
        rels = store.query("relationships").where(game_id=wwi_game).collect()
        # -80 -> -100 (clamped) -> -50, not -110 + 50 = -60
        assert len(rels) == 1
        assert rels[0]["relationship_score"] == -50

    def test_symmetric_lookup(self, store, wwi_game):
        germany = nation_by_name(store, wwi_game, "Germany")
        russia = nation_by_name(store, wwi_game, "Russia")
        with store.transaction() as tx:
            apply_relationship_change(tx, wwi_game, russia["id"], germany["id"], 10, "allied")
        with store.transaction() as tx:
            updated = apply_relationship_change(tx, wwi_game, germany["id"], russia["id"], 15)
        assert updated["relationship_score"] == 25
        assert updated["status"] == "allied"
        assert len(store.query("relationships").where(game_id=wwi_game).collect()) == 1

    def test_self_relationship_skipped(self, store, wwi_game):
        WorldStateReconciler(store).reconcile(
            wwi_game,
            "Navel gaze",
            _payload(
                relationship_changes=[
                    RelationshipChange(nation1="Germany", nation2="Germany", score_change=10)
                ]
            ),
        )
        assert store.query("relationships").where(game_id=wwi_game).collect() == []


class TestNationAutoCreation:
    """Unknown nation names are created once per turn"""

    def test_created_once_across_mentions(self, store, wwi_game):
        summary = WorldStateReconciler(store).reconcile(
            wwi_game,
            "Court the Ottomans",
            _payload(
                relationship_changes=[
                    RelationshipChange(nation1="Germany", nation2="Ottoman Empire", score_change=20)
                ],
                events=[
                    EventSpec(
                        type="diplomatic",
                        title="Ottoman Envoy",
                        affected_nations=["Ottoman Empire", "Germany", "Ottoman Empire"],
                    )
                ],
                nation_updates={"Ottoman Empire": {"influence": 5}},
                new_nations={
                    "Ottoman Empire": NewNationSpec(
                        government="Sultanate",
                        territories=["Anatolia"],
                        resources=Resources(military=55, economy=35, stability=30, influence=45),
                    )
                },
            ),
        )

        ottomans = store.query("nations").where(game_id=wwi_game, name="Ottoman Empire").collect()
        assert len(ottomans) == 1
        ottoman = ottomans[0]
        assert ottoman["government"] == "Sultanate"
        assert ottoman["territories"] == ["Anatolia"]
        assert ottoman["resources"]["influence"] == 50
        assert ottoman["is_player_controlled"] is False
        assert summary.created_nations == [ottoman["id"]]

        germany = nation_by_name(store, wwi_game, "Germany")
        assert summary.events[0].affected_nations == [ottoman["id"], germany["id"]]

    def test_defaults_without_attributes(self, store, wwi_game):
        WorldStateReconciler(store).reconcile(
            wwi_game,
            "Hello",
            _payload(events=[EventSpec(title="Contact", affected_nations=["Atlantis"])]),
        )
        atlantis = nation_by_name(store, wwi_game, "Atlantis")
        assert atlantis["government"] == "Unknown"
        assert atlantis["resources"] == Resources().to_document()


class TestTurnRecord:
    def test_turn_and_events_persisted(self, store, wwi_game):
        summary = WorldStateReconciler(store).reconcile(
            wwi_game,
            "Mobilize",
            _payload(
                resource_changes={"military": -5},
                events=[EventSpec(type="military", title="Mobilization", affected_nations=["France"])],
                history_summary="Europe teeters on the brink.",
            ),
        )

        turns = store.query("turns").where(game_id=wwi_game).collect()
        assert len(turns) == 1
        turn = turns[0]
        assert turn["id"] == summary.turn_id
        assert turn["turn_number"] == 2
        assert turn["player_action"] == "Mobilize"
        assert turn["ai_response"]["narrative"] == "Germany mobilizes."
        assert turn["ai_response"]["world_state_changes"] == {"military": -5}
        assert turn["ai_response"]["events"][0]["title"] == "Mobilization"

        events = store.query("events").where(game_id=wwi_game).collect()
        assert len(events) == 1
        assert events[0]["turn_number"] == 2
        assert events[0]["affected_nations"] == [nation_by_name(store, wwi_game, "France")["id"]]

        assert store.get("games", wwi_game)["history_summary"] == "Europe teeters on the brink."

    def test_missing_game(self, store):
        with pytest.raises(GameNotFoundError):
            WorldStateReconciler(store).reconcile("missing", "x", _payload())

    def test_player_nation_unset(self, store, wwi_game):
        store.patch("games", wwi_game, {"player_nation_id": None})
        with pytest.raises(PlayerNationUnsetError):
            WorldStateReconciler(store).reconcile(wwi_game, "x", _payload())


class TestConcurrency:
    """The turn counter guard rejects stale payloads and rolls back"""

    def test_stale_expected_turn(self, store, wwi_game):
        reconciler = WorldStateReconciler(store)
        reconciler.reconcile(wwi_game, "First", _payload(), expected_turn=1)

        with pytest.raises(ConcurrentTurnConflictError) as exc_info:
            reconciler.reconcile(
                wwi_game, "Second", _payload(resource_changes={"military": -5}), expected_turn=1
            )

        assert exc_info.value.expected_turn == 1
        assert exc_info.value.actual_turn == 2
        assert store.get("games", wwi_game)["current_turn"] == 2
        assert len(store.query("turns").where(game_id=wwi_game).collect()) == 1
        assert nation_by_name(store, wwi_game, "Germany")["resources"]["military"] == 80

    def test_failed_advance_rolls_back_everything(self, store, wwi_game):
        payload = _payload(
            resource_changes={"military": -5},
            events=[EventSpec(title="Ghost", affected_nations=["Atlantis"])],
            relationship_changes=[
                RelationshipChange(nation1="Germany", nation2="France", score_change=-10)
            ],
        )
        with patch.object(StoreTransaction, "advance_turn", return_value=False):
            with pytest.raises(ConcurrentTurnConflictError):
                WorldStateReconciler(store).reconcile(wwi_game, "Mobilize", payload)

        assert store.get("games", wwi_game)["current_turn"] == 1
        assert nation_by_name(store, wwi_game, "Germany")["resources"]["military"] == 80
        assert nation_by_name(store, wwi_game, "Atlantis") is None
        assert store.query("turns").where(game_id=wwi_game).collect() == []
        assert store.query("events").where(game_id=wwi_game).collect() == []
        assert store.query("relationships").where(game_id=wwi_game).collect() == []


class TestNonFiniteDeltas:
    """Deltas the model gives as NaN or Infinity count as 0"""

    def _reconcile(self, store, game_id, raw):
        interpretation = parse_model(raw, ActionInterpretation)
        payload = _payload(
            resource_changes=interpretation.resource_changes,
            relationship_changes=interpretation.relationship_changes,
        )
        return WorldStateReconciler(store).reconcile(game_id, "Gamble", payload)

    def test_nan_literal_and_string(self, store, wwi_game):
        raw = '{"resource_changes": {"military": NaN, "economy": "nan", "stability": -3}}'
        summary = self._reconcile(store, wwi_game, raw)

        assert summary.resource_changes == {"stability": -3}
        germany = nation_by_name(store, wwi_game, "Germany")
        assert germany["resources"] == {
            "military": 80,
            "economy": 70,
            "stability": 57,
            "influence": 70,
        }

    def test_infinity(self, store, wwi_game):
        raw = '{"resource_changes": {"military": Infinity, "economy": -Infinity, "influence": "inf"}}'
        self._reconcile(store, wwi_game, raw)

        germany = nation_by_name(store, wwi_game, "Germany")
        assert germany["resources"]["military"] == 80
        assert germany["resources"]["economy"] == 70
        assert germany["resources"]["influence"] == 70

    def test_nan_score_change(self, store, wwi_game):
        raw = (
            '{"relationship_changes": [{"nation1": "Germany", "nation2": "France", '
            '"scoreChange": NaN, "statusChange": "hostile"}]}'
        )
        self._reconcile(store, wwi_game, raw)

        rels = store.query("relationships").where(game_id=wwi_game).collect()
        assert [r["relationship_score"] for r in rels] == [0]
        assert rels[0]["status"] == "hostile"

    def test_nation_updates_and_new_nation_resources(self, store, wwi_game):
        WorldStateReconciler(store).reconcile(
            wwi_game,
            "Wait",
            _payload(
                nation_updates={"France": {"military": float("nan")}},
                new_nations={
                    "Serbia": NewNationSpec.model_validate(
                        {"resources": {"military": "nan", "economy": 30}}
                    )
                },
                events=[EventSpec(title="Balkan Crisis", affected_nations=["Serbia"])],
            ),
        )

        assert nation_by_name(store, wwi_game, "France")["resources"]["military"] == 80
        serbia = nation_by_name(store, wwi_game, "Serbia")
        assert serbia["resources"]["military"] == 50
        assert serbia["resources"]["economy"] == 30


class TestOfflineSubmitTurn:
    def test_placeholder_turn(self, store, wwi_game):
        result = WorldStateReconciler(store).submit_turn(wwi_game, "Build railways")

        assert result == {"success": True, "turn_number": 2}
        turn = store.query("turns").where(game_id=wwi_game).first()
        assert turn["ai_response"]["narrative"] == PLACEHOLDER_NARRATIVE
        assert turn["ai_response"]["events"] == []
        assert store.get("games", wwi_game)["current_turn"] == 2
        assert nation_by_name(store, wwi_game, "Germany")["resources"]["military"] == 80

    def test_missing_game(self, store):
        with pytest.raises(GameNotFoundError):
            WorldStateReconciler(store).submit_turn("missing", "x")
