"""
Tests for the SQLite-backed document store.
"""

import pytest

from chronoflux.db.store import DocumentStore, now_ms


def _game(store, turn=1, **fields):
    now = now_ms()
    return store.insert(
        "games",
        {
            "scenario_id": "s1",
            "current_turn": turn,
            "status": "active",
            "created_at": now,
            "updated_at": now,
            **fields,
        },
    )


class TestDocumentStore:
    """CRUD and queries"""

    def test_insert_get(self, store):
        game_id = _game(store, player_id="p1")
        game = store.get("games", game_id)
        assert game["id"] == game_id
        assert game["player_id"] == "p1"
        assert game["current_turn"] == 1

    def test_insert_with_explicit_id(self, store):
        store.insert("settings", {"id": "AI_PROVIDER", "value": "ollama", "updated_at": 1})
        assert store.get("settings", "AI_PROVIDER")["value"] == "ollama"

    def test_get_missing(self, store):
        assert store.get("games", "nope") is None
        assert store.get("games", None) is None

    def test_patch_and_delete(self, store):
        game_id = _game(store)
        assert store.patch("games", game_id, {"status": "paused"})
        assert store.get("games", game_id)["status"] == "paused"
        assert store.delete("games", game_id)
        assert store.get("games", game_id) is None
        assert not store.patch("games", game_id, {"status": "active"})
        assert not store.delete("games", game_id)

    def test_json_columns_are_copies(self, store):
        nation_id = store.insert(
            "nations",
            {"game_id": "g", "name": "France", "resources": {"military": 70}},
        )
        doc = store.get("nations", nation_id)
        doc["resources"]["military"] = 0
        assert store.get("nations", nation_id)["resources"]["military"] == 70

    def test_query_where_filter_order(self, store):
        for turn in (3, 1, 2):
            _game(store, turn=turn, player_id="p1")
        _game(store, turn=9, player_id="p2")

        games = store.query("games").where(player_id="p1").order_by("current_turn").collect()
        assert [g["current_turn"] for g in games] == [1, 2, 3]

        high = (
            store.query("games")
            .where(player_id="p1")
            .filter(lambda g: g["current_turn"] > 1)
            .order_by("current_turn", descending=True)
            .take(1)
        )
        assert [g["current_turn"] for g in high] == [3]

    def test_unknown_collection(self, store):
        with pytest.raises(ValueError):
            store.get("dragons", "x")

    def test_recent_turns_newest_first(self, store):
        for n in range(2, 9):
            store.insert(
                "turns",
                {
                    "game_id": "g1",
                    "turn_number": n,
                    "player_action": f"action {n}",
                    "ai_response": {},
                    "timestamp": now_ms(),
                },
            )
        recent = store.recent_turns("g1", 5)
        assert [t["turn_number"] for t in recent] == [8, 7, 6, 5, 4]

    def test_in_memory_store(self):
        memory = DocumentStore(":memory:")
        game_id = _game(memory)
        assert memory.get("games", game_id) is not None


class TestTransactions:
    """Atomicity and the guarded turn advance"""

    def test_advance_turn_guard(self, store):
        game_id = _game(store)
        with store.transaction() as tx:
            assert tx.advance_turn(game_id, 1) is True
        with store.transaction() as tx:
            assert tx.advance_turn(game_id, 1) is False
        assert store.get("games", game_id)["current_turn"] == 2

    def test_advance_turn_sets_fields(self, store):
        game_id = _game(store)
        with store.transaction() as tx:
            tx.advance_turn(game_id, 1, {"history_summary": "The Empire endured."})
        assert store.get("games", game_id)["history_summary"] == "The Empire endured."

    def test_rollback_on_error(self, store):
        game_id = _game(store)
        with pytest.raises(RuntimeError):
            with store.transaction() as tx:
                tx.patch("games", game_id, {"status": "completed"})
                tx.insert(
                    "turns",
                    {
                        "game_id": game_id,
                        "turn_number": 2,
                        "player_action": "x",
                        "ai_response": {},
                        "timestamp": now_ms(),
                    },
                )
                raise RuntimeError("boom")

        assert store.get("games", game_id)["status"] == "active"
        assert store.query("turns").where(game_id=game_id).collect() == []

    def test_current_turn_reads_committed_value(self, store):
        game_id = _game(store, turn=4)
        with store.transaction() as tx:
            assert tx.current_turn(game_id) == 4
            assert tx.current_turn("missing") is None
