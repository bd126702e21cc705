"""
Shared fixtures: a throwaway SQLite store and a seeded World War I game.
"""

import pytest

from chronoflux.db.store import DocumentStore
from chronoflux.engine.initializer import GameInitializer


@pytest.fixture
def store(tmp_path):
    return DocumentStore(str(tmp_path / "chronoflux-test.db"))


@pytest.fixture
def initializer(store):
    init = GameInitializer(store)
    init.seed_scenarios()
    return init


@pytest.fixture
def wwi_scenario(initializer):
    return next(s for s in initializer.list_scenarios() if s["name"] == "World War I")


@pytest.fixture
def wwi_game(initializer, wwi_scenario):
    """Game id of a fresh World War I game played as Germany"""
    return initializer.create_game(wwi_scenario["id"], "germany", player_id="player-1")
