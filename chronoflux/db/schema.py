"""
Database schema definitions using SQLAlchemy.

Each table backs one document collection of the store. Nested values
(resources, territories, AI responses, scenario world state) are JSON columns,
so a row converts to a plain dict one-to-one.
"""

# mypy: ignore-errors

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    Float,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Scenario(Base):
    """
    Scenario templates a game is created from.

    Attributes:
        id: Unique scenario identifier (UUID)
        name: Human-readable scenario name
        description: Short description
        historical_period: Period label ("Early 20th Century")
        start_year: First in-game year, negative for BCE
        ai_context: Free-text hint for the model
        initial_world_state: Seed nations, relationships and global events
        is_user_created: Only user scenarios may be deleted
    """

    __tablename__ = "scenarios"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    historical_period = Column(String, nullable=False, default="")
    start_year = Column(Integer, nullable=False)
    ai_context = Column(Text, nullable=False, default="")
    initial_world_state = Column(JSON, nullable=False, default=dict)
    is_user_created = Column(Boolean, nullable=False, default=False)


class Game(Base):
    """
    One simulation instance.

    Attributes:
        id: Unique game identifier (UUID)
        scenario_id: Scenario the game was created from
        player_id: Owning player (optional)
        player_nation_id: Player-controlled nation, set once the world is seeded
        current_turn: Turn counter, starts at 1 and only moves forward
        status: active, paused or completed
        history_summary: Periodically regenerated narrative summary
        created_at: Creation time in epoch milliseconds
        updated_at: Last update in epoch milliseconds
    """

    __tablename__ = "games"

    id = Column(String, primary_key=True)
    scenario_id = Column(String, nullable=False)
    player_id = Column(String, nullable=True, index=True)
    player_nation_id = Column(String, nullable=True)
    current_turn = Column(Integer, nullable=False, default=1)
    status = Column(String, nullable=False, default="active")
    history_summary = Column(Text, nullable=False, default="")
    created_at = Column(BigInteger, nullable=False)
    updated_at = Column(BigInteger, nullable=False)


class Nation(Base):
    """Nation belonging to exactly one game"""

    __tablename__ = "nations"

    id = Column(String, primary_key=True)
    game_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    government = Column(String, nullable=False, default="Unknown")
    resources = Column(JSON, nullable=False, default=dict)
    territories = Column(JSON, nullable=False, default=list)
    is_player_controlled = Column(Boolean, nullable=False, default=False)


class Relationship(Base):
    """Relationship between an unordered pair of nations"""

    __tablename__ = "relationships"

    id = Column(String, primary_key=True)
    game_id = Column(String, nullable=False, index=True)
    nation1_id = Column(String, nullable=False)
    nation2_id = Column(String, nullable=False)
    status = Column(String, nullable=False, default="neutral")
    trade_agreements = Column(Boolean, nullable=False, default=False)
    military_alliance = Column(Boolean, nullable=False, default=False)
    relationship_score = Column(Float, nullable=False, default=0)


class Turn(Base):
    """Append-only log of resolved turns"""

    __tablename__ = "turns"
    __table_args__ = (Index("by_game_id", "game_id", "turn_number"),)

    id = Column(String, primary_key=True)
    game_id = Column(String, nullable=False)
    turn_number = Column(Integer, nullable=False)
    player_action = Column(Text, nullable=False)
    ai_response = Column(JSON, nullable=False, default=dict)
    timestamp = Column(BigInteger, nullable=False)


class Event(Base):
    """Standalone copy of each event embedded in a turn"""

    __tablename__ = "events"

    id = Column(String, primary_key=True)
    game_id = Column(String, nullable=False, index=True)
    turn_number = Column(Integer, nullable=False)
    type = Column(String, nullable=False, default="other")
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    affected_nations = Column(JSON, nullable=False, default=list)
    impact = Column(JSON, nullable=False, default=dict)


class Setting(Base):
    """Key-value settings (AI provider selection, endpoints, keys)"""

    __tablename__ = "settings"

    id = Column(String, primary_key=True)
    value = Column(Text, nullable=False, default="")
    updated_at = Column(BigInteger, nullable=False)


COLLECTIONS = {
    "scenarios": Scenario,
    "games": Game,
    "nations": Nation,
    "relationships": Relationship,
    "turns": Turn,
    "events": Event,
    "settings": Setting,
}
