"""
Tests for the prompt builders.
"""

from chronoflux import prompts
from chronoflux.engine.prompt_builders import (
    build_action_interpretation_prompt,
    build_advisor_prompt,
    build_event_generation_prompt,
    build_summarization_prompt,
    format_relationships,
    format_turn_history,
)
from chronoflux.schemas.ai import ActionInterpretation
from chronoflux.schemas.world import (
    GameContext,
    KnownNation,
    RecentTurn,
    RelationshipView,
    Resources,
    WorldSnapshot,
)


def _turns(numbers):
    return [
        RecentTurn(
            turn_number=n,
            player_action=f"action {n}",
            narrative=f"narrative {n}",
            events=[{"title": f"event {n}", "description": "desc"}],
            world_state_changes={"military": -n},
        )
        for n in numbers
    ]


def _snapshot(**fields):
    defaults = dict(
        player_resources=Resources(military=90, economy=95, stability=80, influence=90),
        relationships=[RelationshipView(name="USSR", status="hostile", score=-60)],
        other_nations=[
            KnownNation(
                name="USSR",
                government="Communist State",
                resources=Resources(military=90, economy=60, stability=50, influence=80),
            )
        ],
    )
    defaults.update(fields)
    return WorldSnapshot(**defaults)


class TestFormatting:
    def test_relationships(self):
        assert format_relationships([]) == "  None"
        assert format_relationships(
            [RelationshipView(name="USSR", status="hostile", score=-60.0)]
        ) == "  - USSR: hostile (score: -60)"

    def test_history_oldest_first_last_five(self):
        history = format_turn_history(_turns([9, 3, 4, 5, 6, 7, 8]))
        assert "Turn 3:" not in history
        assert "Turn 4:" not in history
        assert history.index("Turn 5:") < history.index("Turn 9:")
        assert '{"military": -9}' in history

    def test_no_history(self):
        assert format_turn_history([]) == prompts.NO_PREVIOUS_TURNS


class TestBuilders:
    def test_action_interpretation(self):
        prompt = build_action_interpretation_prompt("USA", 1947, "Launch the Marshall Plan", _snapshot())
        assert "controlling USA in 1947" in prompt
        assert "Action: Launch the Marshall Plan" in prompt
        assert "Economy: 95" in prompt
        assert "USSR: hostile (score: -60)" in prompt
        assert "USSR (Communist State) [Military 90, Economy 60, Stability 50, Influence 80]" in prompt
        assert prompts.NO_SUMMARY in prompt

    def test_deterministic(self):
        first = build_action_interpretation_prompt("USA", 1947, "Wait", _snapshot())
        second = build_action_interpretation_prompt("USA", 1947, "Wait", _snapshot())
        assert first == second

    def test_event_generation(self):
        interpretation = ActionInterpretation(
            feasibility="low", immediate_consequences=["Panic", "Protests"]
        )
        prompt = build_event_generation_prompt(
            3,
            1949,
            "Blockade Berlin",
            interpretation,
            [KnownNation(name="USSR", government="Communist State"), KnownNation(name="USA")],
        )
        assert "Blockade Berlin" in prompt
        assert "Panic, Protests" in prompt
        assert "  - USSR (Communist State)" in prompt
        assert "  - USA (Unknown)" in prompt

    def test_summarization_starts_fresh(self):
        prompt = build_summarization_prompt("", _turns([1, 2]))
        assert prompts.SUMMARY_START in prompt
        assert "action 2" in prompt

    def test_advisor_lists_newest_first(self):
        context = GameContext(
            game_id="g",
            player_nation_id="n",
            player_nation_name="USA",
            current_year=1950,
            current_turn=4,
            world_state=_snapshot(turn_history=_turns([1, 2, 3])),
        )
        prompt = build_advisor_prompt("Should we worry?", context)
        assert prompt.index("action 3") < prompt.index("action 1")
        assert "Should we worry?" in prompt
        assert prompts.NO_SUMMARY_ADVISOR in prompt
        # Advisor omits other nations' resources
        assert "[Military 90" not in prompt
