"""
Prompt builders for the turn pipeline.

Pure functions rendering a world snapshot into the prompt strings defined in
``chronoflux.prompts``. No I/O; identical inputs give identical prompts.
"""

import json
from typing import List, Optional, Sequence

from chronoflux import prompts
from chronoflux.schemas.ai import ActionInterpretation
from chronoflux.schemas.world import (
    RESOURCE_KEYS,
    GameContext,
    KnownNation,
    RecentTurn,
    RelationshipView,
    Resources,
    WorldSnapshot,
)

HISTORY_WINDOW = 5


def _num(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _resource_fields(resources: Resources) -> dict:
    return {key: _num(getattr(resources, key)) for key in RESOURCE_KEYS}


def _resource_snippet(resources: Optional[Resources]) -> str:
    if resources is None:
        return ""
    parts = [f"{key.capitalize()} {_num(getattr(resources, key))}" for key in RESOURCE_KEYS]
    return " [" + ", ".join(parts) + "]"


def format_relationships(relationships: Sequence[RelationshipView]) -> str:
    if not relationships:
        return "  None"
    return "\n".join(
        f"  - {r.name}: {r.status} (score: {_num(r.score)})" for r in relationships
    )


def format_other_nations(nations: Sequence[KnownNation], with_resources: bool = True) -> str:
    if not nations:
        return "  None"
    lines = []
    for nation in nations:
        snippet = _resource_snippet(nation.resources) if with_resources else ""
        lines.append(f"  - {nation.name} ({nation.government}){snippet}")
    return "\n".join(lines)


def format_turn_history(turns: Sequence[RecentTurn]) -> str:
    """Render turns oldest first with outcome, events and resource changes"""
    if not turns:
        return prompts.NO_PREVIOUS_TURNS
    ordered = sorted(turns, key=lambda t: t.turn_number)[-HISTORY_WINDOW:]
    entries = []
    for turn in ordered:
        events = "".join(
            f"\n    - {e.get('title', '')}: {e.get('description', '')}" for e in turn.events
        )
        entries.append(
            prompts.TURN_HISTORY_ENTRY.format(
                turn_number=turn.turn_number,
                action=turn.player_action,
                narrative=turn.narrative,
                consequences=turn.consequences,
                events=events,
                resource_changes=json.dumps(turn.world_state_changes or {}),
            )
        )
    return "\n".join(entries)


def _summary_history(turns: Sequence[RecentTurn]) -> str:
    if not turns:
        return prompts.NO_PREVIOUS_TURNS
    return "\n".join(
        prompts.SUMMARY_HISTORY_ENTRY.format(
            turn_number=turn.turn_number,
            action=turn.player_action,
            narrative=turn.narrative,
            events=", ".join(e.get("title", "") for e in turn.events),
        )
        for turn in turns
    )


def build_action_interpretation_prompt(
    player_nation_name: str,
    current_year: int,
    action: str,
    world_state: WorldSnapshot,
) -> str:
    """Stage one prompt: feasibility, consequences and deltas for the action"""
    return prompts.ACTION_INTERPRETATION.format(
        player_nation=player_nation_name,
        current_year=current_year,
        action=action,
        relationships=format_relationships(world_state.relationships),
        other_nations=format_other_nations(world_state.other_nations),
        history=format_turn_history(world_state.turn_history),
        history_summary=world_state.history_summary or prompts.NO_SUMMARY,
        **_resource_fields(world_state.player_resources),
    )


def build_event_generation_prompt(
    turn_number: int,
    current_year: int,
    action: str,
    interpretation: ActionInterpretation,
    known_nations: List[KnownNation],
    player_nation_name: str = "",
) -> str:
    """
    Stage two prompt.

    ``known_nations`` is expected deduplicated with the player nation first.
    """
    if known_nations:
        nation_lines = "\n".join(
            f"  - {n.name} ({n.government}){_resource_snippet(n.resources)}"
            for n in known_nations
        )
    else:
        nation_lines = "  None"
    return prompts.EVENT_GENERATION.format(
        turn_number=turn_number,
        current_year=current_year,
        player_nation=player_nation_name or (known_nations[0].name if known_nations else ""),
        action=action,
        feasibility=interpretation.feasibility,
        consequences=", ".join(interpretation.immediate_consequences),
        known_nations=nation_lines,
    )


def build_summarization_prompt(current_summary: str, recent_turns: Sequence[RecentTurn]) -> str:
    return prompts.SUMMARIZATION.format(
        current_summary=current_summary or prompts.SUMMARY_START,
        recent_history=_summary_history(recent_turns),
    )


def build_advisor_prompt(question: str, context: GameContext) -> str:
    world_state = context.world_state
    # Advisor lists the most recent turns first
    recent = sorted(world_state.turn_history, key=lambda t: t.turn_number, reverse=True)
    return prompts.ADVISOR.format(
        player_nation=context.player_nation_name,
        current_year=context.current_year,
        relationships=format_relationships(world_state.relationships),
        other_nations=format_other_nations(world_state.other_nations, with_resources=False),
        recent_history=_summary_history(recent[:HISTORY_WINDOW]),
        history_summary=world_state.history_summary or prompts.NO_SUMMARY_ADVISOR,
        question=question,
        **_resource_fields(world_state.player_resources),
    )
