"""
Turn orchestrator - runs the AI pipeline for one player action.

This module sequences the turn stages:
- Interpreting: feasibility, consequences and deltas for the action
- EventGenerating: events caused by the action plus autonomous moves
- Summarizing: regenerate the history summary every few turns
- Committing: hand the merged payload to the world-state reconciler

Parse failures degrade to fallback content so a turn always completes;
connectivity, configuration, auth and quota failures abort it.
"""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from pydantic import ValidationError

from chronoflux.config import settings
from chronoflux.db.store import DocumentStore
from chronoflux.engine.context import GameContextBuilder
from chronoflux.engine.json_extractor import extract_json, parse_model
from chronoflux.engine.prompt_builders import (
    build_action_interpretation_prompt,
    build_event_generation_prompt,
    build_summarization_prompt,
)
from chronoflux.engine.reconciler import WorldStateReconciler
from chronoflux.engine.retry import RetryController, RetryEvent, RetryObserver
from chronoflux.errors import ResponseShapeError, is_fatal
from chronoflux.providers.base import BaseProvider
from chronoflux.schemas.ai import (
    ActionInterpretation,
    EventSpec,
    MergedTurnPayload,
    StructuredEventResponse,
    TurnSummary,
    parse_event_response,
)
from chronoflux.schemas.world import GameContext, KnownNation
from chronoflux.utils.logger import get_logger

logger = get_logger(__name__)

INTERPRETATION_TEMPERATURE = 0.7
EVENT_TEMPERATURE = 0.8
SUMMARY_TEMPERATURE = 0.6


class TurnStage(str, Enum):
    INTERPRETING = "interpreting"
    EVENT_GENERATING = "event_generating"
    SUMMARIZING = "summarizing"
    COMMITTING = "committing"
    DONE = "done"
    FAILED = "failed"


def parse_events(raw: str) -> StructuredEventResponse:
    """Parse either event response shape into the structured form"""
    data = extract_json(raw)
    try:
        return parse_event_response(data)
    except (ValidationError, ValueError) as e:
        raise ResponseShapeError(f"Invalid event response: {e}") from e


def collect_known_nations(context: GameContext) -> List[KnownNation]:
    """
    Every nation the model should know about, deduplicated by name.

    Player nation first, then the other nations, then relationship partners;
    the first occurrence of a name wins.
    """
    world = context.world_state
    candidates = [
        KnownNation(
            name=context.player_nation_name,
            government=context.player_government,
            resources=world.player_resources,
        )
    ]
    candidates.extend(world.other_nations)
    candidates.extend(KnownNation(name=r.name) for r in world.relationships)

    known: List[KnownNation] = []
    seen = set()
    for nation in candidates:
        if nation.name in seen:
            continue
        seen.add(nation.name)
        known.append(nation)
    return known


def fallback_events(
    player_nation_name: str, interpretation: ActionInterpretation
) -> StructuredEventResponse:
    return StructuredEventResponse(
        events=[
            EventSpec(
                type="other",
                title=f"{player_nation_name}'s Action",
                description=interpretation.narrative,
                affected_nations=[player_nation_name],
                impact=interpretation.resource_changes,
            )
        ]
    )


def merge_turn_payload(
    interpretation: ActionInterpretation,
    event_response: StructuredEventResponse,
    history_summary: Optional[str] = None,
) -> MergedTurnPayload:
    """
    Combine the stage outputs.

    Interpretation-stage nation definitions override event-stage ones with
    the same name. Event-stage nation updates stay separate from the player's
    own resource delta.
    """
    new_nations = dict(event_response.new_nations)
    new_nations.update(interpretation.new_nations)

    return MergedTurnPayload(
        feasibility=interpretation.feasibility,
        narrative=interpretation.narrative,
        consequences=". ".join(interpretation.immediate_consequences),
        resource_changes=interpretation.resource_changes,
        relationship_changes=interpretation.relationship_changes,
        events=event_response.events,
        new_nations=new_nations,
        nation_updates=event_response.nation_updates,
        history_summary=history_summary,
    )


class TurnOrchestrator:
    """
    Runs one AI turn from a fresh world snapshot to a committed TurnSummary.

    Attributes:
        stages: Stage history of the last ``process_turn`` call
        retry_counts: Retries needed per stage in the last call
    """

    def __init__(
        self,
        store: DocumentStore,
        provider: BaseProvider,
        max_attempts: Optional[int] = None,
        base_delay: Optional[float] = None,
        summary_interval: Optional[int] = None,
        observer: Optional[RetryObserver] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.store = store
        self.provider = provider
        self.summary_interval = (
            settings.history_summary_interval if summary_interval is None else summary_interval
        )
        self.observer = observer
        self.context_builder = GameContextBuilder(store, settings.recent_turn_window)
        self.reconciler = WorldStateReconciler(store)
        self.retry = RetryController(
            provider,
            max_attempts=max_attempts or settings.ai_max_retries,
            base_delay=settings.ai_retry_base_delay if base_delay is None else base_delay,
            max_tokens=settings.max_tokens,
            sleep=sleep,
        )
        self.stages: List[TurnStage] = []
        self.retry_counts: dict = {}

    def _enter(self, stage: TurnStage):
        self.stages.append(stage)
        logger.debug(f"[Orchestrator] Stage -> {stage.value}")

    def _observe(self, stage: TurnStage) -> RetryObserver:
        def on_retry(event: RetryEvent):
            self.retry_counts[stage.value] = event.attempt
            if self.observer is not None:
                self.observer(event)

        return on_retry

    async def process_turn(self, game_id: str, player_action: str) -> TurnSummary:
        """
        Resolve ``player_action`` for ``game_id`` and commit the result.

        Raises:
            Domain errors from the context read or the reconciler
            ConnectivityError / ConfigurationError / AuthError / QuotaError
            ConcurrentTurnConflictError: another turn committed first
        """
        self.stages = []
        self.retry_counts = {}

        logger.info("=" * 60)
        logger.info(f"[Orchestrator] Processing turn for game {game_id}")
        logger.info(f"[Orchestrator] Action: {player_action}")

        try:
            context = self.context_builder.build(game_id)

            self._enter(TurnStage.INTERPRETING)
            interpretation = await self.interpret(context, player_action)

            self._enter(TurnStage.EVENT_GENERATING)
            event_response = await self.generate_events(
                context, player_action, interpretation
            )

            history_summary = None
            if self.should_summarize(context.current_turn + 1):
                self._enter(TurnStage.SUMMARIZING)
                history_summary = await self.summarize(context)

            payload = merge_turn_payload(interpretation, event_response, history_summary)

            self._enter(TurnStage.COMMITTING)
            summary = self.reconciler.reconcile(
                game_id, player_action, payload, expected_turn=context.current_turn
            )
        except Exception as e:
            self._enter(TurnStage.FAILED)
            logger.error(
                f"[Orchestrator] Turn failed: {type(e).__name__}: {e}",
                extra={
                    "component": "Orchestrator",
                    "game_id": game_id,
                    "stages": [s.value for s in self.stages],
                },
            )
            raise

        self._enter(TurnStage.DONE)
        logger.info(
            f"[Orchestrator] ✓ Turn {summary.turn_number} complete",
            extra={
                "component": "Orchestrator",
                "game_id": game_id,
                "turn_number": summary.turn_number,
                "retries": self.retry_counts,
            },
        )
        return summary

    def should_summarize(self, turn_number: int) -> bool:
        return self.summary_interval > 0 and turn_number % self.summary_interval == 0

    async def interpret(
        self, context: GameContext, player_action: str
    ) -> ActionInterpretation:
        prompt = build_action_interpretation_prompt(
            context.player_nation_name,
            context.current_year,
            player_action,
            context.world_state,
        )
        result = await self.retry.run(
            prompt,
            INTERPRETATION_TEMPERATURE,
            lambda raw: parse_model(raw, ActionInterpretation),
            observer=self._observe(TurnStage.INTERPRETING),
            label="Action interpretation",
        )
        if result.ok:
            return result.value  # type: ignore[return-value]
        if is_fatal(result.error):
            raise result.error  # type: ignore[misc]

        logger.warning(
            f"[Orchestrator] Using fallback action response after {result.attempts} attempts"
        )
        return ActionInterpretation.fallback(context.player_nation_name, player_action)

    async def generate_events(
        self,
        context: GameContext,
        player_action: str,
        interpretation: ActionInterpretation,
    ) -> StructuredEventResponse:
        prompt = build_event_generation_prompt(
            context.current_turn,
            context.current_year,
            player_action,
            interpretation,
            collect_known_nations(context),
            player_nation_name=context.player_nation_name,
        )
        result = await self.retry.run(
            prompt,
            EVENT_TEMPERATURE,
            parse_events,
            observer=self._observe(TurnStage.EVENT_GENERATING),
            label="Event generation",
        )
        if result.ok:
            return result.value  # type: ignore[return-value]
        if is_fatal(result.error):
            raise result.error  # type: ignore[misc]

        logger.warning("[Orchestrator] Using fallback event response")
        return fallback_events(context.player_nation_name, interpretation)

    async def summarize(self, context: GameContext) -> Optional[str]:
        """Best-effort single call; failures never block the turn"""
        prompt = build_summarization_prompt(
            context.world_state.history_summary, context.world_state.turn_history
        )
        try:
            text = await self.provider.generate(
                prompt, temperature=SUMMARY_TEMPERATURE, max_tokens=settings.max_tokens
            )
        except Exception as e:
            logger.error(f"[Orchestrator] Failed to generate history summary: {e}")
            return None

        text = text.strip()
        if text:
            logger.info("[Orchestrator] History summary updated")
        return text or None
