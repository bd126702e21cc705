"""
ChronoFlux engine: turn pipeline, reconciliation and game lifecycle
"""

from .advisor import Advisor
from .context import GameContextBuilder
from .initializer import BUILT_IN_SCENARIOS, GameInitializer
from .json_extractor import extract_json, parse_model
from .orchestrator import TurnOrchestrator, TurnStage, merge_turn_payload
from .reconciler import NationResolver, WorldStateReconciler
from .retry import RetryController, RetryEvent, RetryResult
from .world import WorldService

__all__ = [
    "Advisor",
    "GameContextBuilder",
    "GameInitializer",
    "BUILT_IN_SCENARIOS",
    "extract_json",
    "parse_model",
    "TurnOrchestrator",
    "TurnStage",
    "merge_turn_payload",
    "NationResolver",
    "WorldStateReconciler",
    "RetryController",
    "RetryEvent",
    "RetryResult",
    "WorldService",
]
