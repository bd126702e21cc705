"""
Utility modules for ChronoFlux
"""

from .debug import AIInteractionLog, get_ai_interaction_log
from .logger import get_logger, setup_logging

__all__ = [
    "AIInteractionLog",
    "get_ai_interaction_log",
    "get_logger",
    "setup_logging",
]
