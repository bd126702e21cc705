"""
Debug utilities for ChronoFlux

Keeps a bounded in-memory log of AI provider interactions so a developer can
inspect exactly what was sent to the model and what came back.

Usage:
    from chronoflux.utils.debug import get_ai_interaction_log

    log = get_ai_interaction_log()
    log.add(provider="ollama", prompt=prompt, response=text, duration_ms=812.4)
    recent = log.entries()
"""

import threading
import time
import uuid
from collections import deque
from typing import Any, Deque, Dict, List, Optional

from chronoflux.utils.logger import get_logger

logger = get_logger(__name__)

MAX_LOG_ENTRIES = 50


class AIInteractionLog:
    """
    Newest-first log of AI calls, capped at ``max_entries``.

    Entries are only recorded by providers when the debug-logging setting is
    enabled for the request.
    """

    def __init__(self, max_entries: int = MAX_LOG_ENTRIES):
        self.max_entries = max_entries
        self._entries: Deque[Dict[str, Any]] = deque(maxlen=max_entries)
        self._lock = threading.Lock()

    def add(
        self,
        provider: str,
        prompt: str,
        response: str,
        duration_ms: float,
        error: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Record one interaction.

        Args:
            provider: Provider name (ollama, openrouter)
            prompt: Prompt text sent to the model
            response: Raw model output ("" on failure)
            duration_ms: Wall time of the call
            error: Error message if the call failed

        Returns:
            The stored entry
        """
        entry = {
            "id": str(uuid.uuid4()),
            "timestamp": int(time.time() * 1000),
            "provider": provider,
            "prompt": prompt,
            "response": response,
            "duration": round(duration_ms, 2),
        }
        if error:
            entry["error"] = error

        with self._lock:
            self._entries.appendleft(entry)

        logger.debug(
            f"[Debug] Recorded AI interaction ({provider}, {entry['duration']}ms)",
            extra={"component": "Debug", "entry_id": entry["id"]},
        )
        return entry

    def entries(self) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._entries)

    def clear(self):
        with self._lock:
            self._entries.clear()
        logger.info("[Debug] Cleared AI interaction log")

    def __len__(self) -> int:
        return len(self._entries)


# Global interaction log instance
_global_log = AIInteractionLog()


def get_ai_interaction_log() -> AIInteractionLog:
    """Get the global AI interaction log."""
    return _global_log
