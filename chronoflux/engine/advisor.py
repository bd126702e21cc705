"""
Royal advisor: single-shot, in-character answers about the player's realm
"""

from chronoflux import prompts
from chronoflux.config import settings
from chronoflux.db.store import DocumentStore
from chronoflux.engine.context import GameContextBuilder
from chronoflux.engine.prompt_builders import build_advisor_prompt
from chronoflux.errors import is_fatal
from chronoflux.providers.base import BaseProvider
from chronoflux.utils.logger import get_logger

logger = get_logger(__name__)

ADVISOR_TEMPERATURE = 0.7


class Advisor:
    def __init__(self, store: DocumentStore, provider: BaseProvider):
        self.provider = provider
        self.context_builder = GameContextBuilder(store, settings.recent_turn_window)

    async def ask(self, game_id: str, question: str) -> str:
        """
        Answer ``question`` in character.

        Domain errors and fatal provider errors propagate; anything else is
        answered with an in-character apology.
        """
        context = self.context_builder.build(game_id)
        prompt = build_advisor_prompt(question, context)

        try:
            answer = await self.provider.generate(
                prompt, temperature=ADVISOR_TEMPERATURE, max_tokens=settings.max_tokens
            )
        except Exception as e:
            if is_fatal(e):
                raise
            logger.error(f"[Advisor] Failed to get advisor response: {e}")
            return prompts.ADVISOR_FALLBACK

        return answer.strip()
