"""
Abstract base class for AI text-completion providers
"""

import time
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from pydantic import BaseModel

from chronoflux.errors import AIProviderError, ChronoFluxError
from chronoflux.utils.debug import get_ai_interaction_log
from chronoflux.utils.logger import get_logger

logger = get_logger(__name__)


class ConnectionStatus(BaseModel):
    """Result of a provider connection test"""

    success: bool
    error: Optional[str] = None


class BaseProvider(ABC):
    """
    Uniform ``generate(prompt) -> text`` interface over one AI backend.

    Subclasses implement ``_generate`` and translate their transport and
    vendor errors into the ``chronoflux.errors`` provider family. Logging,
    timing and the debug interaction log are handled here.
    """

    name = "base"

    def __init__(
        self,
        api_base: str,
        model_name: str,
        timeout: float,
        debug_logging: bool = False,
    ):
        self.api_base = api_base.rstrip("/")
        self.model_name = model_name
        self.timeout = timeout
        self.debug_logging = debug_logging

    def _log_llm_call(self, prompt: str, **kwargs) -> str:
        """Log LLM call details and return a call ID for correlation"""
        call_id = str(uuid.uuid4())[:8]
        logger.info(
            f"[LLM] Call started: {self.model_name}",
            extra={
                "component": "LLM",
                "call_id": call_id,
                "model": self.model_name,
                "provider": self.name,
                "prompt_preview": (
                    prompt[:200] + "..." if len(prompt) > 200 else prompt
                ),
                "total_input_chars": len(prompt),
                "temperature": kwargs.get("temperature", "default"),
                "max_tokens": kwargs.get("max_tokens", "default"),
            },
        )
        return call_id

    def _log_llm_response(
        self,
        call_id: str,
        content: Optional[str],
        duration_ms: float,
        error: Optional[Exception] = None,
    ):
        """Log LLM response details with full content"""
        if error:
            logger.error(
                f"[LLM] Call failed: {self.model_name} ({duration_ms}ms): {str(error)}",
                extra={
                    "component": "LLM",
                    "call_id": call_id,
                    "model": self.model_name,
                    "provider": self.name,
                    "duration_ms": duration_ms,
                    "error": str(error),
                    "error_type": type(error).__name__,
                },
            )
        else:
            logger.info(
                f"[LLM] Call completed: {self.model_name} ({duration_ms}ms)",
                extra={
                    "component": "LLM",
                    "call_id": call_id,
                    "model": self.model_name,
                    "provider": self.name,
                    "duration_ms": duration_ms,
                    "response_chars": len(content or ""),
                    "response_content": content,
                },
            )

    async def generate(
        self, prompt: str, temperature: float = 0.7, max_tokens: int = 2000
    ) -> str:
        """
        Send a single-prompt completion request

        Args:
            prompt: Full prompt text
            temperature: Sampling temperature
            max_tokens: Upper bound on generated tokens

        Returns:
            Generated text

        Raises:
            AIProviderError: or one of its subclasses, classified for retry
        """
        call_id = self._log_llm_call(
            prompt, temperature=temperature, max_tokens=max_tokens
        )
        start_time = time.time()

        try:
            content = await self._generate(prompt, temperature, max_tokens)
            if not content or not content.strip():
                raise AIProviderError(
                    f"{self.display_name} API returned empty response",
                    provider=self.name,
                    retryable=True,
                )
        except ChronoFluxError as e:
            self._finish(call_id, prompt, None, start_time, e)
            raise
        except Exception as e:
            wrapped = AIProviderError(
                f"{self.display_name} API error: {e}", provider=self.name
            )
            self._finish(call_id, prompt, None, start_time, wrapped)
            raise wrapped from e

        self._finish(call_id, prompt, content, start_time)
        return content

    def _finish(
        self,
        call_id: str,
        prompt: str,
        content: Optional[str],
        start_time: float,
        error: Optional[Exception] = None,
    ):
        duration_ms = round((time.time() - start_time) * 1000, 2)
        self._log_llm_response(call_id, content, duration_ms, error=error)
        if self.debug_logging:
            get_ai_interaction_log().add(
                provider=self.name,
                prompt=prompt,
                response=content or "",
                duration_ms=duration_ms,
                error=str(error) if error else None,
            )

    @property
    def display_name(self) -> str:
        return self.name.capitalize()

    @abstractmethod
    async def _generate(self, prompt: str, temperature: float, max_tokens: int) -> str:
        """Provider-specific request; must raise chronoflux provider errors"""
        pass

    @abstractmethod
    async def test_connection(self) -> ConnectionStatus:
        """Check reachability and configuration, with a readable error"""
        pass

    async def health_check(self) -> bool:
        """Check if the provider is healthy and accessible"""
        status = await self.test_connection()
        return status.success

    def describe(self) -> Dict[str, Any]:
        return {
            "provider": self.name,
            "model": self.model_name,
            "api_base": self.api_base,
            "timeout": self.timeout,
        }
