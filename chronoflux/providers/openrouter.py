"""
OpenRouter provider implementation using LangChain's ChatOpenAI

OpenRouter exposes an OpenAI-compatible chat completion API, so the
``ChatOpenAI`` client is pointed at the OpenRouter base URL and the openai SDK
exceptions it raises are translated into the ChronoFlux provider errors.
"""

from typing import Optional

import httpx
import openai
from langchain_core.messages import HumanMessage
from langchain_openai import ChatOpenAI

from chronoflux.errors import (
    AIProviderError,
    AuthError,
    ConnectivityError,
    ProviderTimeoutError,
    QuotaError,
    RateLimitError,
)
from chronoflux.utils.logger import get_logger

from .base import BaseProvider, ConnectionStatus

logger = get_logger(__name__)


class OpenRouterProvider(BaseProvider):
    """Cloud provider for any model routed through OpenRouter"""

    name = "openrouter"

    def __init__(
        self,
        api_base: str,
        api_key: str,
        model_name: str,
        timeout: float = 120.0,
        debug_logging: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(api_base, model_name, timeout, debug_logging)
        self.api_key = api_key
        self.transport = transport

        # Retries belong to the retry controller, not the SDK
        self.llm = ChatOpenAI(
            model=model_name,
            base_url=self.api_base,
            api_key=api_key,  # type: ignore
            timeout=timeout,
            max_retries=0,
        )

        logger.info(f"Initialized OpenRouter provider for {model_name}")

    @property
    def display_name(self) -> str:
        return "OpenRouter"

    async def _generate(self, prompt: str, temperature: float, max_tokens: int) -> str:
        llm = self.llm.bind(temperature=temperature, max_tokens=max_tokens)

        try:
            response = await llm.ainvoke([HumanMessage(content=prompt)])
        except openai.APITimeoutError as e:
            raise ProviderTimeoutError(
                f"OpenRouter request timed out after {self.timeout}s",
                provider=self.name,
            ) from e
        except openai.APIConnectionError as e:
            raise ConnectivityError(
                f"Could not connect to OpenRouter at {self.api_base}: {e}",
                provider=self.name,
            ) from e
        except openai.AuthenticationError as e:
            raise AuthError(
                "Invalid API key. Please check your OpenRouter API key.",
                provider=self.name,
                status_code=401,
            ) from e
        except openai.RateLimitError as e:
            raise RateLimitError(
                "Rate limit exceeded. Please try again later.",
                provider=self.name,
                status_code=429,
            ) from e
        except openai.APIStatusError as e:
            raise self._status_error(e) from e

        content = response.content
        if isinstance(content, list):
            content = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part)
                for part in content
            )
        return content or ""

    def _status_error(self, error: "openai.APIStatusError") -> AIProviderError:
        status = error.status_code
        if status == 402:
            return QuotaError(
                "Insufficient credits. Please add credits to your OpenRouter account.",
                provider=self.name,
                status_code=402,
            )
        return AIProviderError(
            f"OpenRouter API error: {status} {error.message}",
            provider=self.name,
            status_code=status,
            retryable=status >= 500,
        )

    async def test_connection(self) -> ConnectionStatus:
        """Ping the models listing with the configured key"""
        if not self.api_key:
            return ConnectionStatus(success=False, error="OpenRouter API key is required")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.get(
                    f"{self.api_base}/models",
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
        except httpx.HTTPError as e:
            return ConnectionStatus(success=False, error=f"Could not connect: {e}")

        if response.status_code == 401:
            return ConnectionStatus(success=False, error="Invalid API key")
        if response.status_code >= 400:
            return ConnectionStatus(
                success=False, error=f"API error: {response.status_code}"
            )
        return ConnectionStatus(success=True)
