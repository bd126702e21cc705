"""
Ollama provider for local models, talking to the Ollama HTTP API with httpx
"""

from typing import Optional

import httpx

from chronoflux.errors import (
    AIProviderError,
    ConfigurationError,
    ConnectivityError,
    ProviderTimeoutError,
)
from chronoflux.utils.logger import get_logger

from .base import BaseProvider, ConnectionStatus

logger = get_logger(__name__)


class OllamaProvider(BaseProvider):
    """Ollama provider using ``POST /api/generate`` with streaming disabled"""

    name = "ollama"

    def __init__(
        self,
        api_base: str,
        model_name: str,
        timeout: float = 60.0,
        debug_logging: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(api_base, model_name, timeout, debug_logging)
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.api_base, timeout=self.timeout, transport=self.transport
        )

    def _unreachable_message(self) -> str:
        return (
            "Could not connect to Ollama. Please ensure:\n"
            "1. Ollama is running (`ollama serve`)\n"
            f"2. The URL is correct ({self.api_base})\n"
            f"3. The model is pulled (`ollama pull {self.model_name}`)"
        )

    async def _generate(self, prompt: str, temperature: float, max_tokens: int) -> str:
        payload = {
            "model": self.model_name,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": temperature, "num_predict": max_tokens},
        }

        try:
            async with self._client() as client:
                response = await client.post("/api/generate", json=payload)
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(
                f"Request timed out after {self.timeout}s", provider=self.name
            ) from e
        except httpx.ConnectError as e:
            raise ConnectivityError(self._unreachable_message(), provider=self.name) from e
        except httpx.TransportError as e:
            raise AIProviderError(
                f"Ollama transport error: {e}", provider=self.name
            ) from e

        if response.status_code == 404:
            raise ConfigurationError(
                f"Model '{self.model_name}' not found on Ollama. "
                f"Pull it with `ollama pull {self.model_name}`.",
                provider=self.name,
                status_code=404,
            )
        if response.status_code >= 400:
            raise AIProviderError(
                f"Ollama API returned status {response.status_code}: "
                f"{response.reason_phrase}",
                provider=self.name,
                status_code=response.status_code,
                retryable=response.status_code >= 500,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise AIProviderError(
                "Ollama API returned a non-JSON body", provider=self.name
            ) from e

        return data.get("response") or ""

    async def test_connection(self) -> ConnectionStatus:
        """List pulled models and check the configured one is among them"""
        try:
            async with self._client() as client:
                response = await client.get("/api/tags")
        except httpx.ConnectError:
            return ConnectionStatus(
                success=False, error="Could not connect. Check URL and ensure Ollama is running."
            )
        except httpx.HTTPError as e:
            return ConnectionStatus(success=False, error=str(e))

        if response.status_code >= 400:
            return ConnectionStatus(
                success=False, error=f"Failed to connect: {response.reason_phrase}"
            )

        models = [m.get("name", "") for m in response.json().get("models", [])]
        if not self._model_available(models):
            return ConnectionStatus(
                success=False,
                error=f"Model '{self.model_name}' not found. Available: {', '.join(models)}",
            )
        return ConnectionStatus(success=True)

    def _model_available(self, models) -> bool:
        for name in models:
            if name == self.model_name:
                return True
            # Untagged names resolve to :latest
            if ":" not in self.model_name and name == f"{self.model_name}:latest":
                return True
        return False
